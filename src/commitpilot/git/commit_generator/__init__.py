"""Commit message generation, with or without agent tools."""

from .agent import AgenticCommitGenerator, extract_commit_message
from .generator import CommitMessageGenerator
from .utils import CommitDraft, build_full_message, dedupe_messages, parse_edited_message, sanitize_message

__all__ = [
	"AgenticCommitGenerator",
	"CommitDraft",
	"CommitMessageGenerator",
	"build_full_message",
	"dedupe_messages",
	"extract_commit_message",
	"parse_edited_message",
	"sanitize_message",
]
