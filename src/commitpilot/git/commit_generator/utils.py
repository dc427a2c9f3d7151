"""Helpers for normalizing and assembling commit messages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from collections.abc import Iterable

_TRAILING_PERIOD = re.compile(r"(\w)\.$")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")


@dataclass(frozen=True)
class CommitDraft:
	"""Subject and body of one proposed commit message."""

	message: str
	body: str = ""

	@property
	def full_message(self) -> str:
		"""Text passed to git commit."""
		return build_full_message(self.message, self.body)


def sanitize_message(message: str) -> str:
	"""
	Normalize a generated subject line.

	Strips surrounding whitespace, removes embedded line breaks and drops one
	trailing period that follows a word character. Already normalized subjects
	come back unchanged.

	"""
	cleaned = message.strip()
	cleaned = cleaned.replace("\n", "").replace("\r", "")
	return _TRAILING_PERIOD.sub(r"\1", cleaned)


def dedupe_messages(messages: Iterable[str]) -> list[str]:
	"""Sanitize candidate subjects and drop duplicates, keeping first occurrences."""
	seen: dict[str, None] = {}
	for message in messages:
		cleaned = sanitize_message(message)
		if cleaned:
			seen.setdefault(cleaned, None)
	return list(seen)


def build_full_message(message: str, body: str = "") -> str:
	"""Join subject and body with a blank line."""
	return f"{message}\n\n{body}".strip()


def parse_edited_message(text: str) -> CommitDraft:
	"""
	Split editor output into subject and body at the first blank line.

	Every line before the blank line is folded into the subject. Without a
	blank line the whole text is the subject and the body is empty.

	Args:
	    text: Raw editor content

	Returns:
	    The parsed draft

	"""
	normalized = text.replace("\r\n", "\n").strip()
	parts = _BLANK_LINE.split(normalized, maxsplit=1)
	head = parts[0]
	body = parts[1].strip() if len(parts) > 1 else ""
	subject = " ".join(line.strip() for line in head.splitlines() if line.strip())
	return CommitDraft(message=subject, body=body)
