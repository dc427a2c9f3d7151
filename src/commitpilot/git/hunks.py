"""Parsing diffs into hunks and staging hunks back into the index."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from io import StringIO
from typing import TYPE_CHECKING, Literal

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from commitpilot.git.utils import GitError, run_git_command, stage_files, unstage_files

if TYPE_CHECKING:
	from unidiff import Hunk, PatchedFile

logger = logging.getLogger(__name__)

# Object id of the empty tree, used as the diff base before the first commit
EMPTY_TREE_HASH = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

MAX_SUMMARY_LINES = 2
MAX_SUMMARY_LENGTH = 80

HunkSource = Literal["working", "staged"]


class LineKind(str, Enum):
	"""Kind of a single diff line."""

	ADDED = "added"
	REMOVED = "removed"
	CONTEXT = "context"


class StagingStrategy(str, Enum):
	"""How selected hunks are moved into the index."""

	FILE = "file"
	PATCH = "patch"


@dataclass(frozen=True)
class HunkLine:
	"""One line of a hunk with the line number it refers to."""

	kind: LineKind
	text: str
	line_number: int | None

	@property
	def prefix(self) -> str:
		"""Unified diff marker for this line."""
		return {LineKind.ADDED: "+", LineKind.REMOVED: "-", LineKind.CONTEXT: " "}[self.kind]


@dataclass
class ChangeHunk:
	"""
	One contiguous diff chunk within one file.

	Identifiers are only meaningful for the snapshot the hunk was parsed from.

	"""

	file: str
	hunk_id: str
	source: HunkSource
	index: int
	old_start: int
	old_lines: int
	new_start: int
	new_lines: int
	lines: list[HunkLine] = field(default_factory=list)
	summary: str = ""
	file_header: str = ""
	patch_text: str = ""

	@property
	def lines_added(self) -> int:
		"""Number of added lines."""
		return sum(1 for line in self.lines if line.kind is LineKind.ADDED)

	@property
	def lines_removed(self) -> int:
		"""Number of removed lines."""
		return sum(1 for line in self.lines if line.kind is LineKind.REMOVED)

	def as_patch(self) -> str:
		"""Return a standalone patch containing only this hunk."""
		return self.file_header + self.patch_text


def make_hunk_id(source: HunkSource, file_path: str, index: int) -> str:
	"""Build the identifier of the index-th hunk of a file."""
	return f"{source}:{file_path}:{index}"


def summarize_lines(lines: list[HunkLine]) -> str:
	"""
	Build a short description from the first changed lines.

	Args:
	    lines: Lines of a hunk

	Returns:
	    A one-line summary such as "+def new(): | -def old():"

	"""
	changed = [line for line in lines if line.kind is not LineKind.CONTEXT and line.text.strip()]
	if not changed:
		return "Whitespace-only change"
	parts = [f"{line.prefix}{line.text.strip()}" for line in changed[:MAX_SUMMARY_LINES]]
	summary = " | ".join(parts)
	if len(summary) > MAX_SUMMARY_LENGTH:
		summary = summary[: MAX_SUMMARY_LENGTH - 3] + "..."
	return summary


def _file_header(patched_file: PatchedFile) -> str:
	header = str(patched_file.patch_info) if patched_file.patch_info else ""
	if not header.startswith("diff --git"):
		header = f"diff --git {patched_file.source_file} {patched_file.target_file}\n"
	return header + f"--- {patched_file.source_file}\n+++ {patched_file.target_file}\n"


def _convert_hunk(hunk: Hunk, file_path: str, source: HunkSource, index: int, header: str) -> ChangeHunk:
	lines = []
	for line in hunk:
		if line.is_added:
			lines.append(HunkLine(LineKind.ADDED, line.value.rstrip("\n"), line.target_line_no))
		elif line.is_removed:
			lines.append(HunkLine(LineKind.REMOVED, line.value.rstrip("\n"), line.source_line_no))
		elif line.is_context:
			lines.append(HunkLine(LineKind.CONTEXT, line.value.rstrip("\n"), line.target_line_no))

	patch_text = str(hunk)
	if not patch_text.endswith("\n"):
		patch_text += "\n"

	return ChangeHunk(
		file=file_path,
		hunk_id=make_hunk_id(source, file_path, index),
		source=source,
		index=index,
		old_start=hunk.source_start,
		old_lines=hunk.source_length,
		new_start=hunk.target_start,
		new_lines=hunk.target_length,
		lines=lines,
		summary=summarize_lines(lines),
		file_header=header,
		patch_text=patch_text,
	)


def parse_hunks(diff_text: str, source: HunkSource) -> list[ChangeHunk]:
	"""
	Parse a unified diff into ChangeHunk objects.

	Binary files and pure renames carry no hunks and are skipped.

	Args:
	    diff_text: Output of `git diff`
	    source: Whether the diff describes the working tree or the index

	Returns:
	    Hunks in diff order, numbered per file from 0

	Raises:
	    GitError: If the diff cannot be parsed

	"""
	if not diff_text or not diff_text.strip():
		return []
	try:
		patch_set = PatchSet(StringIO(diff_text))
	except UnidiffParseError as e:
		msg = f"Failed to parse diff: {e}"
		raise GitError(msg) from e

	hunks: list[ChangeHunk] = []
	for patched_file in patch_set:
		file_path = patched_file.path
		header = _file_header(patched_file)
		for index, hunk in enumerate(patched_file):
			hunks.append(_convert_hunk(hunk, file_path, source, index, header))
	logger.debug("Parsed %d hunks from %s diff", len(hunks), source)
	return hunks


def _working_base() -> str:
	try:
		run_git_command(["git", "rev-parse", "--verify", "--quiet", "HEAD"])
	except GitError:
		return EMPTY_TREE_HASH
	return "HEAD"


def get_working_changes_as_hunks(context_lines: int = 3) -> list[ChangeHunk]:
	"""
	Get all uncommitted changes to tracked files as hunks.

	The diff is taken against HEAD so that staging or unstaging files does not
	change the snapshot.

	"""
	diff = run_git_command(["git", "diff", f"-U{context_lines}", "--diff-algorithm=minimal", _working_base()])
	return parse_hunks(diff, "working")


def get_staged_changes_as_hunks(context_lines: int = 3) -> list[ChangeHunk]:
	"""Get the staged changes as hunks."""
	diff = run_git_command(["git", "diff", "--cached", f"-U{context_lines}", "--diff-algorithm=minimal"])
	return parse_hunks(diff, "staged")


def build_patch(hunks: list[ChangeHunk]) -> str:
	"""
	Combine hunks into a single patch with one header per file.

	Hunks keep their relative order inside each file.

	"""
	by_file: dict[str, list[ChangeHunk]] = {}
	for hunk in hunks:
		by_file.setdefault(hunk.file, []).append(hunk)

	parts = []
	for file_hunks in by_file.values():
		ordered = sorted(file_hunks, key=lambda h: h.index)
		parts.append(ordered[0].file_header + "".join(h.patch_text for h in ordered))
	return "".join(parts)


def stage_selected_hunks(hunks: list[ChangeHunk], strategy: StagingStrategy = StagingStrategy.FILE) -> None:
	"""
	Stage the given hunks.

	FILE stages every file touched by the hunks. PATCH applies exactly the
	selected hunks to the index with `git apply --cached`; the touched files
	are unstaged first because working hunks are relative to HEAD.

	Raises:
	    GitError: If staging fails

	"""
	if not hunks:
		return
	files = list(dict.fromkeys(h.file for h in hunks))

	if strategy is StagingStrategy.FILE:
		stage_files(files)
		return

	patch = build_patch(hunks)
	if any(h.source == "working" for h in hunks):
		unstage_files(files)
	try:
		run_git_command(["git", "apply", "--cached", "--whitespace=nowarn", "-"], input_text=patch)
	except GitError as e:
		msg = f"Failed to apply selected hunks to the index: {e}"
		raise GitError(msg) from e
