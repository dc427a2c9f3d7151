"""Repository tools for the commit-splitting negotiator."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Literal

import aiofiles

from commitpilot.git.commit_splitter.schemas import CommitGroup, SplitProposal
from commitpilot.git.hunks import StagingStrategy, get_working_changes_as_hunks, stage_selected_hunks
from commitpilot.git.utils import (
	GitError,
	assert_git_repo,
	get_commit_history,
	get_file_commit_history,
	get_staged_diff,
	get_staged_file_names,
	get_status,
	get_working_diff,
	list_directory,
	stage_files,
	unstage_files,
)
from commitpilot.utils.ignore import filter_ignored

from .base import Toolbox

if TYPE_CHECKING:
	from collections.abc import Sequence

	from pydantic_ai.tools import Tool

	from commitpilot.git.hunks import ChangeHunk
	from commitpilot.llm.transcript import ToolEventSink

logger = logging.getLogger(__name__)

PROPOSE_TOOL_NAME = "propose_commit_groups"
DEFAULT_MAX_LINES = 100


def format_hunks_for_model(hunks: Sequence[ChangeHunk]) -> str:
	"""
	Render hunks as the text returned by get_working_changes_as_hunks.

	Args:
	    hunks: Parsed hunks of one snapshot

	Returns:
	    A listing with one block per hunk

	"""
	if not hunks:
		return "No working directory changes found."
	blocks = []
	for hunk in hunks:
		detail = "\n".join(f"{line.prefix}{line.text}" for line in hunk.lines)
		blocks.append(
			f"Hunk ID: {hunk.hunk_id}\n"
			f"File: {hunk.file}\n"
			f"Summary: {hunk.summary}\n"
			f"Lines: {hunk.old_start}-{hunk.old_start + hunk.old_lines} → "
			f"{hunk.new_start}-{hunk.new_start + hunk.new_lines}\n"
			f"Changes: +{hunk.lines_added} -{hunk.lines_removed}\n"
			f"Changes detail:\n{detail}\n"
		)
	file_count = len({h.file for h in hunks})
	return f"Found {len(hunks)} hunks in {file_count} files:\n\n" + "\n---\n".join(blocks)


class SplitToolbox(Toolbox):
	"""
	Tools for exploring uncommitted changes and proposing commit groups.

	Git runs inline inside every tool so that tools which change the index
	never overlap.

	"""

	def __init__(
		self,
		exclude: Sequence[str] = (),
		context_lines: int = 3,
		strategy: StagingStrategy = StagingStrategy.PATCH,
		on_event: ToolEventSink | None = None,
	) -> None:
		"""
		Initialize the toolbox.

		Args:
		    exclude: Gitignore-style patterns whose hunks are never shown
		    context_lines: Context lines used when parsing hunks
		    strategy: How stage_selected_hunks stages hunks
		    on_event: Progress sink

		"""
		super().__init__(on_event)
		self.exclude = list(exclude)
		self.context_lines = context_lines
		self.strategy = strategy
		self.snapshot: list[ChangeHunk] | None = None

	def load_hunks(self) -> list[ChangeHunk]:
		"""Parse the current working changes, leaving out excluded files."""
		hunks = get_working_changes_as_hunks(self.context_lines)
		if not self.exclude:
			return hunks
		kept_files = set(filter_ignored({h.file for h in hunks}, self.exclude))
		return [h for h in hunks if h.file in kept_files]

	def take_snapshot(self) -> list[ChangeHunk]:
		"""Refresh and remember the hunks the model is shown."""
		self.snapshot = self.load_hunks()
		return self.snapshot

	async def get_diff(self, type: Literal["staged", "working"], context_lines: int = 3) -> str:  # noqa: A002
		"""
		Get a diff of the repository.

		Args:
		    type: "staged" for staged changes or "working" for unstaged changes
		    context_lines: Number of context lines to include in the diff

		"""
		self.emit_call("get_diff", "Analyzing git diff to understand changes", {"type": type})
		try:
			if type == "staged":
				staged = get_staged_diff(self.exclude, context_lines)
				if not staged:
					return "No staged changes found."
				file_list = "\n".join(staged.files)
				result = f"Staged files:\n{file_list}\n\nDiff:\n{staged.diff}"
			else:
				diff = get_working_diff(context_lines)
				if not diff:
					return "No unstaged changes found."
				result = f"Working directory diff:\n{diff}"
		except Exception as e:  # noqa: BLE001
			return self.error("get_diff", "getting diff", e)["error"]
		self.emit_result("get_diff", result)
		return result

	async def list_files(self, directory: str = ".", include_hidden: bool = False) -> str:
		"""
		List files in the repository or a directory of it.

		Args:
		    directory: Directory relative to the repository root
		    include_hidden: Include entries starting with a dot

		"""
		self.emit_call("list_files", "Exploring repository files and structure", {"directory": directory})
		try:
			entries = list_directory(directory, include_hidden)
		except Exception as e:  # noqa: BLE001
			return self.error("list_files", "listing files", e)["error"]
		self.emit_result("list_files", entries, f"{len(entries)} entries")
		return "\n".join(entries) if entries else "Directory is empty."

	async def get_staged_files(self) -> str:
		"""Get the files currently staged for commit."""
		self.emit_call("get_staged_files", "Checking which files are staged for commit")
		try:
			files = get_staged_file_names(self.exclude)
		except Exception as e:  # noqa: BLE001
			return self.error("get_staged_files", "getting staged files", e)["error"]
		self.emit_result("get_staged_files", files, f"{len(files)} staged file(s)")
		if not files:
			return "No files are currently staged."
		return f"Staged files ({len(files)}):\n" + "\n".join(files)

	async def stage_files(self, files: list[str]) -> str:
		"""
		Stage specific files.

		Args:
		    files: File paths to stage

		"""
		self.emit_call("stage_files", "Staging files for commit", {"files": files})
		try:
			stage_files(files)
		except Exception as e:  # noqa: BLE001
			return self.error("stage_files", "staging files", e)["error"]
		self.emit_result("stage_files", files, f"Staged {len(files)} file(s)")
		return f"Successfully staged {len(files)} file(s): {', '.join(files)}"

	async def unstage_files(self, files: list[str]) -> str:
		"""
		Unstage specific files.

		Args:
		    files: File paths to unstage

		"""
		self.emit_call("unstage_files", "Unstaging files", {"files": files})
		try:
			unstage_files(files)
		except Exception as e:  # noqa: BLE001
			return self.error("unstage_files", "unstaging files", e)["error"]
		self.emit_result("unstage_files", files, f"Unstaged {len(files)} file(s)")
		return f"Successfully unstaged {len(files)} file(s): {', '.join(files)}"

	async def get_file_content(self, file_path: str, max_lines: int = DEFAULT_MAX_LINES) -> str:
		"""
		Read a file from the working tree.

		Args:
		    file_path: Path relative to the repository root
		    max_lines: Maximum number of lines to return

		"""
		self.emit_call("get_file_content", f"Reading file contents: {file_path}", {"file_path": file_path})
		try:
			root = assert_git_repo().resolve()
			full_path = (root / file_path).resolve()
			if root not in full_path.parents:
				msg = f"File is outside the repository: {file_path}"
				raise GitError(msg)
			async with aiofiles.open(full_path, encoding="utf-8") as f:
				content = await f.read()
		except Exception as e:  # noqa: BLE001
			return self.error("get_file_content", "reading file", e)["error"]

		lines = content.split("\n")
		self.emit_result("get_file_content", {"file_path": file_path, "lines": len(lines)}, f"{len(lines)} line(s)")
		if len(lines) <= max_lines:
			return content
		truncated = "\n".join(lines[:max_lines])
		return f"{truncated}\n\n... (truncated, showing first {max_lines} lines of {len(lines)} total lines)"

	async def get_commit_history(self, count: int = 5) -> list[dict[str, str]] | str:
		"""
		Get recent commits for context.

		Args:
		    count: Number of recent commits

		"""
		self.emit_call("get_commit_history", "Reviewing recent commit history for patterns", {"count": count})
		try:
			commits = [asdict(c) for c in get_commit_history(count)]
		except Exception as e:  # noqa: BLE001
			return self.error("get_commit_history", "getting commit history", e)["error"]
		self.emit_result("get_commit_history", commits, f"{len(commits)} commit(s)")
		return commits

	async def get_status(self) -> dict[str, list[str]] | str:
		"""Get staged, modified, deleted and untracked files."""
		self.emit_call("get_status", "Checking git repository status")
		try:
			status = asdict(get_status())
		except Exception as e:  # noqa: BLE001
			return self.error("get_status", "getting git status", e)["error"]
		self.emit_result("get_status", status)
		return status

	async def get_working_changes_as_hunks(self) -> str:
		"""Get all uncommitted changes as hunks with stable Hunk IDs."""
		self.emit_call("get_working_changes_as_hunks", "Analyzing working directory changes and extracting hunks")
		try:
			hunks = self.take_snapshot()
		except Exception as e:  # noqa: BLE001
			return self.error("get_working_changes_as_hunks", "getting working changes as hunks", e)["error"]
		self.emit_result("get_working_changes_as_hunks", [h.hunk_id for h in hunks], f"Found {len(hunks)} hunks")
		return format_hunks_for_model(hunks)

	async def stage_selected_hunks(self, hunk_ids: list[str]) -> str:
		"""
		Stage specific hunks by their IDs.

		Args:
		    hunk_ids: Hunk IDs from get_working_changes_as_hunks

		"""
		self.emit_call("stage_selected_hunks", "Staging selected hunks by ID", {"hunk_ids": hunk_ids})
		try:
			all_hunks = self.load_hunks()
			selected = [h for h in all_hunks if h.hunk_id in hunk_ids]
			if not selected:
				return "No matching hunks found for the provided IDs."
			if len(selected) != len(set(hunk_ids)):
				found = {h.hunk_id for h in selected}
				missing = [i for i in hunk_ids if i not in found]
				return (
					f"Warning: Could not find hunks with IDs: {', '.join(missing)}. "
					f"Found {len(selected)} of {len(hunk_ids)} requested hunks."
				)
			stage_selected_hunks(selected, self.strategy)
		except Exception as e:  # noqa: BLE001
			return self.error("stage_selected_hunks", "staging hunks", e)["error"]
		file_count = len({h.file for h in selected})
		self.emit_result("stage_selected_hunks", [h.hunk_id for h in selected], f"Staged {len(selected)} hunk(s)")
		return f"Successfully staged {len(selected)} hunk(s) from {file_count} file(s)"

	async def get_file_commit_history(self, file_path: str, count: int = 10) -> dict[str, Any]:
		"""
		Get the last commits that touched a file.

		Args:
		    file_path: Path relative to the repository root
		    count: Number of commits

		"""
		self.emit_call("get_file_commit_history", f"Getting commit history for file: {file_path}")
		try:
			commits = [asdict(c) for c in get_file_commit_history(file_path, count)]
		except Exception as e:  # noqa: BLE001
			payload = self.error("get_file_commit_history", "getting commit history for file", e)
			return {"success": False, "error": payload["error"], "file_path": file_path}
		self.emit_result("get_file_commit_history", commits, f"{len(commits)} commit(s)")
		return {"success": True, "file_path": file_path, "commits": commits, "count": len(commits)}

	async def propose_commit_groups(self, groups: list[CommitGroup], explanation: str) -> dict[str, Any]:
		"""
		Propose the final commit groups. Calling this ends the conversation.

		Args:
		    groups: Commit groups, every hunk assigned to exactly one group
		    explanation: Overall explanation of the grouping strategy

		"""
		proposal = SplitProposal(groups=groups, explanation=explanation)
		payload = proposal.model_dump()
		self.emit_call(PROPOSE_TOOL_NAME, f"Proposing {len(groups)} commit group(s)", payload)
		self.emit_finished(explanation)
		return payload

	def tools(self) -> list[Tool]:
		"""The pydantic-ai tools exposed to the model."""
		return [
			self.make_tool(
				self.get_diff,
				"get_diff",
				'Get git diff. Use "staged" for staged changes or "working" for unstaged changes.',
			),
			self.make_tool(self.list_files, "list_files", "List files in the repository or a specific directory."),
			self.make_tool(self.get_staged_files, "get_staged_files", "Get files currently staged for commit."),
			self.make_tool(self.stage_files, "stage_files", "Stage specific files for commit."),
			self.make_tool(self.unstage_files, "unstage_files", "Unstage specific files."),
			self.make_tool(self.get_file_content, "get_file_content", "Get the content of a specific file."),
			self.make_tool(self.get_commit_history, "get_commit_history", "Get recent commit history for context."),
			self.make_tool(
				self.get_status,
				"get_status",
				"Get current git status showing staged, modified, deleted and untracked files.",
			),
			self.make_tool(
				self.get_working_changes_as_hunks,
				"get_working_changes_as_hunks",
				"Get all uncommitted changes as structured hunks. Call this first.",
			),
			self.make_tool(
				self.stage_selected_hunks,
				"stage_selected_hunks",
				"Stage specific hunks by their IDs to try out a grouping.",
			),
			self.make_tool(
				self.get_file_commit_history,
				"get_file_commit_history",
				"Get the last N commits that affected a specific file.",
			),
			self.make_tool(
				self.propose_commit_groups,
				PROPOSE_TOOL_NAME,
				"Call this when you are ready to propose logical groupings of hunks for separate commits. "
				"This is the only way to finish.",
			),
		]
