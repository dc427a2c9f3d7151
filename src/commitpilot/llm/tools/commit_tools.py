"""Read-only inspection tools for the agentic commit message generator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import asyncer

from commitpilot.git.utils import (
	get_commit_message_style_examples,
	get_staged_file_diff,
	get_staged_file_lines,
)

from .base import Toolbox

if TYPE_CHECKING:
	from pydantic_ai.tools import Tool

	from commitpilot.llm.transcript import ToolEventSink

logger = logging.getLogger(__name__)

FINISH_TOOL_NAME = "finish_commit_message"
NO_CHANGES = "No changes"
MAX_EXAMPLE_COUNT = 50


class CommitToolbox(Toolbox):
	"""Tools bound to one snapshot of staged files."""

	def __init__(
		self,
		staged_files: list[str],
		context_lines: int = 3,
		on_event: ToolEventSink | None = None,
	) -> None:
		"""
		Initialize the toolbox.

		Args:
		    staged_files: Staged paths reported by list_staged_files
		    context_lines: Context lines used for file diffs
		    on_event: Progress sink

		"""
		super().__init__(on_event)
		self.staged_files = list(staged_files)
		self.context_lines = context_lines

	async def list_staged_files(self) -> list[str]:
		"""List the files staged for commit."""
		self.emit_call("list_staged_files", "Listing staged files")
		self.emit_result("list_staged_files", self.staged_files, f"{len(self.staged_files)} staged file(s)")
		return self.staged_files

	async def read_staged_file(
		self,
		file_path: str,
		start_line: int = 1,
		line_count: int | None = None,
	) -> dict[str, Any]:
		"""
		Read lines of a file as it is staged.

		Args:
		    file_path: Path relative to the repository root
		    start_line: 1-based first line to read
		    line_count: Number of lines to read, or the rest of the file

		"""
		args = {"file_path": file_path, "start_line": start_line, "line_count": line_count}
		self.emit_call("read_staged_file", f"Reading {file_path}", args)
		try:
			content = await asyncer.asyncify(get_staged_file_lines)(file_path, start_line, line_count)
		except Exception as e:  # noqa: BLE001
			return self.error("read_staged_file", f"reading {file_path}", e)
		result = {"file_path": file_path, "start_line": start_line, "content": content}
		self.emit_result("read_staged_file", result)
		return result

	async def read_staged_file_diffs(self, file_paths: list[str]) -> list[dict[str, str]]:
		"""
		Read the staged diff of several files at once.

		Args:
		    file_paths: Paths relative to the repository root

		"""
		self.emit_call("read_staged_file_diffs", f"Reading diffs of {len(file_paths)} file(s)", {"file_paths": file_paths})
		results: list[dict[str, str]] = []
		for path in file_paths:
			try:
				diff = await asyncer.asyncify(get_staged_file_diff)(path, self.context_lines)
			except Exception as e:  # noqa: BLE001
				logger.debug("Diff of %s failed", path, exc_info=True)
				results.append({"file_path": path, "error": f"Error reading diff: {e}"})
				continue
			results.append({"file_path": path, "diff": diff or NO_CHANGES})
		self.emit_result("read_staged_file_diffs", results)
		return results

	async def get_recent_commit_message_examples(self, count: int = 5) -> list[str]:
		"""
		Get recent commit subjects that show the repository's message style.

		Args:
		    count: Maximum number of examples

		"""
		count = max(1, min(count, MAX_EXAMPLE_COUNT))
		self.emit_call("get_recent_commit_message_examples", "Reading commit message examples", {"count": count})
		try:
			commits = await asyncer.asyncify(get_commit_message_style_examples)(count)
		except Exception:  # noqa: BLE001
			logger.debug("Could not read commit examples", exc_info=True)
			commits = []
		examples = [c.message for c in commits]
		self.emit_result("get_recent_commit_message_examples", examples, f"{len(examples)} example(s)")
		return examples

	async def finish_commit_message(self, commit_message: str, commit_body: str | None = None) -> dict[str, str]:
		"""
		Provide the final commit message. Calling this ends the conversation.

		Args:
		    commit_message: The commit subject line
		    commit_body: Optional body with details of the change

		"""
		result = {"commit_message": commit_message, "commit_body": commit_body or ""}
		self.emit_call(FINISH_TOOL_NAME, "Finishing commit message", result)
		self.emit_finished(commit_message)
		return result

	def tools(self) -> list[Tool]:
		"""The pydantic-ai tools exposed to the model."""
		return [
			self.make_tool(self.list_staged_files, "list_staged_files", "List the files staged for commit."),
			self.make_tool(
				self.read_staged_file,
				"read_staged_file",
				"Read a range of lines from a staged file. Returns an error field if the file cannot be read.",
			),
			self.make_tool(
				self.read_staged_file_diffs,
				"read_staged_file_diffs",
				"Read the staged diff of one or more files in a single call.",
			),
			self.make_tool(
				self.get_recent_commit_message_examples,
				"get_recent_commit_message_examples",
				"Get recent commit subjects of this repository. The final message must match their style.",
			),
			self.make_tool(
				self.finish_commit_message,
				FINISH_TOOL_NAME,
				"Call this when you are ready to provide the final commit message and optional body. "
				"This is the only way to finish.",
			),
		]
