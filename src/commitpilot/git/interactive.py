"""Interactive review of proposed commit messages."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import questionary
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from commitpilot.git.commit_generator.utils import CommitDraft, build_full_message, parse_edited_message
from commitpilot.llm.errors import GenerationFailure

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_REVIEW_ITERATIONS = 10
TOO_MANY_REVISIONS = "Too many revisions requested, commit cancelled."


class ReviewAction(str, Enum):
	"""Choices offered for a proposed commit message."""

	ACCEPT = "accept"
	REVISE = "revise"
	EDIT = "edit"
	CANCEL = "cancel"


ACTION_LABELS = {
	ReviewAction.ACCEPT: "Accept and commit",
	ReviewAction.REVISE: "Revise with a prompt",
	ReviewAction.EDIT: "Edit in $EDITOR",
	ReviewAction.CANCEL: "Cancel",
}


@dataclass(frozen=True)
class ReviewOutcome:
	"""Terminal state of a review: accepted with a draft, or cancelled."""

	accepted: bool
	draft: CommitDraft | None = None
	reason: str = ""


class ReviewPrompter(Protocol):
	"""User interaction needed by the review loop."""

	def show_draft(self, draft: CommitDraft, title: str = "Proposed commit message") -> None: ...

	async def choose_action(self, draft: CommitDraft) -> ReviewAction | None: ...

	async def ask_revision(self) -> str | None: ...

	def show_info(self, message: str) -> None: ...

	def show_error(self, message: str) -> None: ...


class ReviewUI:
	"""Terminal UI for the review loop built on questionary and rich."""

	def __init__(self, console: Console | None = None) -> None:
		self.console = console or Console()

	def show_draft(self, draft: CommitDraft, title: str = "Proposed commit message") -> None:
		"""Render a draft in a panel."""
		content = Text(draft.message, style="bold cyan")
		if draft.body:
			content.append("\n\n")
			content.append(draft.body)
		self.console.print(Panel(content, title=title, border_style="cyan", expand=False))

	async def choose_action(self, draft: CommitDraft) -> ReviewAction | None:  # noqa: ARG002
		"""Ask what to do with the draft. None means the prompt was aborted."""
		choices = [questionary.Choice(label, value=action.value) for action, label in ACTION_LABELS.items()]
		answer = await questionary.select("What would you like to do?", choices=choices).ask_async()
		return ReviewAction(answer) if answer else None

	async def ask_revision(self) -> str | None:
		"""Ask for free-text revision instructions."""
		return await questionary.text(
			'Describe how you want to revise the commit message (e.g. "make it more descriptive", "use imperative mood"):'
		).ask_async()

	def show_info(self, message: str) -> None:
		"""Print a neutral status line."""
		self.console.print(f"[yellow]{message}[/yellow]")

	def show_error(self, message: str) -> None:
		"""Print an error line."""
		self.console.print(f"[red]Error:[/red] {message}")


def default_editor() -> str:
	"""$EDITOR, or the platform default."""
	return os.environ.get("EDITOR") or ("notepad" if sys.platform == "win32" else "vi")


def open_in_editor(initial: str, editor: str | None = None) -> str | None:
	"""
	Let the user edit text in an external editor.

	Blocks until the editor exits. The temporary file is removed on every
	exit path.

	Args:
	    initial: Text the file is seeded with
	    editor: Editor command, defaults to default_editor()

	Returns:
	    The edited text, or None if the editor could not run or the file
	    could not be read

	"""
	command = shlex.split(editor or default_editor())
	tmp_file = Path(tempfile.gettempdir()) / f"commitpilot-msg-{int(time.time() * 1000)}.txt"
	try:
		tmp_file.write_text(initial, encoding="utf-8")
		try:
			result = subprocess.run([*command, str(tmp_file)], check=False)  # noqa: S603
		except OSError as e:
			logger.warning("Failed to launch editor %s: %s", command[0] if command else "", e)
			return None
		if result.returncode != 0:
			logger.warning("Editor exited with status %d", result.returncode)
			return None
		return tmp_file.read_text(encoding="utf-8")
	except OSError as e:
		logger.warning("Could not read edited commit message: %s", e)
		return None
	finally:
		tmp_file.unlink(missing_ok=True)


class ReviewLoop:
	"""
	Drive one draft from proposal to acceptance or cancellation.

	Only ACCEPT and CANCEL are terminal. A failed edit, an empty revision
	request and a failed revision all leave the current draft in place.
	After max_iterations rounds the loop cancels.

	"""

	def __init__(
		self,
		reviser: Callable[[CommitDraft, str], Awaitable[CommitDraft]],
		prompter: ReviewPrompter | None = None,
		editor: Callable[[str], str | None] = open_in_editor,
		max_iterations: int = MAX_REVIEW_ITERATIONS,
	) -> None:
		"""
		Initialize the loop.

		Args:
		    reviser: Coroutine producing a new draft from the current one and the user's request
		    prompter: User interaction, defaults to ReviewUI
		    editor: Function that edits text and returns None on failure
		    max_iterations: Maximum number of rounds before the loop cancels

		"""
		self.reviser = reviser
		self.prompter = prompter or ReviewUI()
		self.editor = editor
		self.max_iterations = max_iterations

	async def run(self, draft: CommitDraft) -> ReviewOutcome:
		"""Review a draft until it is accepted or cancelled."""
		current = draft
		for iteration in range(self.max_iterations):
			logger.debug("Review round %d", iteration + 1)
			self.prompter.show_draft(current)
			action = await self.prompter.choose_action(current)

			if action is ReviewAction.ACCEPT:
				return ReviewOutcome(accepted=True, draft=current)
			if action is None or action is ReviewAction.CANCEL:
				self.prompter.show_info("Commit cancelled")
				return ReviewOutcome(accepted=False, reason="cancelled")
			if action is ReviewAction.EDIT:
				current = self._edit(current)
			elif action is ReviewAction.REVISE:
				current = await self._revise(current)

		self.prompter.show_info(TOO_MANY_REVISIONS)
		return ReviewOutcome(accepted=False, reason=TOO_MANY_REVISIONS)

	def _edit(self, current: CommitDraft) -> CommitDraft:
		edited = self.editor(build_full_message(current.message, current.body))
		if edited is None:
			self.prompter.show_error("Editing failed, keeping the current message.")
			return current
		parsed = parse_edited_message(edited)
		if not parsed.message:
			self.prompter.show_error("The edited message is empty, keeping the current message.")
			return current
		return parsed

	async def _revise(self, current: CommitDraft) -> CommitDraft:
		request = await self.prompter.ask_revision()
		if not request or not request.strip():
			return current
		try:
			revised = await self.reviser(current, request.strip())
		except GenerationFailure as e:
			self.prompter.show_error(str(e))
			return current
		self.prompter.show_info("Revision complete")
		return revised
