"""Interactive pull request creation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import asyncer
import questionary
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from commitpilot.git.utils import (
	GitError,
	branch_exists,
	fetch_from_remote,
	get_branch_diff,
	get_branch_tracking_status,
	get_commit_hash,
	get_current_branch,
	get_default_branch,
)
from commitpilot.llm.errors import LLMError

from .gh import GitHubCLI, PRCreationError, PullRequest
from .generator import PRContent, basic_pr_content

if TYPE_CHECKING:
	from .generator import PRContentGenerator

logger = logging.getLogger(__name__)

LARGE_DIFF_KB = 1024
FILE_PREVIEW_COUNT = 5


class PRPrompter(Protocol):
	"""User interaction needed while creating a pull request."""

	async def confirm(self, message: str, default: bool = True) -> bool | None: ...

	async def edit_text(self, message: str, default: str, multiline: bool = False) -> str | None: ...

	def note(self, message: str) -> None: ...

	def show_content(self, content: PRContent) -> None: ...


class PRUI:
	"""Terminal UI for PR creation built on questionary and rich."""

	def __init__(self, console: Console | None = None) -> None:
		self.console = console or Console()

	async def confirm(self, message: str, default: bool = True) -> bool | None:
		"""Yes/no question. None means the prompt was aborted."""
		return await questionary.confirm(message, default=default).ask_async()

	async def edit_text(self, message: str, default: str, multiline: bool = False) -> str | None:
		"""Free-text input prefilled with the current value."""
		return await questionary.text(message, default=default, multiline=multiline).ask_async()

	def note(self, message: str) -> None:
		"""Print an informational block."""
		self.console.print(message)

	def show_content(self, content: PRContent) -> None:
		"""Render the title and markdown description."""
		self.console.print(Panel(Markdown(content.description), title=content.title, border_style="cyan"))


def _file_summary(files: list[str]) -> str:
	plural = "s" if len(files) > 1 else ""
	lines = [f"Found {len(files)} changed file{plural}:"]
	lines.extend(f"     {f}" for f in files[:FILE_PREVIEW_COUNT])
	if len(files) > FILE_PREVIEW_COUNT:
		lines.append(f"     ... and {len(files) - FILE_PREVIEW_COUNT} more")
	return "\n".join(lines)


class PRCommand:
	"""
	Walks through PR creation from the current branch.

	Validation failures raise PRCreationError or GitError. A user who
	declines one of the confirmations ends the run with None.

	"""

	def __init__(
		self,
		generator: PRContentGenerator,
		gh: GitHubCLI | None = None,
		prompter: PRPrompter | None = None,
	) -> None:
		self.generator = generator
		self.gh = gh or GitHubCLI()
		self.prompter = prompter or PRUI()

	def _validate_github(self) -> None:
		self.gh.validate_cli()
		try:
			self.gh.get_repository()
		except PRCreationError as e:
			msg = (
				"This repository is not connected to GitHub or the GitHub CLI cannot access it.\n"
				"Make sure it has a GitHub remote (origin), the repository exists on GitHub "
				"and you have access to it.\n"
				"You can check your remotes with: git remote -v"
			)
			raise PRCreationError(msg) from e
		if not self.gh.is_authenticated():
			msg = "GitHub CLI is not authenticated. Please run: gh auth login"
			raise PRCreationError(msg)

	def _resolve_branches(self, base: str | None, head: str | None) -> tuple[str, str]:
		base_branch = base or get_default_branch()
		head_branch = head or get_current_branch()
		if base_branch == head_branch:
			msg = (
				f"Base and head branches cannot be the same ({base_branch}).\n"
				f"Pass a different branch with --head, or switch to a feature branch first."
			)
			raise PRCreationError(msg)
		for branch in (base_branch, head_branch):
			if not branch_exists(branch):
				msg = f"Branch '{branch}' does not exist locally or on origin"
				raise PRCreationError(msg)
		return base_branch, head_branch

	async def _check_sync(self, head_branch: str) -> bool:
		"""Warn about an out-of-date head branch. Returns False if the user stops here."""
		try:
			status = get_branch_tracking_status(head_branch)
		except GitError as e:
			self.prompter.note(
				f"[yellow]Could not check branch synchronization status: {e}[/yellow]\n"
				"Continuing with PR creation, but you may want to verify your branch status manually."
			)
			return True

		if not status.has_remote:
			self.prompter.note(
				f"Branch '{head_branch}' has no remote tracking branch.\n"
				f"Make sure to push your branch before creating the PR: git push -u origin {head_branch}"
			)
			return True

		if status.behind > 0:
			self.prompter.note(
				f"[yellow]Your head branch '{head_branch}' is {status.behind} commit(s) behind its remote.[/yellow]\n"
				f"This may cause issues with the PR. Consider running: git pull origin {head_branch}"
			)
			if await self.prompter.confirm("Would you like to fetch the latest changes first?"):
				try:
					await asyncer.asyncify(fetch_from_remote)()
				except GitError as e:
					self.prompter.note(f"[yellow]Failed to fetch changes: {e}[/yellow]")
				else:
					self.prompter.note(
						"Fetched latest changes. You may still need to merge or rebase:\n"
						f"To merge: git merge origin/{head_branch}\n"
						f"To rebase: git rebase origin/{head_branch}"
					)
			return bool(await self.prompter.confirm("Continue with PR creation anyway?"))

		if status.ahead > 0:
			self.prompter.note(
				f"Branch '{head_branch}' has {status.ahead} unpushed commit(s). "
				f"Push them before creating the PR: git push origin {head_branch}"
			)
		return True

	def _explain_empty_diff(self, base_branch: str, head_branch: str) -> PRCreationError:
		try:
			same_commit = get_commit_hash(base_branch) == get_commit_hash(head_branch)
		except GitError:
			same_commit = False
		if same_commit:
			msg = (
				f"No changes found between '{base_branch}' and '{head_branch}' "
				"because they point to the same commit.\n"
				f"Commit some changes to '{head_branch}' or choose a head branch that has diverged."
			)
		else:
			msg = (
				f"No changes found between '{base_branch}' and '{head_branch}'.\n"
				f"You can check the difference manually with: git diff {base_branch}...{head_branch}"
			)
		return PRCreationError(msg)

	async def _content(self, diff: str, files: list[str], base_branch: str, head_branch: str) -> PRContent | None:
		try:
			return await self.generator.generate(diff, files, base_branch, head_branch)
		except LLMError as e:
			logger.debug("PR content generation failed", exc_info=True)
			self.prompter.note(
				f"[yellow]Failed to generate AI content: {e}[/yellow]\nYou can still create the PR with basic content."
			)
		if not await self.prompter.confirm("Continue with basic PR content?"):
			return None
		return basic_pr_content(base_branch, head_branch, files)

	async def _maybe_edit(self, content: PRContent) -> PRContent:
		if not await self.prompter.confirm("Would you like to edit the PR title or description?", default=False):
			return content
		title = await self.prompter.edit_text("Edit PR title:", content.title)
		description = await self.prompter.edit_text("Edit PR description:", content.description, multiline=True)
		return PRContent(
			title=title if title and title.strip() else content.title,
			description=description if description and description.strip() else content.description,
		)

	async def run(self, base: str | None = None, head: str | None = None, draft: bool = False) -> PullRequest | None:
		"""
		Create a pull request from head into base.

		Args:
		    base: Target branch, defaults to the repository's default branch
		    head: Source branch, defaults to the current branch
		    draft: Open the PR as a draft

		Returns:
		    The created PR, or None if the user cancelled

		Raises:
		    PRCreationError: If GitHub or the branches are not usable
		    GitError: If a git command fails

		"""
		self._validate_github()
		base_branch, head_branch = self._resolve_branches(base, head)
		self.prompter.note(f"Base branch: {base_branch}\nHead branch: {head_branch}\nDraft PR: {'Yes' if draft else 'No'}")

		if not await self._check_sync(head_branch):
			return None

		try:
			branch_diff = await asyncer.asyncify(get_branch_diff)(base_branch, head_branch)
		except GitError as e:
			msg = (
				f"Failed to compare branches '{base_branch}' and '{head_branch}': {e}\n"
				"Check that both branches exist (git branch -a) and fetch the latest changes (git fetch origin)."
			)
			raise PRCreationError(msg) from e
		if not branch_diff.files:
			raise self._explain_empty_diff(base_branch, head_branch)

		size_kb = len(branch_diff.diff.encode("utf-8")) / 1024
		if size_kb > LARGE_DIFF_KB:
			self.prompter.note(
				f"[yellow]Large changeset detected ({round(size_kb)}KB).[/yellow]\n"
				"This may affect AI analysis quality. Consider breaking this into smaller, focused PRs."
			)
			if not await self.prompter.confirm("Continue with large changeset?"):
				return None
		self.prompter.note(_file_summary(branch_diff.files))

		content = await self._content(branch_diff.diff, branch_diff.files, base_branch, head_branch)
		if content is None:
			return None
		self.prompter.show_content(content)
		content = await self._maybe_edit(content)

		kind = "draft " if draft else ""
		if not await self.prompter.confirm(f"Create {kind}PR from '{head_branch}' to '{base_branch}'?"):
			return None

		return await asyncer.asyncify(self.gh.create_pull_request)(
			content.title, content.description, base_branch, head_branch, draft
		)
