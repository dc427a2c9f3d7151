"""Command for creating GitHub pull requests with generated content."""

import logging
from typing import Annotated

import asyncer
import typer

from .cli_types import ApiKeyOpt, BaseUrlOpt, ModelOpt, ProfileOpt

logger = logging.getLogger(__name__)

# --- Command Argument Annotations (Keep these lightweight) ---

BaseOpt = Annotated[str | None, typer.Option("--base", help="Base branch for the PR (defaults to main/master).")]

HeadOpt = Annotated[str | None, typer.Option("--head", help="Head branch for the PR (defaults to current branch).")]

DraftFlag = Annotated[bool, typer.Option("--draft", help="Create a draft PR.")]

# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the pr command with the CLI app."""

	@app.command(name="pr")
	@asyncer.runnify
	async def pr_command(
		base: BaseOpt = None,
		head: HeadOpt = None,
		draft: DraftFlag = False,
		api_key: ApiKeyOpt = None,
		base_url: BaseUrlOpt = None,
		model: ModelOpt = None,
		profile: ProfileOpt = None,
	) -> None:
		"""Create a GitHub pull request with an AI-generated title and description."""
		await _pr_command_impl(
			base=base,
			head=head,
			draft=draft,
			profile=profile,
			api_key=api_key,
			base_url=base_url,
			model=model,
		)


# --- Implementation Function (Heavy imports deferred here) ---


async def _pr_command_impl(
	base: str | None,
	head: str | None,
	draft: bool,
	profile: str | None,
	**overrides: object,
) -> None:
	"""Actual implementation of the pr command."""
	from commitpilot.cli.common import USER_FACING_ERRORS, console, create_completion_client, load_config
	from commitpilot.git.pr_generator.command import PRCommand
	from commitpilot.git.pr_generator.generator import PRContentGenerator
	from commitpilot.git.utils import assert_git_repo
	from commitpilot.utils.cli_utils import exit_with_error, handle_keyboard_interrupt

	try:
		assert_git_repo()
		config = load_config(profile, **overrides)
		generator = PRContentGenerator(create_completion_client(config), locale=config.locale)

		pull_request = await PRCommand(generator).run(base=base, head=head, draft=draft)
		if pull_request is None:
			console.print("[yellow]PR creation cancelled[/yellow]")
			return

		number = f"#{pull_request.number}" if pull_request.number is not None else ""
		console.print(f"[green]✔ Pull request created successfully![/green]\n\nPR {number}: {pull_request.title}")
		console.print(f"URL: [cyan]{pull_request.url}[/cyan]")

	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except USER_FACING_ERRORS as e:
		logger.debug("PR command failed", exc_info=True)
		exit_with_error(str(e))
