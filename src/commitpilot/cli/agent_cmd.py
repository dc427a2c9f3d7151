"""Command for agentic commit generation and commit splitting."""

import logging
from typing import TYPE_CHECKING, Annotated

import asyncer
import typer

from .cli_types import ApiKeyOpt, BaseUrlOpt, ExcludeOpt, ModelOpt, ProfileOpt, StageAllFlag

if TYPE_CHECKING:
	from commitpilot.config import ResolvedConfig
	from commitpilot.git.commit_splitter.negotiator import SplitPlan
	from commitpilot.git.commit_splitter.schemas import CommitGroup
	from commitpilot.llm.client import CompletionClient

logger = logging.getLogger(__name__)

# --- Command Argument Annotations (Keep these lightweight) ---

SplitFlag = Annotated[
	bool,
	typer.Option("--split", help="Group the uncommitted changes into several logical commits."),
]

# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the agent command with the CLI app."""

	@app.command(name="agent")
	@asyncer.runnify
	async def agent_command(
		api_key: ApiKeyOpt = None,
		base_url: BaseUrlOpt = None,
		exclude: ExcludeOpt = None,
		model: ModelOpt = None,
		profile: ProfileOpt = None,
		split: SplitFlag = False,
		stage_all: StageAllFlag = False,
	) -> None:
		"""
		Let an AI agent inspect the repository and write the commit message.

		With --split the agent instead proposes several commits, each made of
		a subset of the uncommitted hunks.

		"""
		await _agent_command_impl(
			profile=profile,
			split=split,
			stage_all=stage_all,
			api_key=api_key,
			base_url=base_url,
			model=model,
			exclude=exclude,
		)


# --- Implementation Function (Heavy imports deferred here) ---


async def _agent_command_impl(profile: str | None, split: bool, stage_all: bool, **overrides: object) -> None:
	"""Actual implementation of the agent command."""
	from commitpilot.cli.common import USER_FACING_ERRORS, create_completion_client, load_config, show_profile
	from commitpilot.git.utils import assert_git_repo
	from commitpilot.git.utils import stage_all as stage_all_files
	from commitpilot.utils.cli_utils import exit_with_error, handle_keyboard_interrupt, loading_spinner

	try:
		assert_git_repo()
		config = load_config(profile, **overrides)
		client = create_completion_client(config)
		show_profile(config)

		if stage_all:
			with loading_spinner("Staging all files..."):
				stage_all_files()

		if split:
			await _run_split_mode(client, config, include_untracked=stage_all)
		else:
			await _run_agent_mode(client, config)

	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except USER_FACING_ERRORS as e:
		logger.debug("Agent command failed", exc_info=True)
		exit_with_error(str(e))


async def _run_agent_mode(client: "CompletionClient", config: "ResolvedConfig") -> None:
	from commitpilot.cli.common import console, show_staged_files
	from commitpilot.git.commit_generator.agent import AgenticCommitGenerator
	from commitpilot.git.interactive import ReviewLoop
	from commitpilot.git.utils import NoStagedChangesError, commit_changes, get_detected_message, get_staged_diff
	from commitpilot.utils.cli_utils import print_tool_event

	staged = get_staged_diff(config.diff_excludes, config.context_lines)
	if staged is None:
		msg = (
			"No staged changes found. Stage your changes manually, "
			"or automatically stage all changes with the `--stage-all` flag."
		)
		raise NoStagedChangesError(msg)
	show_staged_files(get_detected_message(staged.files), staged.files)

	generator = AgenticCommitGenerator(
		client,
		staged.files,
		locale=config.locale,
		max_length=config.max_length,
		commit_type=config.commit_type,
		context_lines=config.context_lines,
		on_event=print_tool_event,
	)
	console.print("[cyan]AI agent is analyzing the repository...[/cyan]")
	draft = await generator.generate()

	outcome = await ReviewLoop(generator.revise).run(draft)
	if not outcome.accepted or outcome.draft is None:
		return

	commit_changes(outcome.draft.full_message)
	console.print("[green]✔ Successfully committed with AI agent[/green]")


async def _run_split_mode(client: "CompletionClient", config: "ResolvedConfig", include_untracked: bool) -> None:
	import questionary

	from commitpilot.cli.common import console
	from commitpilot.git.commit_splitter.apply import apply_commit_groups
	from commitpilot.git.commit_splitter.negotiator import CommitSplitNegotiator
	from commitpilot.git.utils import get_status
	from commitpilot.utils.cli_utils import exit_with_error, print_tool_event, show_warning

	if not include_untracked:
		untracked = get_status().untracked
		if untracked:
			show_warning(f"{len(untracked)} untracked file(s) are left out. Use --stage-all to include them.")

	negotiator = CommitSplitNegotiator(
		client,
		exclude=config.diff_excludes,
		locale=config.locale,
		max_length=config.max_length,
		commit_type=config.commit_type,
		context_lines=config.context_lines,
		on_event=print_tool_event,
	)
	console.print("[cyan]AI agent is grouping your changes...[/cyan]")
	plan = await negotiator.propose()

	_show_plan(plan)
	count = len(plan.groups)
	confirmed = await questionary.confirm(f"Create {count} commit{'s' if count > 1 else ''}?").ask_async()
	if not confirmed:
		console.print("[yellow]Commit splitting cancelled[/yellow]")
		return

	def on_progress(index: int, group: "CommitGroup") -> None:
		console.print(f"[dim]Committing {index}/{count}: {group.title}[/dim]")

	result = apply_commit_groups(plan.groups, plan.hunks, on_progress=on_progress)
	if not result.succeeded:
		failed = result.failed_group.title if result.failed_group else "unknown"
		exit_with_error(
			f"Failed to commit group '{failed}': {result.error}\n"
			f"{len(result.committed)} commit(s) were created before the failure and were kept."
		)
	created = len(result.committed)
	console.print(
		f"[green]✔ Successfully created {created} commit{'s' if created > 1 else ''} using AI-guided splitting[/green]"
	)


def _show_plan(plan: "SplitPlan") -> None:
	"""Render the proposed commit groups."""
	from rich.panel import Panel
	from rich.text import Text

	from commitpilot.cli.common import console

	proposal = plan.proposal
	summaries = {h.hunk_id: h.summary for h in plan.hunks}
	if proposal.explanation:
		console.print(f"\n{proposal.explanation}\n")
	for index, group in enumerate(proposal.groups, start=1):
		content = Text(group.title, style="bold cyan")
		if group.description:
			content.append(f"\n\n{group.description}")
		content.append("\n")
		for ref in group.hunks:
			content.append(f"\n  • {ref.file} ", style="dim")
			content.append(ref.summary or summaries.get(ref.hunk_id, ""))
		console.print(Panel(content, title=f"Commit {index} of {len(proposal.groups)}", border_style="cyan"))
