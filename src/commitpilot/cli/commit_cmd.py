"""Command for generating a commit message for the staged changes."""

import logging

import asyncer
import typer

from .cli_types import (
	ApiKeyOpt,
	BaseUrlOpt,
	ContextLinesOpt,
	ExcludeOpt,
	GenerateOpt,
	LocaleOpt,
	MaxLengthOpt,
	ModelOpt,
	ProfileOpt,
	StageAllFlag,
	TypeOpt,
)

logger = logging.getLogger(__name__)


# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the commit command with the CLI app."""

	@app.command(name="commit")
	@asyncer.runnify
	async def commit_command(
		api_key: ApiKeyOpt = None,
		base_url: BaseUrlOpt = None,
		model: ModelOpt = None,
		profile: ProfileOpt = None,
		exclude: ExcludeOpt = None,
		max_length: MaxLengthOpt = None,
		context_lines: ContextLinesOpt = None,
		generate: GenerateOpt = None,
		commit_type: TypeOpt = None,
		locale: LocaleOpt = None,
		stage_all: StageAllFlag = False,
	) -> None:
		"""Generate a commit message for the staged changes and review it before committing."""
		await _commit_command_impl(
			profile=profile,
			stage_all=stage_all,
			api_key=api_key,
			base_url=base_url,
			model=model,
			exclude=exclude,
			max_length=max_length,
			context_lines=context_lines,
			generate=generate,
			type=commit_type,
			locale=locale,
		)


# --- Implementation Function (Heavy imports deferred here) ---


async def _commit_command_impl(profile: str | None, stage_all: bool, **overrides: object) -> None:
	"""Actual implementation of the commit command."""
	from commitpilot.cli.common import (
		USER_FACING_ERRORS,
		console,
		create_completion_client,
		load_config,
		show_staged_files,
	)
	from commitpilot.git.commit_generator.generator import CommitMessageGenerator
	from commitpilot.git.commit_generator.utils import CommitDraft
	from commitpilot.git.interactive import ReviewLoop
	from commitpilot.git.utils import (
		NoStagedChangesError,
		assert_git_repo,
		commit_changes,
		get_detected_message,
		get_staged_diff,
	)
	from commitpilot.git.utils import stage_all as stage_all_files
	from commitpilot.utils.cli_utils import exit_with_error, handle_keyboard_interrupt, loading_spinner

	try:
		assert_git_repo()
		config = load_config(profile, **overrides)
		client = create_completion_client(config)

		if stage_all:
			with loading_spinner("Staging all files..."):
				stage_all_files()

		with loading_spinner("Detecting staged files..."):
			staged = get_staged_diff(config.diff_excludes, config.context_lines)
		if staged is None:
			msg = (
				"No staged changes found. Stage your changes manually, "
				"or automatically stage all changes with the `--stage-all` flag."
			)
			raise NoStagedChangesError(msg)
		show_staged_files(get_detected_message(staged.files), staged.files)

		generator = CommitMessageGenerator(
			client,
			locale=config.locale,
			max_length=config.max_length,
			commit_type=config.commit_type,
			generate=config.generate,
		)
		with loading_spinner("The AI is analyzing your changes..."):
			drafts = await generator.generate(staged.diff)

		draft = drafts[0]
		if len(drafts) > 1:
			picked = await _pick_candidate([d.message for d in drafts])
			if picked is None:
				console.print("[yellow]Commit cancelled[/yellow]")
				return
			draft = drafts[picked]

		async def revise(_current: CommitDraft, request: str) -> CommitDraft:
			with loading_spinner("The AI is revising your commit message..."):
				return await generator.revise(staged.diff, request)

		outcome = await ReviewLoop(revise).run(draft)
		if not outcome.accepted or outcome.draft is None:
			return

		commit_changes(outcome.draft.full_message)
		console.print("[green]✔ Successfully committed[/green]")

	except KeyboardInterrupt:
		handle_keyboard_interrupt()
	except USER_FACING_ERRORS as e:
		logger.debug("Commit command failed", exc_info=True)
		exit_with_error(str(e))


async def _pick_candidate(messages: list[str]) -> int | None:
	"""Let the user choose one of several generated subjects."""
	import questionary

	choices = [questionary.Choice(message, value=index) for index, message in enumerate(messages)]
	return await questionary.select("Pick a commit message to use:", choices=choices).ask_async()


def run_default_commit() -> None:
	"""Run the commit flow with profile settings only."""
	asyncer.runnify(_commit_command_impl)(profile=None, stage_all=False)
