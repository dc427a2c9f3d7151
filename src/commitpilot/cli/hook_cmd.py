"""Command run by git's prepare-commit-msg hook."""

import logging
from pathlib import Path
from typing import Annotated

import asyncer
import typer

from .cli_types import ProfileOpt

logger = logging.getLogger(__name__)

# --- Command Argument Annotations (Keep these lightweight) ---

MessageFileArg = Annotated[
	Path,
	typer.Argument(help="File holding the commit message, passed by git.", dir_okay=False),
]

SourceArg = Annotated[
	str | None,
	typer.Argument(help="Source of the message passed by git (message, template, merge, squash or commit)."),
]

ShaArg = Annotated[str | None, typer.Argument(help="Commit passed by git for amends.")]

# Messages from these sources were written by the user or by git and are kept
KEEP_SOURCES = frozenset({"message", "merge", "squash", "commit"})

# --- Registration Function ---


def register_command(app: typer.Typer) -> None:
	"""Register the prepare-commit-msg command with the CLI app."""

	@app.command(name="prepare-commit-msg")
	@asyncer.runnify
	async def prepare_commit_msg_command(
		message_file: MessageFileArg,
		source: SourceArg = None,
		commit_sha: ShaArg = None,  # noqa: ARG001
		profile: ProfileOpt = None,
	) -> None:
		"""
		Write an agent-generated message into git's commit message file.

		Install it as .git/hooks/prepare-commit-msg with:

		    commitpilot prepare-commit-msg "$@"

		Failures are logged and never stop the commit.

		"""
		await _prepare_commit_msg_impl(message_file=message_file, source=source, profile=profile)


# --- Implementation Function (Heavy imports deferred here) ---


async def _prepare_commit_msg_impl(message_file: Path, source: str | None, profile: str | None) -> None:
	"""Actual implementation of the prepare-commit-msg command."""
	from commitpilot.cli.common import create_completion_client, load_config
	from commitpilot.git.commit_generator.agent import AgenticCommitGenerator
	from commitpilot.git.utils import assert_git_repo, get_staged_diff

	if source in KEEP_SOURCES:
		logger.debug("Keeping the %s commit message", source)
		return

	try:
		assert_git_repo()
		config = load_config(profile)
		staged = get_staged_diff(config.diff_excludes, config.context_lines)
		if staged is None:
			logger.debug("Nothing staged, leaving the commit message file alone")
			return

		generator = AgenticCommitGenerator(
			create_completion_client(config),
			staged.files,
			locale=config.locale,
			max_length=config.max_length,
			commit_type=config.commit_type,
			context_lines=config.context_lines,
		)
		draft = await generator.generate()
		message_file.write_text(draft.full_message, encoding="utf-8")
		logger.debug("Wrote commit message to %s", message_file)
	except Exception as e:  # noqa: BLE001
		# The hook must never block the commit
		logger.debug("prepare-commit-msg failed", exc_info=True)
		logger.error("commitpilot prepare-commit-msg failed: %s", e)  # noqa: TRY400
