"""Command-line interface package for CommitPilot."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from commitpilot import __version__
from commitpilot.utils.log_setup import default_log_file_path, setup_logging

from .agent_cmd import register_command as register_agent_command
from .commit_cmd import register_command as register_commit_command
from .commit_cmd import run_default_commit
from .config_cmd import register_command as register_config_command
from .hook_cmd import register_command as register_hook_command
from .ignore_cmd import register_command as register_ignore_command
from .pr_cmd import register_command as register_pr_command
from .version_cmd import register_command as register_version_command

logger = logging.getLogger(__name__)

# Load environment variables, .env.local taking precedence over .env
for env_file in (Path(".env.local"), Path(".env")):
	if env_file.exists():
		load_dotenv(dotenv_path=env_file)
		logger.debug("Loaded environment variables from %s", env_file)
		break

# Determine the invoked command name for help message customization
invoked_command = Path(sys.argv[0]).name
if invoked_command == "cpilot":
	alias_note = "\n\nNote: 'cpilot' is an alias for 'commitpilot'."
elif invoked_command == "commitpilot":
	alias_note = "\n\nNote: You can also use 'cpilot' as a shorter alias."
else:
	alias_note = ""

app = typer.Typer(
	help=f"CommitPilot - AI-assisted commits and pull requests\n\nVersion: {__version__}{alias_note}",
	context_settings={"help_option_names": ["-h", "--help"]},
)

# --- Global Options Callback ---


def _version_callback(value: bool) -> None:
	"""Callback for --version option."""
	if value:
		typer.echo(f"CommitPilot version: {__version__}")
		raise typer.Exit


@app.callback(invoke_without_command=True)
def global_options(
	ctx: typer.Context,
	is_verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
	is_output_log: Annotated[
		bool,
		typer.Option(
			"--save-log",
			help="Enable logging to a file. Logs to logs/commitpilot_{datetime}.log.",
		),
	] = False,
	_version: Annotated[
		bool | None,
		typer.Option("--version", help="Show version and exit.", callback=_version_callback, is_eager=True),
	] = None,
) -> None:
	"""Global CLI options and logging setup."""
	ctx.meta["is_verbose"] = is_verbose
	ctx.meta["is_output_log"] = is_output_log

	log_file_path = default_log_file_path() if is_output_log else None
	setup_logging(is_verbose=is_verbose, log_file_path=log_file_path)

	# Bare `commitpilot` runs the commit flow with profile settings
	if ctx.invoked_subcommand is None:
		run_default_commit()


# --- Register commands using lazy-loading pattern ---

register_commit_command(app)
register_agent_command(app)
register_pr_command(app)
register_ignore_command(app)
register_config_command(app)
register_hook_command(app)
register_version_command(app)


# --- Main Entry Point ---
def main() -> int:
	"""Run the CLI application."""
	return app()


if __name__ == "__main__":
	sys.exit(main())
