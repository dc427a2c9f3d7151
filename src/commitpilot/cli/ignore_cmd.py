"""Commands for managing the global ignore patterns."""

import logging
from collections.abc import Callable
from typing import Annotated

import typer

logger = logging.getLogger(__name__)

PatternArg = Annotated[str, typer.Argument(help="Gitignore-style pattern.")]

FileArg = Annotated[str, typer.Argument(help="File path to test, relative to the repository root.")]


def register_command(app: typer.Typer) -> None:
	"""Register the ignore command group with the CLI app."""
	ignore_app = typer.Typer(help="Manage global ignore patterns for files to exclude from commit analysis.")

	@ignore_app.command(name="list")
	def list_command() -> None:
		"""List global ignore patterns."""
		_run(_list_patterns)

	@ignore_app.command(name="add")
	def add_command(pattern: PatternArg) -> None:
		"""Add a global ignore pattern."""
		_run(_add_pattern, pattern)

	@ignore_app.command(name="remove")
	def remove_command(pattern: PatternArg) -> None:
		"""Remove a global ignore pattern."""
		_run(_remove_pattern, pattern)

	@ignore_app.command(name="test")
	def test_command(file: FileArg) -> None:
		"""Test whether a file would be ignored by the global ignore patterns."""
		_run(_test_file, file)

	app.add_typer(ignore_app, name="ignore")


def _run(action: Callable[..., None], *args: str) -> None:
	from commitpilot.config import ConfigError
	from commitpilot.utils.cli_utils import exit_with_error

	try:
		action(*args)
	except ConfigError as e:
		logger.debug("Ignore command failed", exc_info=True)
		exit_with_error(str(e))


def _list_patterns() -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigLoader

	patterns = ConfigLoader.get_instance().get.global_ignore
	if not patterns:
		console.print("No global ignore patterns configured.")
		return
	console.print("Global ignore patterns:")
	for index, pattern in enumerate(patterns, start=1):
		console.print(f"  {index}. {pattern}", markup=False)


def _add_pattern(pattern: str) -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigLoader

	loader = ConfigLoader.get_instance()
	patterns = list(loader.get.global_ignore)
	if pattern in patterns:
		console.print(f'Pattern "{pattern}" is already in the ignore list.', markup=False)
		return
	loader.set_global_ignore([*patterns, pattern])
	loader.save()
	console.print(f"✅ Added ignore pattern: {pattern}", markup=False)


def _remove_pattern(pattern: str) -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigLoader

	loader = ConfigLoader.get_instance()
	patterns = list(loader.get.global_ignore)
	if pattern not in patterns:
		console.print(f'Pattern "{pattern}" not found in the ignore list.', markup=False)
		return
	loader.set_global_ignore([p for p in patterns if p != pattern])
	loader.save()
	console.print(f"✅ Removed ignore pattern: {pattern}", markup=False)


def _test_file(file_path: str) -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigLoader
	from commitpilot.utils.ignore import is_ignored, matching_patterns

	patterns = ConfigLoader.get_instance().get.global_ignore
	if not patterns:
		console.print("No global ignore patterns configured.")
		console.print(f'"{file_path}" would NOT be ignored.', markup=False)
		return

	if is_ignored(file_path, patterns):
		console.print(f'"{file_path}" would be IGNORED.', markup=False)
		matches = matching_patterns(file_path, patterns)
		if matches:
			console.print(f"   Matched by pattern(s): {', '.join(matches)}", markup=False)
	else:
		console.print(f'"{file_path}" would NOT be ignored.', markup=False)
