"""Commands for reading and writing profile settings."""

import logging
from typing import Annotated

import typer

logger = logging.getLogger(__name__)

KeyArg = Annotated[str, typer.Argument(help="Profile setting, e.g. model, locale, max_length.")]

ValueArg = Annotated[str, typer.Argument(help="New value. Lists such as exclude take comma-separated globs.")]

ProfileNameOpt = Annotated[str, typer.Option("--profile", "-p", help="Profile to change.")]

SECRET_KEYS = frozenset({"api_key"})


def register_command(app: typer.Typer) -> None:
	"""Register the config command group with the CLI app."""
	config_app = typer.Typer(help="Manage configuration properties.")

	@config_app.command(name="set")
	def set_command(key: KeyArg, value: ValueArg, profile: ProfileNameOpt = "default") -> None:
		"""Set a configuration property in a profile."""
		_set_value(profile, key, value)

	@config_app.command(name="get")
	def get_command(key: KeyArg, profile: ProfileNameOpt = "default") -> None:
		"""Print a configuration property of a profile."""
		_get_value(profile, key)

	app.add_typer(config_app, name="config")


def _set_value(profile: str, key: str, value: str) -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigError, ConfigLoader
	from commitpilot.utils.cli_utils import exit_with_error

	loader = ConfigLoader.get_instance()
	try:
		loader.set_profile_value(profile, key, value)
		path = loader.save()
	except ConfigError as e:
		logger.debug("Could not set %s", key, exc_info=True)
		exit_with_error(str(e))
		return
	shown = "********" if key in SECRET_KEYS else value
	console.print(f'Configuration property "{key}" set to "{shown}" in profile "{profile}".', markup=False)
	logger.debug("Configuration written to %s", path)


def _get_value(profile: str, key: str) -> None:
	from commitpilot.cli.common import console
	from commitpilot.config import ConfigLoader
	from commitpilot.config.config_schema import PROFILE_KEYS
	from commitpilot.utils.cli_utils import exit_with_error

	if key not in PROFILE_KEYS:
		exit_with_error(f"Unknown configuration key: {key}. Valid keys: {', '.join(sorted(PROFILE_KEYS))}")
	stored = ConfigLoader.get_instance().get.profiles.get(profile)
	if stored is None:
		exit_with_error(f'Profile "{profile}" not found.')
		return
	value = getattr(stored, key)
	if key in SECRET_KEYS and value:
		value = f"{value[:4]}…" if len(value) > 8 else "********"  # noqa: PLR2004
	console.print(f"{key} = {value}", markup=False)
