"""
Configuration loader for CommitPilot.

This module resolves the configuration file, migrates older layouts, and
merges the active profile with environment and command-line overrides into a
single immutable value.

"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError
from xdg.BaseDirectory import xdg_config_home

from commitpilot.config.config_schema import (
	DEFAULT_PROFILE,
	PROFILE_KEYS,
	AppConfigSchema,
	ProfileSchema,
	migrate_legacy_config,
)

if TYPE_CHECKING:
	from commitpilot.llm.providers import ProviderConfig

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "COMMITPILOT_PROFILE"
LOCAL_CONFIG_NAME = ".commitpilot.yml"
LEGACY_CONFIG_NAME = ".commitpilot.yaml"


class ConfigError(Exception):
	"""Exception raised for configuration errors."""


class ConfigFileNotFoundError(ConfigError):
	"""Exception raised when configuration file is not found."""


class ConfigParsingError(ConfigError):
	"""Exception raised when configuration file cannot be parsed."""


class ProfileNotFoundError(ConfigError):
	"""Exception raised when the requested profile does not exist."""


@dataclass(frozen=True)
class ResolvedConfig:
	"""
	Effective settings for one run.

	Built once at startup and passed to every component that needs it.

	"""

	profile_name: str
	provider: str
	model: str | None
	api_key: str | None = None
	base_url: str | None = None
	context_lines: int = 10
	exclude: tuple[str, ...] = ()
	generate: int = 1
	locale: str = "en"
	max_length: int = 140
	commit_type: str = ""
	global_ignore: tuple[str, ...] = field(default_factory=tuple)

	@property
	def diff_excludes(self) -> list[str]:
		"""Profile excludes plus global ignore patterns, without duplicates."""
		return list(dict.fromkeys([*self.exclude, *self.global_ignore]))

	def provider_config(self) -> ProviderConfig:
		"""
		Build the provider configuration for the completion client.

		Raises:
		    ConfigError: If no model is configured

		"""
		from pydantic import TypeAdapter

		from commitpilot.llm.providers import ProviderConfig

		if not self.model:
			msg = (
				f"No model configured for profile '{self.profile_name}'. "
				"Run `commitpilot config set model <name>` or pass --model."
			)
			raise ConfigError(msg)
		data = {"provider": self.provider, "model": self.model, "api_key": self.api_key, "base_url": self.base_url}
		return TypeAdapter(ProviderConfig).validate_python(data)


class ConfigLoader:
	"""
	Loads and manages configuration for CommitPilot using Pydantic schemas.

	This class handles loading configuration from files, migrating older
	layouts, resolving the active profile, and writing changes back.

	"""

	_instance = None  # For singleton pattern

	@classmethod
	def get_instance(cls, config_file: Path | None = None, reload: bool = False) -> ConfigLoader:
		"""
		Get the singleton instance of ConfigLoader.

		Args:
			config_file: Path to configuration file (optional)
			reload: Whether to reload config even if already loaded

		Returns:
			ConfigLoader: Singleton instance

		"""
		if cls._instance is None or reload:
			cls._instance = cls(config_file)
		return cls._instance

	def __init__(self, config_file: Path | None = None, env: dict[str, str] | None = None) -> None:
		"""
		Initialize the configuration loader.

		Args:
			config_file: Path to configuration file (optional)
			env: Environment mapping, defaults to os.environ

		"""
		self._env = env if env is not None else dict(os.environ)
		self._explicit_file = config_file is not None
		self._resolved_config_file = self._resolve_config_file(config_file)
		self._app_config = self._load_config()

	@staticmethod
	def default_config_path() -> Path:
		"""Location used when no configuration file exists yet."""
		return Path(xdg_config_home) / "commitpilot" / "config.yml"

	def _resolve_config_file(self, config_file: Path | None = None) -> Path | None:
		"""
		Resolve the configuration file path.

		If a config file is specified, use that. Otherwise, look in standard locations:
		1. ./.commitpilot.yml in the current directory
		2. $XDG_CONFIG_HOME/commitpilot/config.yml
		3. ~/.commitpilot.yaml (legacy location)

		Args:
			config_file: Explicitly provided config file path (optional)

		Returns:
			Optional[Path]: Resolved config file path or None if no suitable file found

		"""
		if config_file:
			return config_file.expanduser().resolve()

		local_config = Path(LOCAL_CONFIG_NAME)
		if local_config.exists():
			return local_config

		xdg_config_file = self.default_config_path()
		if xdg_config_file.exists():
			return xdg_config_file

		legacy_config = Path.home() / LEGACY_CONFIG_NAME
		if legacy_config.exists():
			return legacy_config

		return None

	@staticmethod
	def _parse_yaml_file(file_path: Path) -> dict[str, Any]:
		"""
		Parse a YAML file into a dictionary.

		Raises:
			yaml.YAMLError: If the file cannot be parsed as a YAML mapping

		"""
		with file_path.open(encoding="utf-8") as f:
			content = yaml.safe_load(f)
		if content is None:
			return {}
		if not isinstance(content, dict):
			msg = f"File {file_path} does not contain a valid YAML dictionary"
			raise yaml.YAMLError(msg)
		return content

	def _load_config(self) -> AppConfigSchema:
		"""
		Load configuration from file and parse it into AppConfigSchema.

		Raises:
			ConfigFileNotFoundError: If an explicitly given file doesn't exist
			ConfigParsingError: If the file cannot be read or validated

		"""
		path = self._resolved_config_file
		if path is None:
			logger.debug("No configuration file found. Using default configuration.")
			return AppConfigSchema()

		if not path.exists():
			if self._explicit_file:
				msg = f"Configuration file not found: {path}"
				raise ConfigFileNotFoundError(msg)
			return AppConfigSchema()

		try:
			raw = self._parse_yaml_file(path)
		except (OSError, yaml.YAMLError) as e:
			msg = f"Error reading configuration file {path}: {e}"
			logger.exception(msg)
			raise ConfigParsingError(msg) from e

		try:
			config = AppConfigSchema(**migrate_legacy_config(raw))
		except ValidationError as e:
			msg = f"Error parsing configuration file {path}: {e}"
			raise ConfigParsingError(msg) from e
		logger.debug("Loaded configuration from %s", path)
		return config

	@property
	def get(self) -> AppConfigSchema:
		"""
		Get the current application configuration.

		Returns:
			AppConfigSchema: The current configuration
		"""
		return self._app_config

	@property
	def config_path(self) -> Path:
		"""File that save() writes to."""
		return self._resolved_config_file or self.default_config_path()

	def current_profile_name(self, cli_profile: str | None = None) -> str:
		"""Pick the active profile: CLI flag, then environment, then file, then "default"."""
		return cli_profile or self._env.get(PROFILE_ENV_VAR) or self._app_config.current_profile or DEFAULT_PROFILE

	def profile_names(self) -> list[str]:
		"""Names of all configured profiles."""
		return list(self._app_config.profiles)

	def resolve(self, profile: str | None = None, **overrides: Any) -> ResolvedConfig:  # noqa: ANN401
		"""
		Merge the active profile with command-line overrides.

		Overrides that are None are ignored. An "exclude" override is appended
		to the profile's excludes instead of replacing them.

		Args:
			profile: Profile name from the command line
			**overrides: Profile keys given on the command line

		Returns:
			The effective configuration

		Raises:
			ProfileNotFoundError: If a profile was requested explicitly and is missing
			ConfigError: If the merged values are invalid

		"""
		name = self.current_profile_name(profile)
		stored = self._app_config.profiles.get(name)
		if stored is None and (profile or self._app_config.profiles) and name != DEFAULT_PROFILE:
			available = ", ".join(self.profile_names()) or "none"
			msg = f'Profile "{name}" not found. Available profiles: {available}'
			raise ProfileNotFoundError(msg)

		base = stored.model_dump() if stored else {}
		cli_values = {k: v for k, v in overrides.items() if v is not None and k in PROFILE_KEYS}
		cli_exclude = list(cli_values.pop("exclude", []) or [])
		merged = {**base, **cli_values, "exclude": [*base.get("exclude", []), *cli_exclude]}

		try:
			profile_config = ProfileSchema(**merged)
		except ValidationError as e:
			msg = f"Invalid configuration for profile '{name}': {e}"
			raise ConfigError(msg) from e

		return ResolvedConfig(
			profile_name=name,
			provider=profile_config.provider,
			model=profile_config.model,
			api_key=profile_config.api_key,
			base_url=profile_config.base_url,
			context_lines=profile_config.context_lines,
			exclude=tuple(profile_config.exclude),
			generate=profile_config.generate,
			locale=profile_config.locale,
			max_length=profile_config.max_length,
			commit_type=profile_config.type,
			global_ignore=tuple(self._app_config.global_ignore),
		)

	def set_profile_value(self, profile: str, key: str, value: Any) -> None:  # noqa: ANN401
		"""
		Update one key of a profile in memory.

		Raises:
			ConfigError: If the key is unknown or the value invalid

		"""
		if key not in PROFILE_KEYS:
			msg = f"Unknown configuration key: {key}. Valid keys: {', '.join(sorted(PROFILE_KEYS))}"
			raise ConfigError(msg)
		current = self._app_config.profiles.get(profile)
		data = current.model_dump() if current else {}
		data[key] = value
		try:
			updated = ProfileSchema(**data)
		except ValidationError as e:
			msg = f"Invalid value for {key}: {e}"
			raise ConfigError(msg) from e
		self._app_config.profiles[profile] = updated

	def set_global_ignore(self, patterns: list[str]) -> None:
		"""Replace the global ignore patterns in memory."""
		self._app_config.global_ignore = list(patterns)

	def save(self) -> Path:
		"""
		Write the configuration back to disk.

		Returns:
			The path written to

		"""
		path = self.config_path
		data = self._app_config.model_dump(exclude_defaults=False)
		data["profiles"] = {
			name: profile.model_dump(exclude_defaults=True) for name, profile in self._app_config.profiles.items()
		}
		try:
			path.parent.mkdir(parents=True, exist_ok=True)
			with path.open("w", encoding="utf-8") as f:
				yaml.safe_dump(data, f, sort_keys=False)
		except OSError as e:
			msg = f"Could not write configuration file {path}: {e}"
			raise ConfigError(msg) from e
		logger.debug("Saved configuration to %s", path)
		return path
