"""Configuration for CommitPilot."""

from .config_loader import (
	ConfigError,
	ConfigFileNotFoundError,
	ConfigLoader,
	ConfigParsingError,
	ProfileNotFoundError,
	ResolvedConfig,
)
from .config_schema import DEFAULT_PROFILE, AppConfigSchema, ProfileSchema

__all__ = [
	"DEFAULT_PROFILE",
	"AppConfigSchema",
	"ConfigError",
	"ConfigFileNotFoundError",
	"ConfigLoader",
	"ConfigParsingError",
	"ProfileNotFoundError",
	"ProfileSchema",
	"ResolvedConfig",
]
