"""Pydantic schemas for CommitPilot configuration."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROFILE = "default"

ProviderName = Literal["openai", "anthropic", "ollama"]
CommitType = Literal["conventional", ""]


class ProfileSchema(BaseModel):
	"""One named bundle of provider and message settings."""

	model_config = ConfigDict(extra="ignore")

	provider: ProviderName = Field(default="openai", description="Model vendor")
	model: str | None = Field(default=None, description="Model name")
	api_key: str | None = Field(default=None, description="Credential for the provider")
	base_url: str | None = Field(default=None, description="Custom API endpoint")
	context_lines: int = Field(default=10, gt=0, description="Context lines around each diff change")
	exclude: list[str] = Field(default_factory=list, description="Globs left out of the analysed diff")
	generate: int = Field(default=1, ge=1, description="Number of candidate messages")
	locale: str = Field(default="en", description="Two-letter language code for messages")
	max_length: int = Field(default=140, gt=0, description="Maximum subject length")
	type: CommitType = Field(default="", description="Commit format, 'conventional' or plain")

	@field_validator("locale")
	@classmethod
	def _check_locale(cls, value: str) -> str:
		if len(value) != 2 or not value.isalpha():  # noqa: PLR2004
			msg = f"locale must be a two-letter language code, got {value!r}"
			raise ValueError(msg)
		return value.lower()

	@field_validator("exclude", mode="before")
	@classmethod
	def _split_exclude(cls, value: Any) -> Any:  # noqa: ANN401
		if isinstance(value, str):
			return [part.strip() for part in value.split(",") if part.strip()]
		return value if value is not None else []

	@field_validator("type", mode="before")
	@classmethod
	def _none_type(cls, value: Any) -> Any:  # noqa: ANN401
		return "" if value is None else value


PROFILE_KEYS = frozenset(ProfileSchema.model_fields)


class AppConfigSchema(BaseModel):
	"""Whole configuration file."""

	model_config = ConfigDict(extra="ignore")

	profiles: dict[str, ProfileSchema] = Field(default_factory=dict)
	current_profile: str = DEFAULT_PROFILE
	global_ignore: list[str] = Field(default_factory=list)


def migrate_legacy_config(raw: dict[str, Any]) -> dict[str, Any]:
	"""
	Bring an older configuration layout up to date.

	A flat file holding one profile becomes the "default" profile, and a
	global_ignore list stored inside a profile moves to the top level.

	Args:
	    raw: Parsed YAML mapping

	Returns:
	    A mapping in the current layout

	"""
	if not raw:
		return {}

	if "profiles" not in raw:
		profile = {k: v for k, v in raw.items() if k in PROFILE_KEYS}
		if not profile:
			return {}
		migrated: dict[str, Any] = {"profiles": {DEFAULT_PROFILE: profile}, "current_profile": DEFAULT_PROFILE}
		if isinstance(raw.get("global_ignore"), list):
			migrated["global_ignore"] = raw["global_ignore"]
		return migrated

	profiles = raw.get("profiles") or {}
	if not isinstance(profiles, dict):
		return {}

	global_ignore = raw.get("global_ignore")
	for profile in profiles.values():
		if not isinstance(profile, dict):
			continue
		nested = profile.pop("global_ignore", None)
		if not isinstance(global_ignore, list) and isinstance(nested, list):
			global_ignore = nested

	migrated = {
		"profiles": profiles,
		"current_profile": raw.get("current_profile") if isinstance(raw.get("current_profile"), str) else DEFAULT_PROFILE,
	}
	if isinstance(global_ignore, list):
		migrated["global_ignore"] = global_ignore
	return migrated
