"""Helpers shared by the CLI commands."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel

from commitpilot.config import ConfigError, ConfigLoader
from commitpilot.git.commit_splitter.schemas import SplitValidationError
from commitpilot.git.utils import GitError
from commitpilot.llm.errors import LLMError
from commitpilot.llm.providers import create_client

if TYPE_CHECKING:
	from commitpilot.config import ResolvedConfig
	from commitpilot.llm.client import CompletionClient

logger = logging.getLogger(__name__)
console = Console()

# Errors shown to the user without a stack trace
USER_FACING_ERRORS = (GitError, LLMError, ConfigError, SplitValidationError)


def load_config(profile: str | None = None, **overrides: Any) -> ResolvedConfig:  # noqa: ANN401
	"""Resolve the effective configuration once for this run."""
	config = ConfigLoader.get_instance().resolve(profile, **overrides)
	logger.debug("Using profile %s (%s, %s)", config.profile_name, config.provider, config.model)
	return config


def create_completion_client(config: ResolvedConfig) -> CompletionClient:
	"""
	Build the completion client for the resolved profile.

	Raises:
	    ConfigError: If no model is configured
	    LLMError: If the provider client cannot be created

	"""
	return create_client(config.provider_config())


def show_profile(config: ResolvedConfig) -> None:
	"""Print which profile and model this run uses."""
	lines = [
		f"Profile: [yellow]{config.profile_name}[/yellow]",
		f"Provider: [yellow]{config.provider}[/yellow]",
		f"Model: [yellow]{config.model}[/yellow]",
	]
	if config.base_url:
		lines.append(f"Endpoint: [yellow]{config.base_url}[/yellow]")
	console.print(Panel("\n".join(lines), expand=False))


def show_staged_files(message: str, files: list[str]) -> None:
	"""Print the detected-files line followed by the file list."""
	console.print(f"[green]{message}:[/green]")
	for file_path in files:
		console.print(f"     {file_path}")
