"""Provider configurations and their pydantic-ai models."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from .errors import LLMError

if TYPE_CHECKING:
	from pydantic_ai.models import Model

	from .client import CompletionClient

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434/v1"

# Shown next to provider errors so users know where credentials come from
CREDENTIAL_HINTS = {
	"openai": "Set an API key with `commitpilot config set api_key <key>`, --api-key or OPENAI_API_KEY.",
	"anthropic": "Set an API key with `commitpilot config set api_key <key>`, --api-key or ANTHROPIC_API_KEY.",
	"ollama": "Make sure Ollama is running and reachable at the configured base_url.",
}


class _BaseProviderConfig(BaseModel):
	model_config = ConfigDict(frozen=True)

	model: str = Field(min_length=1, description="Model name as the vendor spells it")
	api_key: str | None = Field(default=None, description="Credential; falls back to the vendor's env variable")
	base_url: str | None = Field(default=None, description="Override for the API endpoint")


class OpenAIProviderConfig(_BaseProviderConfig):
	"""OpenAI or any OpenAI-compatible endpoint."""

	provider: Literal["openai"] = "openai"


class AnthropicProviderConfig(_BaseProviderConfig):
	"""Anthropic Messages API."""

	provider: Literal["anthropic"] = "anthropic"


class OllamaProviderConfig(_BaseProviderConfig):
	"""Local Ollama server through its OpenAI-compatible API."""

	provider: Literal["ollama"] = "ollama"


ProviderConfig = Annotated[
	OpenAIProviderConfig | AnthropicProviderConfig | OllamaProviderConfig,
	Field(discriminator="provider"),
]


def build_model(config: ProviderConfig) -> Model:
	"""
	Build the pydantic-ai model for a provider configuration.

	This is the only place that branches on the provider name.

	Args:
	    config: Validated provider configuration

	Returns:
	    A pydantic-ai Model instance

	Raises:
	    LLMError: If the provider client cannot be created

	"""
	try:
		match config:
			case AnthropicProviderConfig():
				from anthropic import AsyncAnthropic
				from pydantic_ai.models.anthropic import AnthropicModel
				from pydantic_ai.providers.anthropic import AnthropicProvider

				client = AsyncAnthropic(api_key=config.api_key, base_url=config.base_url)
				return AnthropicModel(config.model, provider=AnthropicProvider(anthropic_client=client))
			case OllamaProviderConfig():
				from pydantic_ai.models.openai import OpenAIChatModel
				from pydantic_ai.providers.openai import OpenAIProvider

				provider = OpenAIProvider(
					base_url=config.base_url or DEFAULT_OLLAMA_BASE_URL,
					api_key=config.api_key or "ollama",
				)
				return OpenAIChatModel(config.model, provider=provider)
			case OpenAIProviderConfig():
				from pydantic_ai.models.openai import OpenAIChatModel
				from pydantic_ai.providers.openai import OpenAIProvider

				provider = OpenAIProvider(base_url=config.base_url, api_key=config.api_key)
				return OpenAIChatModel(config.model, provider=provider)
	except ImportError as e:
		msg = f"The client library for provider '{config.provider}' is not installed: {e}"
		raise LLMError(msg) from e
	except Exception as e:
		msg = f"Could not create the {config.provider} client: {e}\n{CREDENTIAL_HINTS[config.provider]}"
		raise LLMError(msg) from e

	msg = f"Unsupported provider: {config!r}"
	raise LLMError(msg)


def create_client(
	config: ProviderConfig,
	temperature: float | None = None,
	max_tokens: int | None = None,
) -> CompletionClient:
	"""Create a CompletionClient for a provider configuration."""
	from .client import CompletionClient

	logger.debug("Creating %s client for model %s", config.provider, config.model)
	return CompletionClient(
		build_model(config),
		temperature=temperature,
		max_tokens=max_tokens,
		hint=CREDENTIAL_HINTS[config.provider],
	)
