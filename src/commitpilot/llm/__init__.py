"""LLM module for CommitPilot."""

from __future__ import annotations

from .client import CompletionClient, MessageDict
from .errors import GenerationFailure, LLMError
from .providers import ProviderConfig, build_model, create_client
from .transcript import AgentStep, AgentTranscript, ToolCall, ToolCallEvent, ToolResult

__all__ = [
	"AgentStep",
	"AgentTranscript",
	"CompletionClient",
	"GenerationFailure",
	"LLMError",
	"MessageDict",
	"ProviderConfig",
	"ToolCall",
	"ToolCallEvent",
	"ToolResult",
	"build_model",
	"create_client",
]
