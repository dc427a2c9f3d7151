"""Completion client wrapping pydantic-ai agents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal, TypedDict

import asyncer
from pydantic_ai import Agent
from pydantic_ai.exceptions import UsageLimitExceeded
from pydantic_ai.settings import ModelSettings
from pydantic_ai.usage import UsageLimits

from .errors import LLMError, first_error
from .transcript import AgentTranscript, FinishReason, transcript_from_messages

if TYPE_CHECKING:
	from collections.abc import Callable, Sequence

	from pydantic_ai.models import Model
	from pydantic_ai.tools import Tool

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 25


class MessageDict(TypedDict):
	"""Typed dictionary for LLM message structure."""

	role: Literal["user", "system"]
	content: str


def split_messages(messages: Sequence[MessageDict]) -> tuple[str, list[str]]:
	"""
	Separate system instructions from user content.

	Returns:
	    The joined system prompt and the user messages in order

	Raises:
	    LLMError: If there is no user content

	"""
	system_parts = [m["content"] for m in messages if m["role"] == "system"]
	user_parts = [m["content"] for m in messages if m["role"] == "user"]
	if not user_parts:
		msg = "No user content found in messages"
		raise LLMError(msg)
	return "\n\n".join(system_parts), user_parts


class CompletionClient:
	"""Uniform text, streaming and tool-calling access to one model."""

	__slots__ = ("hint", "model", "model_settings")

	def __init__(
		self,
		model: Model | str,
		temperature: float | None = None,
		max_tokens: int | None = None,
		hint: str = "",
	) -> None:
		"""
		Initialize the client.

		Args:
		    model: pydantic-ai model instance or "provider:model" string
		    temperature: Sampling temperature passed on every request
		    max_tokens: Output token limit passed on every request
		    hint: Guidance appended to provider error messages

		"""
		self.model = model
		self.hint = hint
		settings: dict[str, float | int] = {}
		if temperature is not None:
			settings["temperature"] = temperature
		if max_tokens is not None:
			settings["max_tokens"] = max_tokens
		self.model_settings = ModelSettings(**settings)

	def _agent(self, system_prompt: str, tools: Sequence[Tool] = ()) -> Agent:
		return Agent(self.model, system_prompt=system_prompt, tools=list(tools), output_type=str)

	def _settings(self, temperature: float | None) -> ModelSettings:
		if temperature is None:
			return self.model_settings
		return ModelSettings(**{**self.model_settings, "temperature": temperature})

	def _wrap_error(self, action: str, error: Exception) -> LLMError:
		msg = f"{action} failed: {error}"
		if self.hint:
			msg += f"\n{self.hint}"
		return LLMError(msg)

	async def _complete_once(self, agent: Agent, user_parts: list[str], settings: ModelSettings) -> str:
		result = await agent.run(user_parts, model_settings=settings)
		return result.output

	async def generate_completion(
		self,
		messages: Sequence[MessageDict],
		n: int = 1,
		temperature: float | None = None,
	) -> list[str]:
		"""
		Generate one or more independent completions.

		Multiple completions are requested concurrently.

		Args:
		    messages: System and user messages
		    n: Number of completions
		    temperature: Optional temperature override

		Returns:
		    The completion texts in request order

		Raises:
		    LLMError: If any provider call fails

		"""
		system_prompt, user_parts = split_messages(messages)
		agent = self._agent(system_prompt)
		settings = self._settings(temperature)
		try:
			async with asyncer.create_task_group() as task_group:
				soon_values = [
					task_group.soonify(self._complete_once)(agent, user_parts, settings) for _ in range(max(1, n))
				]
		except Exception as e:
			logger.debug("Completion request failed", exc_info=True)
			cause = first_error(e)
			raise self._wrap_error("Completion request", cause) from cause
		return [soon.value for soon in soon_values]

	async def stream_completion(
		self,
		messages: Sequence[MessageDict],
		on_delta: Callable[[str], None] | None = None,
	) -> str:
		"""
		Stream a completion, reporting each text delta.

		Partial chunks are only passed to on_delta; the return value is the
		complete text.

		"""
		system_prompt, user_parts = split_messages(messages)
		agent = self._agent(system_prompt)
		chunks: list[str] = []
		try:
			async with agent.run_stream(user_parts, model_settings=self.model_settings) as result:
				async for delta in result.stream_text(delta=True):
					chunks.append(delta)
					if on_delta:
						on_delta(delta)
		except Exception as e:
			logger.debug("Streaming request failed", exc_info=True)
			raise self._wrap_error("Streaming request", e) from e
		return "".join(chunks)

	async def run_agentic(
		self,
		system_prompt: str,
		user_prompt: str,
		tools: Sequence[Tool],
		max_steps: int = DEFAULT_MAX_STEPS,
	) -> AgentTranscript:
		"""
		Run a multi-step tool-calling conversation.

		Hitting the step cap is not an error here; the transcript is returned
		with finish_reason "length" and callers decide what that means.

		Args:
		    system_prompt: Instructions for the model
		    user_prompt: The task
		    tools: Tools the model may call
		    max_steps: Maximum number of model requests

		Returns:
		    The transcript of every step

		Raises:
		    LLMError: If the provider call fails

		"""
		agent = self._agent(system_prompt, tools)
		finish_reason: FinishReason = "stop"
		try:
			async with agent.iter(
				user_prompt,
				model_settings=self.model_settings,
				usage_limits=UsageLimits(request_limit=max_steps),
			) as run:
				try:
					async for node in run:
						logger.debug("Agent node: %s", type(node).__name__)
				except UsageLimitExceeded:
					logger.warning("Agent reached the step limit of %d", max_steps)
					finish_reason = "length"
				messages = run.all_messages()
		except Exception as e:
			logger.debug("Agent run failed", exc_info=True)
			raise self._wrap_error("Agent run", e) from e

		transcript = transcript_from_messages(messages, finish_reason)
		logger.debug("Agent finished after %d steps (%s)", len(transcript.steps), finish_reason)
		return transcript
