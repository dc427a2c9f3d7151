"""Plain data view of an agent conversation."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic_ai.messages import ModelRequest, ModelResponse, TextPart, ToolCallPart, ToolReturnPart

if TYPE_CHECKING:
	from collections.abc import Sequence

	from pydantic_ai.messages import ModelMessage

logger = logging.getLogger(__name__)

FinishReason = Literal["stop", "length"]


@dataclass(frozen=True)
class ToolCall:
	"""A tool invocation requested by the model."""

	name: str
	args: dict[str, Any]
	call_id: str | None = None


@dataclass(frozen=True)
class ToolResult:
	"""The value a tool returned to the model."""

	name: str
	content: Any
	call_id: str | None = None


@dataclass
class AgentStep:
	"""One model response and the tool results that answered it."""

	tool_calls: list[ToolCall] = field(default_factory=list)
	tool_results: list[ToolResult] = field(default_factory=list)
	text: str = ""


@dataclass
class AgentTranscript:
	"""All steps of a finished (or aborted) agent run."""

	steps: list[AgentStep] = field(default_factory=list)
	finish_reason: FinishReason = "stop"

	@property
	def text(self) -> str:
		"""Free text of the last step."""
		return self.steps[-1].text if self.steps else ""


@dataclass(frozen=True)
class ToolCallEvent:
	"""
	Progress notification emitted while an agent works.

	Events carry no control-flow meaning; they exist for UI feedback.

	"""

	kind: Literal["call", "result", "finished"]
	tool_name: str = ""
	message: str = ""
	payload: Any = None


ToolEventSink = Callable[[ToolCallEvent], None]


def _call_args(part: ToolCallPart) -> dict[str, Any]:
	try:
		return part.args_as_dict()
	except ValueError:
		logger.warning("Tool call %s had unparseable arguments", part.tool_name)
		return {}


def transcript_from_messages(messages: Sequence[ModelMessage], finish_reason: FinishReason = "stop") -> AgentTranscript:
	"""
	Convert pydantic-ai messages into an AgentTranscript.

	Every model response opens a step; tool returns in the following request
	are attached to that step.

	"""
	transcript = AgentTranscript(finish_reason=finish_reason)
	for message in messages:
		if isinstance(message, ModelResponse):
			step = AgentStep()
			for part in message.parts:
				if isinstance(part, ToolCallPart):
					step.tool_calls.append(ToolCall(part.tool_name, _call_args(part), part.tool_call_id))
				elif isinstance(part, TextPart):
					step.text += part.content
			transcript.steps.append(step)
		elif isinstance(message, ModelRequest) and transcript.steps:
			for part in message.parts:
				if isinstance(part, ToolReturnPart):
					transcript.steps[-1].tool_results.append(ToolResult(part.tool_name, part.content, part.tool_call_id))
	return transcript


def find_tool_call(transcript: AgentTranscript, tool_name: str) -> ToolCall | None:
	"""
	Find the latest call of a tool across every step of a transcript.

	Models sometimes call the terminating tool before a final text-only turn,
	so the last step alone is not enough.

	"""
	found = None
	for step in transcript.steps:
		for call in step.tool_calls:
			if call.name == tool_name:
				found = call
	return found


def find_tool_result(transcript: AgentTranscript, tool_name: str, final_step_only: bool = False) -> ToolResult | None:
	"""
	Find the latest result returned by a tool.

	Args:
	    transcript: The conversation to search
	    tool_name: Name of the tool
	    final_step_only: Only look at the step that produced the final answer

	Returns:
	    The matching ToolResult, or None

	"""
	steps = transcript.steps
	if final_step_only:
		# The last response is usually text acknowledging the tool return
		steps = [s for s in steps if s.tool_results][-1:]
	found = None
	for step in steps:
		for result in step.tool_results:
			if result.name == tool_name:
				found = result
	return found
