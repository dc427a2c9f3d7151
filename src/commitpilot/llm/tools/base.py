"""Shared plumbing for agent toolboxes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from commitpilot.llm.transcript import ToolCallEvent

if TYPE_CHECKING:
	from collections.abc import Callable

	from pydantic_ai.tools import Tool

	from commitpilot.llm.transcript import ToolEventSink

logger = logging.getLogger(__name__)


def _ignore_event(_event: ToolCallEvent) -> None:
	return None


class Toolbox:
	"""
	Base class for a set of tools handed to one agent run.

	Subclasses implement tools as async methods. Each tool reports progress
	through the injected sink and turns failures into error payloads instead
	of raising.

	"""

	def __init__(self, on_event: ToolEventSink | None = None) -> None:
		self.on_event: ToolEventSink = on_event or _ignore_event

	def emit_call(self, tool_name: str, message: str, args: dict[str, Any] | None = None) -> None:
		"""Report that a tool is running."""
		logger.debug("Tool call: %s %s", tool_name, args or {})
		self.on_event(ToolCallEvent(kind="call", tool_name=tool_name, message=message, payload=args or {}))

	def emit_result(self, tool_name: str, payload: Any, message: str = "") -> None:  # noqa: ANN401
		"""Report the value a tool returned."""
		self.on_event(ToolCallEvent(kind="result", tool_name=tool_name, message=message, payload=payload))

	def emit_finished(self, message: str = "") -> None:
		"""Report that the terminating tool was called."""
		self.on_event(ToolCallEvent(kind="finished", message=message))

	def error(self, tool_name: str, action: str, error: Exception) -> dict[str, str]:
		"""Build the tagged error payload for a failed tool."""
		logger.debug("Tool %s failed", tool_name, exc_info=error)
		payload = {"error": f"Error {action}: {error}"}
		self.emit_result(tool_name, payload, payload["error"])
		return payload

	def tools(self) -> list[Tool]:
		"""The pydantic-ai tools exposed to the model."""
		raise NotImplementedError

	@staticmethod
	def make_tool(function: Callable[..., Any], name: str, description: str) -> Tool:
		"""Wrap a bound coroutine as a context-free pydantic-ai tool."""
		from pydantic_ai.tools import Tool

		return Tool(function, takes_ctx=False, name=name, description=description)
