"""Agentic commit message generation with inspection tools."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from commitpilot.llm.client import DEFAULT_MAX_STEPS
from commitpilot.llm.errors import GenerationFailure
from commitpilot.llm.tools.commit_tools import FINISH_TOOL_NAME, CommitToolbox
from commitpilot.llm.transcript import find_tool_call

from .prompts import agent_revision_prompt, agent_system_prompt, agent_user_prompt
from .utils import CommitDraft, sanitize_message

if TYPE_CHECKING:
	from collections.abc import Sequence

	from pydantic_ai.tools import Tool

	from commitpilot.llm.transcript import AgentTranscript, ToolEventSink

logger = logging.getLogger(__name__)


class AgenticClient(Protocol):
	"""The part of CompletionClient the agents need."""

	async def run_agentic(
		self,
		system_prompt: str,
		user_prompt: str,
		tools: Sequence[Tool],
		max_steps: int = DEFAULT_MAX_STEPS,
	) -> AgentTranscript: ...


def extract_commit_message(transcript: AgentTranscript) -> CommitDraft:
	"""
	Pull the final message out of a finished conversation.

	Every step is searched because the model may call the finishing tool
	before a last text-only turn.

	Args:
	    transcript: The agent conversation

	Returns:
	    The normalized draft

	Raises:
	    GenerationFailure: If the finishing tool was never called or its subject is empty

	"""
	call = find_tool_call(transcript, FINISH_TOOL_NAME)
	if call is None:
		msg = f"Agent did not call {FINISH_TOOL_NAME} tool to provide the final result"
		if transcript.finish_reason == "length":
			msg += " before reaching the step limit"
		raise GenerationFailure(msg)

	raw_message = call.args.get("commit_message")
	if not isinstance(raw_message, str) or not sanitize_message(raw_message):
		msg = f"Agent called {FINISH_TOOL_NAME} without a commit message"
		raise GenerationFailure(msg)

	body = call.args.get("commit_body")
	return CommitDraft(message=sanitize_message(raw_message), body=body.strip() if isinstance(body, str) else "")


class AgenticCommitGenerator:
	"""Generates commit messages by letting the model inspect the staged changes."""

	def __init__(
		self,
		client: AgenticClient,
		staged_files: list[str],
		locale: str = "en",
		max_length: int = 140,
		commit_type: str = "",
		context_lines: int = 3,
		on_event: ToolEventSink | None = None,
		max_steps: int = DEFAULT_MAX_STEPS,
	) -> None:
		"""
		Initialize the generator.

		Args:
		    client: Client able to run tool-calling conversations
		    staged_files: Staged paths the model may inspect
		    locale: Message language
		    max_length: Maximum subject length
		    commit_type: "conventional" or "" for plain messages
		    context_lines: Context lines for file diffs
		    on_event: Progress sink for tool activity
		    max_steps: Step cap of one conversation

		"""
		self.client = client
		self.staged_files = staged_files
		self.locale = locale
		self.max_length = max_length
		self.commit_type = commit_type
		self.context_lines = context_lines
		self.on_event = on_event
		self.max_steps = max_steps

	def _toolbox(self) -> CommitToolbox:
		return CommitToolbox(self.staged_files, context_lines=self.context_lines, on_event=self.on_event)

	async def _run(self, user_prompt: str) -> CommitDraft:
		transcript = await self.client.run_agentic(
			agent_system_prompt(),
			user_prompt,
			self._toolbox().tools(),
			max_steps=self.max_steps,
		)
		draft = extract_commit_message(transcript)
		if len(draft.message) > self.max_length:
			logger.warning("Generated subject is %d characters, longer than %d", len(draft.message), self.max_length)
		return draft

	async def generate(self) -> CommitDraft:
		"""
		Generate a commit message for the staged changes.

		Raises:
		    GenerationFailure: If the agent does not finish properly
		    LLMError: If the provider call fails

		"""
		logger.debug("Starting agentic generation for %d staged files", len(self.staged_files))
		return await self._run(agent_user_prompt(self.locale, self.max_length, self.commit_type))

	async def revise(self, current: CommitDraft, request: str) -> CommitDraft:
		"""Generate a new draft that addresses the user's feedback on the current one."""
		logger.debug("Revising commit message: %s", request)
		prompt = agent_revision_prompt(
			current.message,
			current.body,
			request,
			self.locale,
			self.max_length,
			self.commit_type,
		)
		return await self._run(prompt)
