"""Tests for commit message generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart, ToolReturnPart
from pydantic_ai.models.function import FunctionModel

from commitpilot.git.commit_generator.agent import AgenticCommitGenerator, extract_commit_message
from commitpilot.git.commit_generator.generator import CommitMessageGenerator
from commitpilot.git.commit_generator.prompts import REVISION_MARKER, commit_message_prompt
from commitpilot.git.commit_generator.utils import (
	CommitDraft,
	dedupe_messages,
	parse_edited_message,
	sanitize_message,
)
from commitpilot.git.utils import stage_all
from commitpilot.llm.client import CompletionClient
from commitpilot.llm.errors import GenerationFailure, LLMError
from commitpilot.llm.tools.commit_tools import FINISH_TOOL_NAME
from commitpilot.llm.transcript import AgentStep, AgentTranscript, ToolCall, ToolCallEvent
from tests.base import GitTestBase

if TYPE_CHECKING:
	from collections.abc import Callable, Iterator, Sequence

	from pydantic_ai.messages import ModelMessage
	from pydantic_ai.models.function import AgentInfo

	from commitpilot.llm.client import MessageDict


class FakeCompletionClient:
	"""Returns canned subjects and bodies and records every request."""

	def __init__(self, subjects: list[str], body: str = "* Add things", error: Exception | None = None) -> None:
		self.subjects = subjects
		self.body = body
		self.error = error
		self.requests: list[list[MessageDict]] = []

	def _is_body_request(self, messages: Sequence[MessageDict]) -> bool:
		return "commit body" in messages[0]["content"]

	async def generate_completion(self, messages: Sequence[MessageDict], n: int = 1, **_: Any) -> list[str]:  # noqa: ANN401
		self.requests.append(list(messages))
		if self.error:
			raise self.error
		if self._is_body_request(messages):
			return [self.body]
		return self.subjects[:n]

	async def stream_completion(
		self,
		messages: Sequence[MessageDict],
		on_delta: Callable[[str], None] | None = None,
	) -> str:
		self.requests.append(list(messages))
		text = self.body if self._is_body_request(messages) else self.subjects[0]
		if on_delta:
			for word in text.split(" "):
				on_delta(word)
		return text


class FakeAgenticClient:
	"""Replays a fixed transcript and records the prompts it was given."""

	def __init__(self, transcript: AgentTranscript) -> None:
		self.transcript = transcript
		self.prompts: list[str] = []
		self.tool_names: list[str] = []

	async def run_agentic(
		self,
		system_prompt: str,  # noqa: ARG002
		user_prompt: str,
		tools: Sequence[Any],
		max_steps: int = 25,  # noqa: ARG002
	) -> AgentTranscript:
		self.prompts.append(user_prompt)
		self.tool_names = [tool.name for tool in tools]
		return self.transcript


def finished_transcript(message: str, body: str | None = None) -> AgentTranscript:
	"""A transcript whose model called the finishing tool."""
	args: dict[str, Any] = {"commit_message": message}
	if body is not None:
		args["commit_body"] = body
	return AgentTranscript(steps=[AgentStep(tool_calls=[ToolCall(FINISH_TOOL_NAME, args)]), AgentStep(text="Done")])


@pytest.mark.unit
class TestMessageHelpers:
	"""Sanitizing, deduplicating and parsing commit messages."""

	def test_sanitize_strips_trailing_period_and_newlines(self) -> None:
		"""Line breaks and one trailing period are removed."""
		assert sanitize_message("  Fix bug.\n") == "Fix bug"
		assert sanitize_message("Fix\nbug") == "Fixbug"
		assert sanitize_message("Bump to v1.2...") == "Bump to v1.2..."

	def test_sanitize_is_idempotent(self) -> None:
		"""Sanitizing twice changes nothing."""
		once = sanitize_message("Add parser.")
		assert sanitize_message(once) == once

	def test_dedupe_keeps_first_occurrence(self) -> None:
		"""Duplicates after sanitizing collapse and order is kept."""
		assert dedupe_messages(["Fix bug.", "Fix bug", "Add x", "", "  "]) == ["Fix bug", "Add x"]

	def test_full_message(self) -> None:
		"""Subject and body are joined by one blank line."""
		assert CommitDraft("Add x", "* detail").full_message == "Add x\n\n* detail"
		assert CommitDraft("Add x").full_message == "Add x"

	def test_parse_edited_message(self) -> None:
		"""Everything after the first blank line is the body."""
		draft = parse_edited_message("Add parser\n\n* handle errors\n\n* add tests\n")
		assert draft == CommitDraft("Add parser", "* handle errors\n\n* add tests")

	def test_parse_edited_message_folds_subject_lines(self) -> None:
		"""Lines before the blank line become one subject."""
		assert parse_edited_message("Add parser\nand lexer\r\n\r\nbody") == CommitDraft("Add parser and lexer", "body")

	def test_parse_edited_message_without_body(self) -> None:
		"""Text without a blank line has an empty body."""
		assert parse_edited_message("  Just a subject  ") == CommitDraft("Just a subject", "")
		assert parse_edited_message("\n\n") == CommitDraft("", "")

	def test_prompt_includes_conventional_types(self) -> None:
		"""The conventional format lists the commit types."""
		prompt = commit_message_prompt("en", 72, "conventional", ["feat: add x"])
		assert "maximum of 72 characters" in prompt
		assert '"refactor"' in prompt
		assert "- feat: add x" in prompt
		assert "<type>(<optional scope>): <commit message>" in prompt


@pytest.mark.unit
class TestCommitMessageGenerator:
	"""Single-shot generation with a fake completion client."""

	@pytest.fixture(autouse=True)
	def no_history(self) -> Iterator[None]:
		"""Keep git out of these tests."""
		with patch(
			"commitpilot.git.commit_generator.generator.get_recent_commit_messages",
			return_value=["Add lexer\n\n* body"],
		):
			yield

	@pytest.mark.asyncio
	async def test_generate_dedupes_candidates(self) -> None:
		"""Equal candidates collapse and share the generated body."""
		client = FakeCompletionClient(["Fix bug.", "Fix bug", "Add x"])
		generator = CommitMessageGenerator(client, generate=3)

		drafts = await generator.generate("diff --git a/x b/x")

		assert [d.message for d in drafts] == ["Fix bug", "Add x"]
		assert {d.body for d in drafts} == {"* Add things"}

	@pytest.mark.asyncio
	async def test_generate_uses_recent_subjects(self) -> None:
		"""Recent subjects appear in the prompt as style examples."""
		client = FakeCompletionClient(["Fix bug"])

		await CommitMessageGenerator(client).generate("the diff")

		prompts = "\n".join(m["content"] for request in client.requests for m in request)
		assert "- Add lexer" in prompts
		assert "* body" not in prompts

	@pytest.mark.asyncio
	async def test_generate_all_empty(self) -> None:
		"""Only empty candidates is a generation failure."""
		client = FakeCompletionClient(["", "  "])
		with pytest.raises(GenerationFailure):
			await CommitMessageGenerator(client, generate=2).generate("diff")

	@pytest.mark.asyncio
	async def test_generate_propagates_llm_error(self) -> None:
		"""Provider errors surface as LLMError, not as a task group error."""
		client = FakeCompletionClient(["x"], error=LLMError("quota exceeded"))
		with pytest.raises(LLMError, match="quota exceeded"):
			await CommitMessageGenerator(client).generate("diff")

	@pytest.mark.asyncio
	async def test_revise_appends_request(self) -> None:
		"""The revision request is appended to the diff and deltas are reported."""
		client = FakeCompletionClient(["Refine parser errors."], body="* Improve errors")
		deltas: list[str] = []

		draft = await CommitMessageGenerator(client).revise("the diff", "mention errors", deltas.append)

		assert draft == CommitDraft("Refine parser errors", "* Improve errors")
		assert deltas
		subject_request = next(r for r in client.requests if "commit body" not in r[0]["content"])
		assert subject_request[-1]["content"].endswith(f"{REVISION_MARKER} mention errors")

	@pytest.mark.asyncio
	async def test_generate_streaming_accumulates(self) -> None:
		"""Both parts stream their deltas and the draft uses the full text."""
		client = FakeCompletionClient(["Add streaming output."], body="* Print tokens as they arrive")
		subject_deltas: list[str] = []
		body_deltas: list[str] = []

		draft = await CommitMessageGenerator(client).generate_streaming(
			"the diff", subject_deltas.append, body_deltas.append
		)

		assert draft == CommitDraft("Add streaming output", "* Print tokens as they arrive")
		assert subject_deltas == ["Add", "streaming", "output."]
		assert len(body_deltas) == 6


@pytest.mark.unit
class TestAgenticCommitGenerator:
	"""Agentic generation with a replayed transcript."""

	def test_extract_commit_message(self) -> None:
		"""The finishing call's arguments become the draft."""
		draft = extract_commit_message(finished_transcript("Add parser.", "  * details  "))
		assert draft == CommitDraft("Add parser", "* details")

	def test_extract_missing_finish(self) -> None:
		"""A run that never finished is a generation failure."""
		transcript = AgentTranscript(steps=[AgentStep(text="I think the message is X")])
		with pytest.raises(GenerationFailure, match=FINISH_TOOL_NAME):
			extract_commit_message(transcript)

	def test_extract_missing_finish_at_step_limit(self) -> None:
		"""The step limit is named when it cut the run short."""
		transcript = AgentTranscript(steps=[AgentStep()], finish_reason="length")
		with pytest.raises(GenerationFailure, match="step limit"):
			extract_commit_message(transcript)

	def test_extract_empty_subject(self) -> None:
		"""An empty subject is rejected."""
		with pytest.raises(GenerationFailure, match="without a commit message"):
			extract_commit_message(finished_transcript("   "))

	@pytest.mark.asyncio
	async def test_generate_exposes_tools(self) -> None:
		"""The agent gets the inspection tools and the finishing tool."""
		client = FakeAgenticClient(finished_transcript("Add parser"))
		generator = AgenticCommitGenerator(client, ["src/parser.py"], commit_type="conventional")

		draft = await generator.generate()

		assert draft.message == "Add parser"
		assert FINISH_TOOL_NAME in client.tool_names
		assert "get_recent_commit_message_examples" in client.tool_names
		assert "conventional" in client.prompts[0]

	@pytest.mark.asyncio
	async def test_revise_sends_current_draft(self) -> None:
		"""Revision prompts contain the current draft and the request."""
		client = FakeAgenticClient(finished_transcript("Add parser for config files"))
		generator = AgenticCommitGenerator(client, ["src/parser.py"])

		draft = await generator.revise(CommitDraft("Add parser", "* body"), "be more specific")

		assert draft.message == "Add parser for config files"
		assert "Add parser" in client.prompts[0]
		assert "be more specific" in client.prompts[0]
		assert "* body" in client.prompts[0]

	@pytest.mark.asyncio
	async def test_long_subject_is_kept(self) -> None:
		"""Subjects over the limit are returned unchanged."""
		client = FakeAgenticClient(finished_transcript("A" * 30))
		draft = await AgenticCommitGenerator(client, ["a.py"], max_length=10).generate()
		assert draft.message == "A" * 30


@pytest.mark.git
class TestAgenticEndToEnd(GitTestBase):
	"""Agentic generation through the completion client and the real tools."""

	@pytest.fixture(autouse=True)
	def staged_change(self, setup_repo: None) -> None:  # noqa: ARG002
		"""One committed file with a staged edit."""
		self.commit("Add parser", **{"parser.py": "def parse(text):\n    return text\n"})
		self.write("parser.py", "def parse(text):\n    return text.strip()\n")
		stage_all()

	@pytest.mark.asyncio
	async def test_generate_with_tool_calling_model(self) -> None:
		"""The model reads the diff, finishes with a message and every step is reported."""
		events: list[ToolCallEvent] = []
		tool_returns: list[object] = []

		def respond(messages: list[ModelMessage], _info: AgentInfo) -> ModelResponse:
			answered = sum(isinstance(m, ModelResponse) for m in messages)
			if answered == 0:
				return ModelResponse(parts=[ToolCallPart("list_staged_files", {})])
			if answered == 1:
				return ModelResponse(parts=[ToolCallPart("read_staged_file_diffs", {"file_paths": ["parser.py"]})])
			if answered == 2:  # noqa: PLR2004
				tool_returns.extend(p.content for p in messages[-1].parts if isinstance(p, ToolReturnPart))
				args = {"commit_message": "Strip input in parser.", "commit_body": "* Ignore surrounding whitespace"}
				return ModelResponse(parts=[ToolCallPart(FINISH_TOOL_NAME, args)])
			return ModelResponse(parts=[TextPart("Done")])

		generator = AgenticCommitGenerator(
			CompletionClient(FunctionModel(respond)),
			["parser.py"],
			max_length=72,
			on_event=events.append,
		)

		draft = await generator.generate()

		assert draft == CommitDraft("Strip input in parser", "* Ignore surrounding whitespace")
		assert 0 < len(draft.message) <= 72  # noqa: PLR2004
		assert "+    return text.strip()" in tool_returns[0][0]["diff"]
		assert [(e.tool_name, e.kind) for e in events] == [
			("list_staged_files", "call"),
			("list_staged_files", "result"),
			("read_staged_file_diffs", "call"),
			("read_staged_file_diffs", "result"),
			(FINISH_TOOL_NAME, "call"),
			("", "finished"),
		]

	@pytest.mark.asyncio
	async def test_model_that_never_finishes(self) -> None:
		"""Answering with text only is a generation failure."""

		def chatty(_messages: list[ModelMessage], _info: AgentInfo) -> ModelResponse:
			return ModelResponse(parts=[TextPart("Strip input in parser")])

		generator = AgenticCommitGenerator(CompletionClient(FunctionModel(chatty)), ["parser.py"])

		with pytest.raises(GenerationFailure, match=FINISH_TOOL_NAME):
			await generator.generate()
