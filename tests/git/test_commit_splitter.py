"""Tests for splitting changes into several commits."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart
from pydantic_ai.models.function import FunctionModel

from commitpilot.git.commit_splitter.apply import apply_commit_groups, choose_strategy
from commitpilot.git.commit_splitter.negotiator import (
	CommitSplitNegotiator,
	extract_split_proposal,
	validate_partition,
)
from commitpilot.git.commit_splitter.schemas import CommitGroup, HunkReference, SplitValidationError
from commitpilot.git.hunks import StagingStrategy, get_working_changes_as_hunks, parse_hunks
from commitpilot.git.utils import CommitFailedError, GitError, commit_changes, get_status
from commitpilot.llm.client import CompletionClient
from commitpilot.llm.errors import LLMError
from commitpilot.llm.tools.git_tools import PROPOSE_TOOL_NAME
from commitpilot.llm.transcript import AgentStep, AgentTranscript, ToolCall, ToolCallEvent, ToolResult
from tests.base import GitTestBase

if TYPE_CHECKING:
	from collections.abc import Sequence

	from pydantic_ai.messages import ModelMessage, ModelResponsePart
	from pydantic_ai.models.function import AgentInfo

	from commitpilot.git.hunks import ChangeHunk
	from commitpilot.llm.transcript import FinishReason

TWO_FILE_DIFF = """\
--- a/app.py
+++ b/app.py
@@ -1,2 +1,2 @@
-a = 1
+a = 2
 b = 1
@@ -10,2 +10,2 @@
 c = 1
-d = 1
+d = 2
--- a/README.md
+++ b/README.md
@@ -1 +1 @@
-old
+new
"""


def group(group_id: str, *hunk_ids: str, title: str | None = None) -> CommitGroup:
	"""Build a group from hunk ids of the form source:file:index."""
	refs = [HunkReference(file=hunk_id.split(":")[1], hunk_id=hunk_id) for hunk_id in hunk_ids]
	return CommitGroup(id=group_id, title=title or f"Commit {group_id}", hunks=refs)


def proposal_transcript(groups: list[CommitGroup], finish_reason: FinishReason = "stop") -> AgentTranscript:
	"""A splitting conversation that ended with a proposal."""
	payload = {"groups": [g.model_dump() for g in groups], "explanation": "Split by concern"}
	return AgentTranscript(
		steps=[
			AgentStep(tool_calls=[ToolCall("get_working_changes_as_hunks", {})]),
			AgentStep(
				tool_calls=[ToolCall(PROPOSE_TOOL_NAME, payload)],
				tool_results=[ToolResult(PROPOSE_TOOL_NAME, payload)],
			),
			AgentStep(text="Proposed."),
		],
		finish_reason=finish_reason,
	)


@pytest.fixture
def hunks() -> list[ChangeHunk]:
	"""Three hunks over two files."""
	return parse_hunks(TWO_FILE_DIFF, "working")


@pytest.mark.unit
class TestValidatePartition:
	"""Partition checks shared by the negotiator and apply."""

	def test_valid_partition(self, hunks: list[ChangeHunk]) -> None:
		"""Every hunk assigned once passes."""
		validate_partition(
			[group("a", "working:app.py:0", "working:app.py:1"), group("b", "working:README.md:0")],
			hunks,
		)

	def test_unassigned_hunk(self, hunks: list[ChangeHunk]) -> None:
		"""Leaving a hunk out is rejected."""
		with pytest.raises(SplitValidationError, match="unassigned hunks: working:README.md:0"):
			validate_partition([group("a", "working:app.py:0", "working:app.py:1")], hunks)

	def test_duplicate_hunk(self, hunks: list[ChangeHunk]) -> None:
		"""Assigning a hunk twice is rejected."""
		groups = [
			group("a", "working:app.py:0", "working:app.py:1"),
			group("b", "working:app.py:1", "working:README.md:0"),
		]
		with pytest.raises(SplitValidationError, match="more than once: working:app.py:1"):
			validate_partition(groups, hunks)

	def test_unknown_hunk_and_empty_group(self, hunks: list[ChangeHunk]) -> None:
		"""Unknown ids and empty groups are both reported."""
		groups = [
			group("a", "working:app.py:0", "working:app.py:1", "working:README.md:0", "working:gone.py:0"),
			group("empty"),
		]
		with pytest.raises(SplitValidationError) as exc_info:
			validate_partition(groups, hunks)
		assert "unknown hunk ids: working:gone.py:0" in str(exc_info.value)
		assert "groups without hunks: empty" in str(exc_info.value)

	def test_choose_strategy(self, hunks: list[ChangeHunk]) -> None:
		"""Exact patches are needed only when a file spans several groups."""
		by_file = [group("a", "working:app.py:0", "working:app.py:1"), group("b", "working:README.md:0")]
		shared = [group("a", "working:app.py:0"), group("b", "working:app.py:1", "working:README.md:0")]

		assert choose_strategy(by_file, hunks) is StagingStrategy.FILE
		assert choose_strategy(shared, hunks) is StagingStrategy.PATCH


@pytest.mark.unit
class TestExtractSplitProposal:
	"""Reading the proposal out of a transcript."""

	def test_extract(self) -> None:
		"""The final proposal is parsed into groups."""
		proposal = extract_split_proposal(proposal_transcript([group("a", "working:app.py:0")]))
		assert proposal.explanation == "Split by concern"
		assert proposal.groups[0].hunk_ids == ["working:app.py:0"]

	def test_step_limit(self) -> None:
		"""A run cut off by the step limit is rejected even with a proposal."""
		with pytest.raises(SplitValidationError, match="step limit"):
			extract_split_proposal(proposal_transcript([group("a", "working:app.py:0")], finish_reason="length"))

	def test_missing_proposal(self) -> None:
		"""A run without the proposal tool is rejected."""
		with pytest.raises(SplitValidationError, match=PROPOSE_TOOL_NAME):
			extract_split_proposal(AgentTranscript(steps=[AgentStep(text="Here are my groups...")]))

	def test_malformed_proposal(self) -> None:
		"""A payload that does not match the schema is rejected."""
		bad = {"groups": [{"id": "a"}], "explanation": "x"}
		transcript = AgentTranscript(steps=[AgentStep(tool_results=[ToolResult(PROPOSE_TOOL_NAME, bad)])])
		with pytest.raises(SplitValidationError, match="malformed"):
			extract_split_proposal(transcript)

	def test_empty_proposal(self) -> None:
		"""Proposing no groups is rejected."""
		with pytest.raises(SplitValidationError, match="No commit groups"):
			extract_split_proposal(proposal_transcript([]))


class ReplayClient:
	"""Returns a fixed transcript from run_agentic."""

	def __init__(self, transcript: AgentTranscript) -> None:
		self.transcript = transcript
		self.tool_names: list[str] = []

	async def run_agentic(
		self,
		system_prompt: str,  # noqa: ARG002
		user_prompt: str,  # noqa: ARG002
		tools: Sequence[Any],
		max_steps: int = 25,  # noqa: ARG002
	) -> AgentTranscript:
		self.tool_names = [tool.name for tool in tools]
		return self.transcript


def scripted_model(steps: Sequence[Sequence[ModelResponsePart]], infos: list[AgentInfo] | None = None) -> FunctionModel:
	"""A model that answers each request with the next scripted parts, then with text."""

	def respond(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
		if infos is not None:
			infos.append(info)
		answered = sum(isinstance(m, ModelResponse) for m in messages)
		if answered < len(steps):
			return ModelResponse(parts=list(steps[answered]))
		return ModelResponse(parts=[TextPart("Done")])

	return FunctionModel(respond)


def hunk_ref(hunk_id: str, summary: str = "") -> dict[str, str]:
	"""A hunk reference as a model writes it, with the camelCase id key."""
	return {"file": hunk_id.split(":")[1], "hunkId": hunk_id, "summary": summary}


@pytest.mark.git
class TestSplitInRepository(GitTestBase):
	"""Negotiating and applying splits against a real repository."""

	def setup_changes(self) -> None:
		"""Change both ends of one file and a second file."""
		lines = [f"line {i}\n" for i in range(1, 31)]
		self.commit("Initial commit", **{"notes.txt": "".join(lines), "README.md": "old\n"})
		lines[1] = "line 2 edited\n"
		lines[28] = "line 29 edited\n"
		self.write("notes.txt", "".join(lines))
		self.write("README.md", "new\n")

	@pytest.mark.asyncio
	async def test_negotiator_returns_plan(self) -> None:
		"""A complete proposal becomes a plan over the snapshot."""
		self.setup_changes()
		groups = [
			group("top", "working:notes.txt:0", "working:README.md:0"),
			group("bottom", "working:notes.txt:1"),
		]
		client = ReplayClient(proposal_transcript(groups))

		plan = await CommitSplitNegotiator(client).propose()

		assert [g.id for g in plan.groups] == ["top", "bottom"]
		assert {h.hunk_id for h in plan.hunks} == {"working:README.md:0", "working:notes.txt:0", "working:notes.txt:1"}
		assert PROPOSE_TOOL_NAME in client.tool_names

	@pytest.mark.asyncio
	async def test_negotiator_rejects_incomplete_proposal(self) -> None:
		"""Hunks left out by the model fail validation."""
		self.setup_changes()
		client = ReplayClient(proposal_transcript([group("top", "working:notes.txt:0")]))

		with pytest.raises(SplitValidationError, match="unassigned"):
			await CommitSplitNegotiator(client).propose()

	@pytest.mark.asyncio
	async def test_negotiator_without_changes(self) -> None:
		"""A clean working tree has nothing to split."""
		self.commit("Initial commit", **{"a.txt": "a\n"})
		client = ReplayClient(AgentTranscript())

		with pytest.raises(GitError, match="No uncommitted changes"):
			await CommitSplitNegotiator(client).propose()

	def test_apply_groups_with_shared_file(self) -> None:
		"""Hunks of one file land in separate commits."""
		self.setup_changes()
		hunks = get_working_changes_as_hunks()
		groups = [
			group("top", "working:notes.txt:0", "working:README.md:0", title="Edit top of notes"),
			group("bottom", "working:notes.txt:1", title="Edit bottom of notes"),
		]
		progress: list[int] = []

		result = apply_commit_groups(groups, hunks, on_progress=lambda index, _group: progress.append(index))

		assert result.succeeded
		assert progress == [1, 2]
		assert self.log_subjects() == ["Edit bottom of notes", "Edit top of notes", "Initial commit"]
		first = self.git("show", "--format=", "HEAD~1")
		assert "line 2 edited" in first
		assert "line 29 edited" not in first
		assert get_status().is_clean()

	def test_apply_stops_at_first_failure(self) -> None:
		"""Commits before a failure are kept and the index is left empty."""
		self.setup_changes()
		hunks = get_working_changes_as_hunks()
		groups = [
			group("readme", "working:README.md:0", title="Update readme"),
			group("notes", "working:notes.txt:0", "working:notes.txt:1", title="Update notes"),
		]
		calls: list[str] = []

		def flaky_commit(message: str) -> None:
			calls.append(message)
			if len(calls) == 2:
				msg = "hook rejected the commit"
				raise CommitFailedError(msg)
			commit_changes(message)

		with patch("commitpilot.git.commit_splitter.apply.commit_changes", side_effect=flaky_commit):
			result = apply_commit_groups(groups, hunks)

		assert not result.succeeded
		assert [g.id for g in result.committed] == ["readme"]
		assert result.failed_group is not None
		assert result.failed_group.id == "notes"
		assert result.error == "hook rejected the commit"
		assert self.log_subjects() == ["Update readme", "Initial commit"]
		assert get_status().staged == []

	def test_apply_rejects_invalid_groups(self) -> None:
		"""Nothing is committed when the groups do not cover every hunk."""
		self.setup_changes()
		hunks = get_working_changes_as_hunks()

		with pytest.raises(SplitValidationError):
			apply_commit_groups([group("readme", "working:README.md:0")], hunks)
		assert self.log_subjects() == ["Initial commit"]

	@pytest.mark.asyncio
	async def test_negotiate_with_tool_calling_model(self) -> None:
		"""A model working through the real tools proposes a plan that can be committed."""
		self.setup_changes()
		events: list[ToolCallEvent] = []
		infos: list[AgentInfo] = []
		groups = [
			{
				"id": "top",
				"title": "Edit top of notes",
				"hunks": [hunk_ref("working:notes.txt:0"), hunk_ref("working:README.md:0")],
			},
			{
				"id": "bottom",
				"title": "Edit bottom of notes",
				"hunks": [hunk_ref("working:notes.txt:1", "Edit line 29")],
			},
		]
		model = scripted_model(
			[
				[ToolCallPart("get_working_changes_as_hunks", {})],
				[ToolCallPart(PROPOSE_TOOL_NAME, {"groups": groups, "explanation": "Top and bottom"})],
			],
			infos,
		)

		plan = await CommitSplitNegotiator(CompletionClient(model), on_event=events.append).propose()

		assigned = [hunk_id for g in plan.groups for hunk_id in g.hunk_ids]
		assert 1 <= len(plan.groups) <= 5
		assert sorted(assigned) == sorted(h.hunk_id for h in plan.hunks)
		assert len(assigned) == len(set(assigned))
		assert plan.groups[1].hunks[0].summary == "Edit line 29"
		assert plan.proposal.explanation == "Top and bottom"
		assert [(e.tool_name, e.kind) for e in events] == [
			("get_working_changes_as_hunks", "call"),
			("get_working_changes_as_hunks", "result"),
			(PROPOSE_TOOL_NAME, "call"),
			("", "finished"),
		]

		tools = {tool.name: tool for tool in infos[0].function_tools}
		assert "stage_selected_hunks" in tools
		assert "hunkId" in json.dumps(tools[PROPOSE_TOOL_NAME].parameters_json_schema)
		assert "self" not in tools["get_file_content"].parameters_json_schema["properties"]

		result = apply_commit_groups(plan.groups, plan.hunks)
		assert result.succeeded
		assert self.log_subjects() == ["Edit bottom of notes", "Edit top of notes", "Initial commit"]

	@pytest.mark.asyncio
	async def test_rejected_proposal_restores_index(self) -> None:
		"""Hunks the model staged are dropped and earlier staging is kept when validation fails."""
		self.setup_changes()
		self.git("add", "README.md")
		events: list[ToolCallEvent] = []
		partial = [{"id": "top", "title": "Edit top of notes", "hunks": [hunk_ref("working:notes.txt:0")]}]
		model = scripted_model(
			[
				[ToolCallPart("get_working_changes_as_hunks", {})],
				[ToolCallPart("stage_selected_hunks", {"hunk_ids": ["working:notes.txt:0"]})],
				[ToolCallPart(PROPOSE_TOOL_NAME, {"groups": partial, "explanation": "Only the top"})],
			]
		)

		with pytest.raises(SplitValidationError, match="unassigned"):
			await CommitSplitNegotiator(CompletionClient(model), on_event=events.append).propose()

		assert ("stage_selected_hunks", "result") in [(e.tool_name, e.kind) for e in events]
		assert get_status().staged == ["README.md"]

	@pytest.mark.asyncio
	async def test_provider_failure_restores_index(self) -> None:
		"""A conversation that dies after staging leaves the index as it was."""
		self.setup_changes()

		def stage_then_fail(messages: list[ModelMessage], _info: AgentInfo) -> ModelResponse:
			if not any(isinstance(m, ModelResponse) for m in messages):
				call = ToolCallPart("stage_selected_hunks", {"hunk_ids": ["working:notes.txt:1"]})
				return ModelResponse(parts=[call])
			msg = "connection reset"
			raise RuntimeError(msg)

		with pytest.raises(LLMError, match="connection reset"):
			await CommitSplitNegotiator(CompletionClient(FunctionModel(stage_then_fail))).propose()

		assert get_status().staged == []
