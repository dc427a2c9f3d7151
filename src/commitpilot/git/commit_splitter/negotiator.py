"""Negotiate a split of the uncommitted changes with a tool-calling agent."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError

from commitpilot.git.commit_generator.prompts import splitting_system_prompt, splitting_user_prompt
from commitpilot.git.hunks import StagingStrategy
from commitpilot.git.utils import GitError, restore_index, save_index
from commitpilot.llm.client import DEFAULT_MAX_STEPS
from commitpilot.llm.tools.git_tools import PROPOSE_TOOL_NAME, SplitToolbox
from commitpilot.llm.transcript import find_tool_result

from .schemas import SplitProposal, SplitValidationError

if TYPE_CHECKING:
	from collections.abc import Sequence

	from commitpilot.git.commit_generator.agent import AgenticClient
	from commitpilot.git.hunks import ChangeHunk
	from commitpilot.llm.transcript import AgentTranscript, ToolEventSink

	from .schemas import CommitGroup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitPlan:
	"""A validated proposal together with the hunk snapshot it refers to."""

	proposal: SplitProposal
	hunks: list[ChangeHunk]

	@property
	def groups(self) -> list[CommitGroup]:
		"""Groups in the order they will be committed."""
		return self.proposal.groups


def extract_split_proposal(transcript: AgentTranscript) -> SplitProposal:
	"""
	Read the proposal from the final step of a splitting conversation.

	Args:
	    transcript: The agent conversation

	Returns:
	    The structurally valid proposal

	Raises:
	    SplitValidationError: If the run did not stop normally or the proposal is missing or malformed

	"""
	if transcript.finish_reason != "stop":
		msg = "Agent stopped before finishing: the step limit was reached"
		raise SplitValidationError(msg)

	result = find_tool_result(transcript, PROPOSE_TOOL_NAME, final_step_only=True)
	if result is None:
		msg = f"Agent did not call {PROPOSE_TOOL_NAME} tool to provide the final result"
		raise SplitValidationError(msg)

	try:
		proposal = SplitProposal.model_validate(result.content)
	except ValidationError as e:
		msg = f"The proposed commit groups are malformed: {e}"
		raise SplitValidationError(msg) from e

	if not proposal.groups:
		msg = "No commit groups were proposed by the agent"
		raise SplitValidationError(msg)
	return proposal


def validate_partition(groups: Sequence[CommitGroup], hunks: Sequence[ChangeHunk]) -> None:
	"""
	Check that the groups assign every hunk of the snapshot exactly once.

	Args:
	    groups: Proposed groups
	    hunks: The snapshot shown to the agent

	Raises:
	    SplitValidationError: On unknown, duplicated or unassigned hunk ids, or empty groups

	"""
	known = {h.hunk_id for h in hunks}
	counts = Counter(hunk_id for group in groups for hunk_id in group.hunk_ids)

	problems = []
	empty = [g.id for g in groups if not g.hunks]
	if empty:
		problems.append(f"groups without hunks: {', '.join(empty)}")
	unknown = sorted(i for i in counts if i not in known)
	if unknown:
		problems.append(f"unknown hunk ids: {', '.join(unknown)}")
	duplicated = sorted(i for i, n in counts.items() if n > 1)
	if duplicated:
		problems.append(f"hunks assigned more than once: {', '.join(duplicated)}")
	unassigned = [h.hunk_id for h in hunks if h.hunk_id not in counts]
	if unassigned:
		problems.append(f"unassigned hunks: {', '.join(unassigned)}")

	if problems:
		msg = "Invalid commit groups: " + "; ".join(problems)
		raise SplitValidationError(msg)


class CommitSplitNegotiator:
	"""Asks the model to partition the working changes into commit groups."""

	def __init__(
		self,
		client: AgenticClient,
		exclude: Sequence[str] = (),
		locale: str = "en",
		max_length: int = 140,
		commit_type: str = "",
		context_lines: int = 3,
		strategy: StagingStrategy = StagingStrategy.PATCH,
		on_event: ToolEventSink | None = None,
		max_steps: int = DEFAULT_MAX_STEPS,
	) -> None:
		"""
		Initialize the negotiator.

		Args:
		    client: Client able to run tool-calling conversations
		    exclude: Patterns whose files are left out of the snapshot
		    locale: Response language
		    max_length: Maximum group title length
		    commit_type: "conventional" or "" for plain titles
		    context_lines: Context lines used when parsing hunks
		    strategy: How the stage_selected_hunks tool stages hunks
		    on_event: Progress sink for tool activity
		    max_steps: Step cap of the conversation

		"""
		self.client = client
		self.locale = locale
		self.max_length = max_length
		self.commit_type = commit_type
		self.max_steps = max_steps
		self.toolbox = SplitToolbox(exclude, context_lines=context_lines, strategy=strategy, on_event=on_event)

	async def propose(self) -> SplitPlan:
		"""
		Run the conversation and validate its proposal.

		The index is put back the way it was before the conversation, so a
		proposal that is rejected or declined leaves no staging behind.

		Returns:
		    The validated plan

		Raises:
		    GitError: If there are no uncommitted changes
		    SplitValidationError: If the proposal is missing, malformed or incomplete
		    LLMError: If the provider call fails

		"""
		initial = self.toolbox.take_snapshot()
		if not initial:
			msg = "No uncommitted changes found to split"
			raise GitError(msg)
		logger.debug("Splitting %d hunks", len(initial))

		# The model may stage hunks while it explores; that staging is scratch
		index_tree = save_index()
		try:
			transcript = await self.client.run_agentic(
				splitting_system_prompt(),
				splitting_user_prompt(self.locale, self.max_length, self.commit_type),
				self.toolbox.tools(),
				max_steps=self.max_steps,
			)
		finally:
			restore_index(index_tree)
			logger.debug("Restored the index to tree %s", index_tree)
		proposal = extract_split_proposal(transcript)

		# The tool refreshes the snapshot each time the model lists hunks
		snapshot = self.toolbox.snapshot or initial
		validate_partition(proposal.groups, snapshot)
		return SplitPlan(proposal=proposal, hunks=list(snapshot))
