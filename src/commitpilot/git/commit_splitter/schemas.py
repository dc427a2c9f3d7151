"""Schemas for commit-splitting proposals."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SplitValidationError(Exception):
	"""Raised when a splitting proposal is missing or unusable."""


class HunkReference(BaseModel):
	"""One hunk assigned to a commit group."""

	model_config = ConfigDict(frozen=True, populate_by_name=True)

	file: str = Field(description="File path for this hunk")
	hunk_id: str = Field(description="Hunk ID from get_working_changes_as_hunks", alias="hunkId")
	summary: str = Field(default="", description="Brief summary of what this hunk changes")


class CommitGroup(BaseModel):
	"""A group of hunks destined for one commit."""

	model_config = ConfigDict(frozen=True)

	id: str = Field(description="Unique identifier for this commit group (use kebab-case)")
	title: str = Field(description="Commit message for the group")
	description: str = Field(default="", description="Detailed explanation of what this group contains")
	hunks: list[HunkReference] = Field(description="Specific hunks that belong to this group")
	priority: int = Field(default=2, ge=1, le=3, description="Priority: 1 (high), 2 (medium), or 3 (low)")
	reasoning: str = Field(default="", description="Explanation of why these hunks belong together")

	@property
	def hunk_ids(self) -> list[str]:
		"""Referenced hunk ids in order."""
		return [h.hunk_id for h in self.hunks]

	@property
	def commit_message(self) -> str:
		"""Title and description joined as a commit message."""
		return f"{self.title}\n\n{self.description}".strip()


class SplitProposal(BaseModel):
	"""The terminating payload of a splitting conversation."""

	groups: list[CommitGroup]
	explanation: str
