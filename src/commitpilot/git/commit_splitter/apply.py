"""Turn validated commit groups into commits."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from commitpilot.git.hunks import StagingStrategy, stage_selected_hunks
from commitpilot.git.utils import GitError, commit_changes, reset_all_staged

from .negotiator import validate_partition

if TYPE_CHECKING:
	from collections.abc import Callable, Sequence

	from commitpilot.git.hunks import ChangeHunk

	from .schemas import CommitGroup

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
	"""What apply_commit_groups managed to commit."""

	committed: list[CommitGroup] = field(default_factory=list)
	failed_group: CommitGroup | None = None
	error: str | None = None

	@property
	def succeeded(self) -> bool:
		"""True when every group was committed."""
		return self.failed_group is None


def choose_strategy(groups: Sequence[CommitGroup], hunks: Sequence[ChangeHunk]) -> StagingStrategy:
	"""
	Pick whole-file staging unless a file's hunks are spread over several groups.

	Whole-file staging of a shared file would put hunks of later groups into
	the first commit, so exact patches are used in that case.

	"""
	file_of = {h.hunk_id: h.file for h in hunks}
	owners: Counter[str] = Counter()
	for group in groups:
		for file_path in {file_of[i] for i in group.hunk_ids if i in file_of}:
			owners[file_path] += 1
	return StagingStrategy.PATCH if any(n > 1 for n in owners.values()) else StagingStrategy.FILE


def apply_commit_groups(
	groups: Sequence[CommitGroup],
	hunks: Sequence[ChangeHunk],
	strategy: StagingStrategy | None = None,
	on_progress: Callable[[int, CommitGroup], None] | None = None,
) -> ApplyResult:
	"""
	Commit each group in order.

	For every group the index is reset, the group's hunks are staged and a
	commit is made from the title and description. The first failure stops
	the run; groups committed before it stay committed.

	Args:
	    groups: Groups in commit order
	    hunks: Snapshot the groups refer to
	    strategy: Staging strategy, chosen by choose_strategy when None
	    on_progress: Called with the 1-based index before each group

	Returns:
	    The committed groups and, on failure, the failing group and error

	Raises:
	    SplitValidationError: If the groups do not partition the snapshot

	"""
	validate_partition(groups, hunks)
	strategy = strategy or choose_strategy(groups, hunks)
	by_id = {h.hunk_id: h for h in hunks}
	result = ApplyResult()
	logger.debug("Applying %d commit groups with %s staging", len(groups), strategy.value)

	for index, group in enumerate(groups, start=1):
		if on_progress:
			on_progress(index, group)
		try:
			reset_all_staged()
			stage_selected_hunks([by_id[i] for i in group.hunk_ids], strategy)
			commit_changes(group.commit_message)
		except GitError as e:
			logger.debug("Failed to commit group %s", group.id, exc_info=True)
			result.failed_group = group
			result.error = str(e)
			_clear_index()
			return result
		result.committed.append(group)
	return result


def _clear_index() -> None:
	try:
		reset_all_staged()
	except GitError:
		logger.warning("Could not reset the index after a failed commit")
