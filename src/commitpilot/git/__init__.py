"""Git utilities for CommitPilot."""

from commitpilot.git.hunks import ChangeHunk, HunkLine, StagingStrategy
from commitpilot.git.utils import (
	CommitFailedError,
	GitError,
	NoStagedChangesError,
	NotAGitRepositoryError,
	StagedDiff,
	run_git_command,
)

__all__ = [
	"ChangeHunk",
	"CommitFailedError",
	"GitError",
	"HunkLine",
	"NoStagedChangesError",
	"NotAGitRepositoryError",
	"StagedDiff",
	"StagingStrategy",
	"run_git_command",
]
