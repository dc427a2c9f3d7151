"""Split uncommitted changes into several logical commits."""

from .schemas import CommitGroup, HunkReference, SplitProposal, SplitValidationError

__all__ = ["CommitGroup", "HunkReference", "SplitProposal", "SplitValidationError"]
