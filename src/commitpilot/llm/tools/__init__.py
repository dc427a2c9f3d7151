"""Tools the agents use to inspect and change the repository."""

from .base import Toolbox
from .commit_tools import FINISH_TOOL_NAME, CommitToolbox
from .git_tools import PROPOSE_TOOL_NAME, SplitToolbox, format_hunks_for_model

__all__ = [
	"FINISH_TOOL_NAME",
	"PROPOSE_TOOL_NAME",
	"CommitToolbox",
	"SplitToolbox",
	"Toolbox",
	"format_hunks_for_model",
]
