"""CommitPilot - AI-assisted commits, commit splitting and pull requests."""

from __future__ import annotations

__version__ = "0.4.0"
__author__ = "CommitPilot contributors"
