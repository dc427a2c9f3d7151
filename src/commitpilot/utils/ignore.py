"""Gitignore-style matching for the global ignore list and exclude globs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pathspec

if TYPE_CHECKING:
	from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)


def build_ignore_spec(patterns: Iterable[str]) -> pathspec.GitIgnoreSpec:
	"""Compile patterns with gitignore semantics."""
	return pathspec.GitIgnoreSpec.from_lines([p for p in patterns if p.strip()])


def is_ignored(file_path: str, patterns: Sequence[str]) -> bool:
	"""Whether a repository-relative path matches any pattern."""
	if not patterns:
		return False
	return build_ignore_spec(patterns).match_file(file_path)


def matching_patterns(file_path: str, patterns: Sequence[str]) -> list[str]:
	"""Patterns that individually match a path, in their configured order."""
	return [p for p in patterns if build_ignore_spec([p]).match_file(file_path)]


def filter_ignored(paths: Iterable[str], patterns: Sequence[str]) -> list[str]:
	"""
	Drop paths matched by the patterns.

	Args:
	    paths: Repository-relative file paths
	    patterns: Gitignore-style patterns

	Returns:
	    The paths that are not ignored, order preserved

	"""
	paths = list(paths)
	if not patterns:
		return paths
	spec = build_ignore_spec(patterns)
	kept = [p for p in paths if not spec.match_file(p)]
	if len(kept) != len(paths):
		logger.debug("Ignored %d of %d paths", len(paths) - len(kept), len(paths))
	return kept
