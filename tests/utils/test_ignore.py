"""Tests for gitignore-style pattern matching."""

from __future__ import annotations

import warnings

import pytest

from commitpilot.utils.ignore import build_ignore_spec, filter_ignored, is_ignored, matching_patterns


@pytest.mark.unit
@pytest.mark.parametrize(
	("path", "patterns", "expected"),
	[
		("build/out.js", ["build/"], True),
		("src/build.py", ["build/"], False),
		("app.min.js", ["*.min.js"], True),
		("nested/dir/app.min.js", ["*.min.js"], True),
		("docs/api/index.md", ["docs/**"], True),
		("important.log", ["*.log", "!important.log"], False),
		("debug.log", ["*.log", "!important.log"], True),
		("anything.py", [], False),
	],
)
def test_is_ignored(path: str, patterns: list[str], expected: bool) -> None:
	"""Paths are matched with gitignore semantics."""
	assert is_ignored(path, patterns) is expected


@pytest.mark.unit
def test_matching_patterns_lists_each_match() -> None:
	"""Every pattern that matches on its own is reported in order."""
	patterns = ["*.js", "dist/", "README.md"]
	assert matching_patterns("dist/app.js", patterns) == ["*.js", "dist/"]
	assert matching_patterns("src/app.py", patterns) == []


@pytest.mark.unit
def test_filter_ignored_keeps_order() -> None:
	"""Ignored paths are dropped and the rest keep their order."""
	paths = ["src/b.py", "dist/app.js", "src/a.py", "yarn.lock"]
	assert filter_ignored(paths, ["dist/", "*.lock"]) == ["src/b.py", "src/a.py"]
	assert filter_ignored(paths, []) == paths


@pytest.mark.unit
def test_build_spec_without_deprecation_warnings() -> None:
	"""Compiling patterns uses the current pathspec API."""
	with warnings.catch_warnings():
		warnings.simplefilter("error", DeprecationWarning)
		spec = build_ignore_spec(["*.lock", "", "dist/"])

	assert spec.match_file("dist/app.js")
	assert not spec.match_file("src/app.py")
