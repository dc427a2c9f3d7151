"""Global test fixtures and configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from commitpilot.config import ConfigLoader
from tests.base import git

if TYPE_CHECKING:
	from collections.abc import Iterator
	from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
	"""Point the configuration loader at an empty XDG home and reset its singleton."""
	config_home = tmp_path_factory.mktemp("xdg")
	monkeypatch.setattr("commitpilot.config.config_loader.xdg_config_home", str(config_home))
	monkeypatch.setenv("HOME", str(config_home))
	monkeypatch.delenv("COMMITPILOT_PROFILE", raising=False)
	ConfigLoader._instance = None  # noqa: SLF001
	yield config_home
	ConfigLoader._instance = None  # noqa: SLF001


@pytest.fixture
def git_repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
	"""An empty repository with a committer identity, used as the working directory."""
	repo = tmp_path / "repo"
	repo.mkdir()
	git(repo, "init", "--quiet", "--initial-branch=main")
	git(repo, "config", "user.name", "Test User")
	git(repo, "config", "user.email", "test@example.com")
	git(repo, "config", "commit.gpgsign", "false")
	monkeypatch.chdir(repo)
	return repo
