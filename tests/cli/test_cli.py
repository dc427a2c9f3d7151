"""Tests for the typer command-line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from pydantic_ai.messages import ModelResponse, TextPart, ToolCallPart
from pydantic_ai.models.function import FunctionModel
from typer.testing import CliRunner

from commitpilot import __version__
from commitpilot.cli import app
from commitpilot.config import ConfigLoader
from commitpilot.llm.client import CompletionClient
from commitpilot.llm.tools.commit_tools import FINISH_TOOL_NAME
from tests.base import git

if TYPE_CHECKING:
	from pathlib import Path

	from pydantic_ai.messages import ModelMessage
	from pydantic_ai.models.function import AgentInfo

runner = CliRunner()


def saved_config(config_home: Path) -> dict:
	"""Read the configuration file written under the XDG home."""
	return yaml.safe_load((config_home / "commitpilot" / "config.yml").read_text(encoding="utf-8"))


@pytest.mark.cli
class TestVersion:
	"""Version output."""

	def test_version_command(self) -> None:
		"""The version command prints the version and usage."""
		result = runner.invoke(app, ["version"])

		assert result.exit_code == 0
		assert f"Version: {__version__}" in result.stdout
		assert "commitpilot agent --split" in result.stdout

	def test_version_flag(self) -> None:
		"""--version prints only the version line."""
		result = runner.invoke(app, ["--version"])

		assert result.exit_code == 0
		assert result.stdout.strip() == f"CommitPilot version: {__version__}"


@pytest.mark.cli
@pytest.mark.fs
class TestIgnoreCommands:
	"""Managing the global ignore list."""

	def test_list_empty(self) -> None:
		"""An empty list says so."""
		result = runner.invoke(app, ["ignore", "list"])

		assert result.exit_code == 0
		assert "No global ignore patterns configured." in result.stdout

	def test_add_list_remove(self, isolated_config: Path) -> None:
		"""Patterns are saved, listed and removed again."""
		assert "✅ Added ignore pattern: *.min.js" in runner.invoke(app, ["ignore", "add", "*.min.js"]).stdout
		assert "already in the ignore list" in runner.invoke(app, ["ignore", "add", "*.min.js"]).stdout
		runner.invoke(app, ["ignore", "add", "dist/"])
		assert saved_config(isolated_config)["global_ignore"] == ["*.min.js", "dist/"]

		listing = runner.invoke(app, ["ignore", "list"]).stdout
		assert "1. *.min.js" in listing
		assert "2. dist/" in listing

		assert "✅ Removed ignore pattern: dist/" in runner.invoke(app, ["ignore", "remove", "dist/"]).stdout
		assert "not found in the ignore list" in runner.invoke(app, ["ignore", "remove", "dist/"]).stdout
		assert saved_config(isolated_config)["global_ignore"] == ["*.min.js"]

	def test_test_file(self) -> None:
		"""The test subcommand reports the matching patterns."""
		runner.invoke(app, ["ignore", "add", "*.js"])
		runner.invoke(app, ["ignore", "add", "dist/"])

		ignored = runner.invoke(app, ["ignore", "test", "dist/app.js"]).stdout
		kept = runner.invoke(app, ["ignore", "test", "src/app.py"]).stdout

		assert '"dist/app.js" would be IGNORED.' in ignored
		assert "Matched by pattern(s): *.js, dist/" in ignored
		assert '"src/app.py" would NOT be ignored.' in kept


@pytest.mark.cli
@pytest.mark.fs
class TestConfigCommands:
	"""Setting and reading profile values."""

	def test_set_and_get(self, isolated_config: Path) -> None:
		"""A value set on a profile can be read back."""
		result = runner.invoke(app, ["config", "set", "model", "gpt-4o", "--profile", "work"])

		assert result.exit_code == 0
		assert 'Configuration property "model" set to "gpt-4o" in profile "work".' in result.stdout
		assert saved_config(isolated_config)["profiles"]["work"] == {"model": "gpt-4o"}

		result = runner.invoke(app, ["config", "get", "model", "-p", "work"])
		assert result.exit_code == 0
		assert "model = gpt-4o" in result.stdout

	def test_api_key_is_masked(self) -> None:
		"""API keys are never echoed in full."""
		set_result = runner.invoke(app, ["config", "set", "api_key", "sk-secret-value"])
		get_result = runner.invoke(app, ["config", "get", "api_key"])

		assert "sk-secret-value" not in set_result.stdout
		assert '"********"' in set_result.stdout
		assert "api_key = sk-s…" in get_result.stdout
		assert ConfigLoader.get_instance().resolve().api_key == "sk-secret-value"

	@pytest.mark.parametrize(
		"args",
		[
			["config", "set", "colour", "blue"],
			["config", "set", "max_length", "0"],
			["config", "get", "colour"],
			["config", "get", "model", "--profile", "missing"],
		],
	)
	def test_errors_exit_with_one(self, args: list[str]) -> None:
		"""Invalid keys, values and profiles exit with status 1."""
		assert runner.invoke(app, args).exit_code == 1


@pytest.mark.cli
class TestCommandDispatch:
	"""Options reach the command implementations."""

	def test_commit_options(self) -> None:
		"""Commit options are passed on as profile overrides."""
		with patch("commitpilot.cli.commit_cmd._commit_command_impl", new_callable=AsyncMock) as impl:
			result = runner.invoke(app, ["commit", "-a", "--model", "gpt-4o", "-x", "*.lock", "--locale", "fr"])

		assert result.exit_code == 0
		kwargs = impl.await_args.kwargs
		assert kwargs["stage_all"] is True
		assert kwargs["model"] == "gpt-4o"
		assert kwargs["exclude"] == ["*.lock"]
		assert kwargs["locale"] == "fr"
		assert kwargs["profile"] is None

	def test_bare_invocation_runs_commit(self) -> None:
		"""Running without a subcommand starts the commit flow."""
		with patch("commitpilot.cli.commit_cmd._commit_command_impl", new_callable=AsyncMock) as impl:
			result = runner.invoke(app, [])

		assert result.exit_code == 0
		impl.assert_awaited_once_with(profile=None, stage_all=False)

	def test_agent_split(self) -> None:
		"""--split selects the splitting workflow."""
		with patch("commitpilot.cli.agent_cmd._agent_command_impl", new_callable=AsyncMock) as impl:
			result = runner.invoke(app, ["agent", "--split", "-p", "work"])

		assert result.exit_code == 0
		assert impl.await_args.kwargs["split"] is True
		assert impl.await_args.kwargs["profile"] == "work"

	def test_pr_options(self) -> None:
		"""PR branches and the draft flag are forwarded."""
		with patch("commitpilot.cli.pr_cmd._pr_command_impl", new_callable=AsyncMock) as impl:
			result = runner.invoke(app, ["pr", "--base", "main", "--head", "feature", "--draft"])

		assert result.exit_code == 0
		kwargs = impl.await_args.kwargs
		assert (kwargs["base"], kwargs["head"], kwargs["draft"]) == ("main", "feature", True)


@pytest.mark.cli
@pytest.mark.git
class TestCommitErrors:
	"""User-facing failures end with exit status 1."""

	def test_outside_repository(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
		"""Running outside a git repository fails cleanly."""
		monkeypatch.chdir(tmp_path)

		result = runner.invoke(app, ["commit"])

		assert result.exit_code == 1

	def test_missing_model(self, git_repo: Path) -> None:  # noqa: ARG002
		"""A profile without a model stops before any request is made."""
		result = runner.invoke(app, ["commit"])

		assert result.exit_code == 1
		assert "No model configured" in result.stdout


TEMPLATE = "\n# Please enter the commit message for your changes.\n"


def finishing_model(messages: list[ModelMessage], _info: AgentInfo) -> ModelResponse:
	"""Finish with a fixed message on the first request, then close with text."""
	if any(isinstance(m, ModelResponse) for m in messages):
		return ModelResponse(parts=[TextPart("Done")])
	args = {"commit_message": "Strip input in parser", "commit_body": "* Ignore surrounding whitespace"}
	return ModelResponse(parts=[ToolCallPart(FINISH_TOOL_NAME, args)])


def unreachable_model(_messages: list[ModelMessage], _info: AgentInfo) -> ModelResponse:
	"""Fail like a provider that cannot be reached."""
	msg = "connection refused"
	raise RuntimeError(msg)


@pytest.mark.cli
@pytest.mark.git
class TestPrepareCommitMsgHook:
	"""The prepare-commit-msg hook fills in the message and never blocks the commit."""

	@pytest.fixture
	def message_file(self, git_repo: Path) -> Path:
		"""A staged edit and the message file git hands to the hook."""
		(git_repo / "parser.py").write_text("def parse(text):\n    return text\n", encoding="utf-8")
		git(git_repo, "add", "parser.py")
		git(git_repo, "commit", "--quiet", "-m", "Add parser")
		(git_repo / "parser.py").write_text("def parse(text):\n    return text.strip()\n", encoding="utf-8")
		git(git_repo, "add", "parser.py")
		path = git_repo / ".git" / "COMMIT_EDITMSG"
		path.write_text(TEMPLATE, encoding="utf-8")
		return path

	def test_writes_generated_message(self, message_file: Path) -> None:
		"""Subject and body replace the template."""
		client = CompletionClient(FunctionModel(finishing_model))
		with patch("commitpilot.cli.common.create_completion_client", return_value=client):
			result = runner.invoke(app, ["prepare-commit-msg", str(message_file)])

		assert result.exit_code == 0
		expected = "Strip input in parser\n\n* Ignore surrounding whitespace"
		assert message_file.read_text(encoding="utf-8") == expected

	def test_failure_keeps_template_and_exits_cleanly(self, message_file: Path) -> None:
		"""A provider failure leaves the file alone and still exits with status 0."""
		client = CompletionClient(FunctionModel(unreachable_model))
		with patch("commitpilot.cli.common.create_completion_client", return_value=client):
			result = runner.invoke(app, ["prepare-commit-msg", str(message_file)])

		assert result.exit_code == 0
		assert message_file.read_text(encoding="utf-8") == TEMPLATE

	def test_missing_model_exits_cleanly(self, message_file: Path) -> None:
		"""An unconfigured profile does not fail the commit."""
		result = runner.invoke(app, ["prepare-commit-msg", str(message_file)])

		assert result.exit_code == 0
		assert message_file.read_text(encoding="utf-8") == TEMPLATE

	def test_message_from_command_line_is_kept(self, message_file: Path) -> None:
		"""Messages given with -m are not replaced."""
		with patch("commitpilot.cli.common.create_completion_client") as factory:
			result = runner.invoke(app, ["prepare-commit-msg", str(message_file), "message"])

		assert result.exit_code == 0
		factory.assert_not_called()
		assert message_file.read_text(encoding="utf-8") == TEMPLATE

	def test_nothing_staged(self, message_file: Path, git_repo: Path) -> None:
		"""Without staged changes no request is made."""
		git(git_repo, "reset", "--quiet")
		with patch("commitpilot.cli.common.create_completion_client") as factory:
			result = runner.invoke(app, ["prepare-commit-msg", str(message_file)])

		assert result.exit_code == 0
		factory.assert_not_called()
