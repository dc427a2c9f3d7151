"""Thin wrapper around the GitHub CLI."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from dataclasses import dataclass

from commitpilot.git.utils import GitError

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 256
MAX_BODY_LENGTH = 65536
BRANCH_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._/-]+$")

INSTALL_HINT = (
	"GitHub CLI (gh) is not installed or not available in PATH.\n"
	"Please install it from: https://cli.github.com/\n"
	"Or install via package manager:\n"
	"  - macOS: brew install gh\n"
	"  - Windows: winget install GitHub.cli\n"
	"  - Linux: See https://github.com/cli/cli/blob/trunk/docs/install_linux.md"
)


class PRCreationError(GitError):
	"""Error raised when there's an issue creating a pull request."""


@dataclass(frozen=True)
class RepositoryInfo:
	"""Owner and name of the GitHub repository."""

	owner: str
	repo: str


@dataclass(frozen=True)
class PullRequest:
	"""A created pull request."""

	url: str
	number: int | None
	title: str
	base: str
	head: str
	draft: bool = False


def _run_gh(args: list[str]) -> str:
	"""
	Run a gh command and return its stdout.

	Raises:
	    subprocess.CalledProcessError: If gh exits non-zero
	    FileNotFoundError: If gh is not installed

	"""
	logger.debug("Running GitHub CLI command: gh %s", " ".join(args[:3]))
	result = subprocess.run(  # noqa: S603
		["gh", *args],  # noqa: S607
		check=True,
		capture_output=True,
		text=True,
		encoding="utf-8",
	)
	return result.stdout


def validate_pr_request(title: str, body: str, base: str, head: str) -> None:
	"""
	Check PR fields before anything is sent to GitHub.

	Raises:
	    PRCreationError: If a field is empty, too long or malformed

	"""
	if not title or not title.strip():
		msg = "PR title cannot be empty"
		raise PRCreationError(msg)
	if len(title.strip()) > MAX_TITLE_LENGTH:
		msg = f"PR title is too long (maximum {MAX_TITLE_LENGTH} characters)"
		raise PRCreationError(msg)
	if not base or not base.strip() or not head or not head.strip():
		msg = "Base and head branches must be specified"
		raise PRCreationError(msg)
	if base.strip() == head.strip():
		msg = "Base and head branches cannot be the same"
		raise PRCreationError(msg)
	if body and len(body) > MAX_BODY_LENGTH:
		msg = f"PR description is too long (maximum {MAX_BODY_LENGTH} characters)"
		raise PRCreationError(msg)
	for label, branch in (("base", base), ("head", head)):
		if not BRANCH_NAME_PATTERN.match(branch.strip()):
			msg = f"Invalid {label} branch name: {branch}"
			raise PRCreationError(msg)


def _explain_create_failure(stderr: str, base: str, head: str) -> str:
	if "No commits between" in stderr:
		return (
			f"No commits found between {base} and {head}. "
			"Make sure your branch has commits that differ from the base branch."
		)
	if "not found" in stderr:
		return (
			"One of the specified branches was not found. "
			f"Please verify that both '{base}' and '{head}' branches exist."
		)
	if "authentication" in stderr:
		return "GitHub authentication failed. Please run: gh auth login"
	return f"Failed to create pull request: {stderr}\nPlease check your branch names and repository permissions."


class GitHubCLI:
	"""Pull request operations through `gh`."""

	def validate_cli(self) -> None:
		"""
		Make sure gh can be executed.

		Raises:
		    PRCreationError: If gh is missing or broken

		"""
		try:
			_run_gh(["--version"])
		except (subprocess.CalledProcessError, FileNotFoundError) as e:
			raise PRCreationError(INSTALL_HINT) from e

	def is_authenticated(self) -> bool:
		"""Whether `gh auth status` reports a logged in account."""
		try:
			result = subprocess.run(  # noqa: S603
				["gh", "auth", "status"],  # noqa: S607
				check=True,
				capture_output=True,
				text=True,
				encoding="utf-8",
			)
		except (subprocess.CalledProcessError, FileNotFoundError):
			return False
		# Older gh releases print the status to stderr
		output = f"{result.stdout}\n{result.stderr}"
		return "Logged in to github.com" in output

	def get_repository(self) -> RepositoryInfo:
		"""
		Return the owner and name of the current repository.

		Raises:
		    PRCreationError: If gh cannot see a GitHub repository here

		"""
		try:
			data = json.loads(_run_gh(["repo", "view", "--json", "owner,name"]))
			return RepositoryInfo(owner=data["owner"]["login"], repo=data["name"])
		except (subprocess.CalledProcessError, FileNotFoundError, json.JSONDecodeError, KeyError, TypeError) as e:
			msg = (
				"Failed to get repository information. Make sure you are in a GitHub repository directory.\n"
				"If this is a new repository, make sure it has been pushed to GitHub."
			)
			raise PRCreationError(msg) from e

	def find_existing_pr(self, base: str, head: str) -> str | None:
		"""URL of an open PR from head into base, or None when there is none or gh fails."""
		try:
			prs = json.loads(
				_run_gh(["pr", "list", "--base", base, "--head", head, "--json", "url", "--limit", "1"])
			)
		except (subprocess.CalledProcessError, FileNotFoundError, json.JSONDecodeError):
			logger.debug("Could not list existing pull requests", exc_info=True)
			return None
		if prs and isinstance(prs, list) and prs[0].get("url"):
			return prs[0]["url"]
		return None

	def create_pull_request(
		self,
		title: str,
		body: str,
		base: str,
		head: str,
		draft: bool = False,
	) -> PullRequest:
		"""
		Create a pull request.

		Args:
		    title: PR title
		    body: PR description in markdown
		    base: Branch to merge into
		    head: Branch with the changes
		    draft: Open the PR as a draft

		Returns:
		    The created pull request

		Raises:
		    PRCreationError: If validation fails, a PR already exists or gh refuses

		"""
		validate_pr_request(title, body, base, head)
		base, head = base.strip(), head.strip()

		existing = self.find_existing_pr(base, head)
		if existing:
			msg = f"A pull request already exists between {head} and {base}:\n{existing}"
			raise PRCreationError(msg)

		try:
			self.get_repository()
		except PRCreationError as e:
			msg = (
				"Cannot access repository information. Please verify:\n"
				"1. You are in a GitHub repository directory\n"
				"2. The repository exists on GitHub\n"
				"3. You have access to the repository\n"
				"4. GitHub CLI is properly authenticated"
			)
			raise PRCreationError(msg) from e

		cmd = ["pr", "create", "--title", title.strip(), "--body", body, "--base", base, "--head", head]
		if draft:
			cmd.append("--draft")

		try:
			output = _run_gh(cmd)
		except subprocess.CalledProcessError as e:
			stderr = (e.stderr or "").strip() or "Unknown gh error"
			logger.debug("GitHub CLI error during PR creation: %s", stderr)
			raise PRCreationError(_explain_create_failure(stderr, base, head)) from e
		except FileNotFoundError as e:
			raise PRCreationError(INSTALL_HINT) from e

		# gh pr create prints the URL of the new PR
		url = output.strip().splitlines()[-1] if output.strip() else ""
		if not url:
			msg = "Invalid PR creation response: gh did not print a URL"
			raise PRCreationError(msg)
		match = re.search(r"/pull/(\d+)$", url)
		number = int(match.group(1)) if match else None
		if number is None:
			logger.warning("Could not extract PR number from URL: %s", url)
		return PullRequest(url=url, number=number, title=title.strip(), base=base, head=head, draft=draft)
