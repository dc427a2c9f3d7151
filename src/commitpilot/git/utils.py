"""Git utilities for CommitPilot."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Lock files rarely help describe a change and can be huge
DEFAULT_EXCLUDES = ["package-lock.json", "pnpm-lock.yaml", "*.lock"]

# Subjects dropped from style examples
STYLE_EXAMPLE_SKIP_PREFIXES = ("revert", "merge")

LOG_FIELD_SEPARATOR = "\x1f"
LOG_RECORD_SEPARATOR = "\x1e"


class GitError(Exception):
	"""Custom exception for Git-related errors."""


class NotAGitRepositoryError(GitError):
	"""Raised when the working directory is not inside a Git repository."""


class CommitFailedError(GitError):
	"""Raised when git refuses to create a commit."""


class NoStagedChangesError(GitError):
	"""Raised when a command needs staged changes and there are none."""


@dataclass
class StagedDiff:
	"""Staged changes: the list of files and the unified diff text."""

	files: list[str]
	diff: str


@dataclass
class BranchDiff:
	"""Changes between two branches."""

	files: list[str]
	diff: str


@dataclass
class GitStatus:
	"""Structured view of `git status`."""

	staged: list[str] = field(default_factory=list)
	modified: list[str] = field(default_factory=list)
	untracked: list[str] = field(default_factory=list)
	deleted: list[str] = field(default_factory=list)

	def is_clean(self) -> bool:
		"""Return True when nothing is staged, modified, untracked or deleted."""
		return not (self.staged or self.modified or self.untracked or self.deleted)


@dataclass
class CommitInfo:
	"""A single entry of the commit log."""

	hash: str
	message: str
	author: str
	date: str


@dataclass
class BranchTrackingStatus:
	"""Relation of a local branch to its upstream."""

	has_remote: bool
	ahead: int = 0
	behind: int = 0
	remote_branch: str | None = None


def run_git_command(command: list[str], cwd: Path | str | None = None, input_text: str | None = None) -> str:
	"""
	Run a Git command and return its output.

	Args:
	    command: Git command to run, including the leading "git"
	    cwd: Working directory (optional)
	    input_text: Text piped to the command's stdin (optional)

	Returns:
	    Command output as string

	Raises:
	    GitError: If the command fails or git is not installed

	"""
	try:
		result = subprocess.run(  # noqa: S603
			command,
			cwd=cwd,
			capture_output=True,
			text=True,
			check=True,
			input=input_text,
			encoding="utf-8",
		)
	except subprocess.CalledProcessError as e:
		error_msg = f"Git command failed: {' '.join(command)}\nError: {e.stderr}"
		logger.debug(error_msg)
		raise GitError(error_msg) from e
	except FileNotFoundError as e:
		msg = "git executable not found in PATH"
		raise GitError(msg) from e
	return result.stdout


def _exclude_pathspec(pattern: str) -> str:
	return f":(exclude){pattern}"


def _exclude_args(exclude: list[str] | None) -> list[str]:
	return [_exclude_pathspec(p) for p in [*DEFAULT_EXCLUDES, *(exclude or [])]]


def _split_lines(output: str) -> list[str]:
	return [line for line in output.splitlines() if line.strip()]


def assert_git_repo(path: Path | None = None) -> Path:
	"""
	Get the root directory of the Git repository.

	Args:
	    path: Optional path to start searching from

	Returns:
	    Path to repository root

	Raises:
	    NotAGitRepositoryError: If not in a Git repository

	"""
	try:
		result = run_git_command(["git", "rev-parse", "--show-toplevel"], path)
	except GitError as e:
		msg = "The current directory must be a Git repository!"
		raise NotAGitRepositoryError(msg) from e
	return Path(result.strip())


def stage_all() -> None:
	"""Stage every change in the working tree."""
	try:
		run_git_command(["git", "add", "--all"])
	except GitError as e:
		msg = "Failed to stage all files"
		raise GitError(msg) from e


def stage_files(paths: list[str]) -> None:
	"""
	Stage the given files.

	Deleted files are staged as removals.

	Args:
	    paths: Paths relative to the repository root

	"""
	if not paths:
		return
	run_git_command(["git", "add", "--all", "--", *paths])


def unstage_files(paths: list[str]) -> None:
	"""Remove the given files from the index without touching the working tree."""
	if not paths:
		return
	try:
		run_git_command(["git", "restore", "--staged", "--", *paths])
	except GitError:
		# Repositories without commits have nothing to restore from
		run_git_command(["git", "rm", "--cached", "-r", "--quiet", "--", *paths])


def reset_all_staged() -> None:
	"""Unstage everything, keeping working tree changes."""
	try:
		run_git_command(["git", "reset", "--quiet"])
	except GitError:
		logger.debug("git reset failed, assuming an unborn branch")
		staged = get_staged_file_names(include_default_excludes=False)
		if staged:
			run_git_command(["git", "rm", "--cached", "-r", "--quiet", "--", *staged])


def save_index() -> str:
	"""
	Write the current index as a tree object.

	Returns:
	    The tree hash, to be passed to restore_index

	Raises:
	    GitError: If the index cannot be written, for example during a merge conflict

	"""
	return run_git_command(["git", "write-tree"]).strip()


def restore_index(tree: str) -> None:
	"""Replace the index with a tree saved by save_index. The working tree is untouched."""
	run_git_command(["git", "read-tree", tree])


def get_staged_file_names(exclude: list[str] | None = None, include_default_excludes: bool = True) -> list[str]:
	"""
	List staged file paths.

	Args:
	    exclude: Extra glob patterns to leave out
	    include_default_excludes: Whether lock files are left out as well

	Returns:
	    Staged file paths relative to the repository root

	"""
	args = ["git", "diff", "--cached", "--name-only", "--diff-algorithm=minimal"]
	if include_default_excludes or exclude:
		patterns = _exclude_args(exclude) if include_default_excludes else [_exclude_pathspec(p) for p in exclude or []]
		args.extend(["--", ".", *patterns])
	try:
		return _split_lines(run_git_command(args))
	except GitError as e:
		msg = "Failed to get staged file names"
		raise GitError(msg) from e


def get_staged_diff(exclude: list[str] | None = None, context_lines: int = 3) -> StagedDiff | None:
	"""
	Get the staged diff, skipping lock files and the given globs.

	Args:
	    exclude: Glob patterns to leave out of the diff
	    context_lines: Number of context lines around each change

	Returns:
	    StagedDiff, or None when nothing relevant is staged

	Raises:
	    GitError: If git fails

	"""
	pathspecs = ["--", ".", *_exclude_args(exclude)]
	try:
		files = _split_lines(
			run_git_command(["git", "diff", "--cached", "--diff-algorithm=minimal", "--name-only", *pathspecs])
		)
		if not files:
			return None
		diff = run_git_command(
			["git", "diff", f"-U{context_lines}", "--cached", "--diff-algorithm=minimal", *pathspecs]
		)
	except GitError as e:
		msg = "Failed to get staged diff"
		raise GitError(msg) from e
	return StagedDiff(files=files, diff=diff)


def get_working_diff(context_lines: int = 3) -> str | None:
	"""
	Get the diff of unstaged changes to tracked files.

	Returns:
	    The diff text, or None when the working tree matches the index

	"""
	try:
		diff = run_git_command(["git", "diff", f"-U{context_lines}", "--diff-algorithm=minimal"])
	except GitError as e:
		msg = "Failed to get working directory diff"
		raise GitError(msg) from e
	return diff or None


def get_staged_file_content(file_path: str) -> str:
	"""Return the content of a file as it is in the index."""
	try:
		return run_git_command(["git", "show", f":{file_path}"])
	except GitError as e:
		msg = f"Failed to get staged content for file: {file_path}"
		raise GitError(msg) from e


def get_staged_file_lines(file_path: str, start_line: int = 1, line_count: int | None = None) -> str:
	"""
	Read a slice of a file's staged content.

	Args:
	    file_path: Path relative to the repository root
	    start_line: 1-based first line to return
	    line_count: Number of lines to return, or everything after start_line

	Returns:
	    The selected lines joined with newlines

	Raises:
	    GitError: If the file cannot be read or start_line is past the end

	"""
	content = get_staged_file_content(file_path)
	lines = content.split("\n")
	start_index = max(0, start_line - 1)
	if start_index >= len(lines):
		msg = (
			f"Failed to get staged content for file: {file_path} - "
			f"Start line {start_line} is beyond the file length ({len(lines)} lines)"
		)
		raise GitError(msg)
	end_index = min(len(lines), start_index + line_count) if line_count else len(lines)
	return "\n".join(lines[start_index:end_index])


def get_staged_file_diff(file_path: str, context_lines: int = 3) -> str:
	"""Return the staged diff of a single file."""
	try:
		return run_git_command(["git", "diff", f"-U{context_lines}", "--cached", "--", file_path])
	except GitError as e:
		msg = f"Failed to get diff for staged file: {file_path}"
		raise GitError(msg) from e


def commit_changes(message: str) -> None:
	"""
	Create a commit from the index.

	Raises:
	    CommitFailedError: If git refuses the commit

	"""
	try:
		run_git_command(["git", "commit", "-m", message])
	except GitError as e:
		msg = "Failed to commit changes"
		raise CommitFailedError(msg) from e


def _parse_log(output: str) -> list[CommitInfo]:
	commits = []
	for record in output.split(LOG_RECORD_SEPARATOR):
		record = record.strip("\n")
		if not record:
			continue
		parts = record.split(LOG_FIELD_SEPARATOR)
		if len(parts) < 4:  # noqa: PLR2004
			continue
		commit_hash, message, author, date = parts[:4]
		commits.append(CommitInfo(hash=commit_hash[:8], message=message.strip(), author=author, date=date))
	return commits


def _log(count: int, extra: list[str] | None = None, body: bool = False) -> list[CommitInfo]:
	message_format = "%B" if body else "%s"
	pretty = LOG_FIELD_SEPARATOR.join(["%H", message_format, "%an", "%ad"]) + LOG_RECORD_SEPARATOR
	command = ["git", "log", f"--max-count={count}", f"--pretty=format:{pretty}", "--date=short", *(extra or [])]
	try:
		return _parse_log(run_git_command(command))
	except GitError as e:
		if "does not have any commits" in str(e):
			return []
		raise


def get_commit_history(count: int = 5) -> list[CommitInfo]:
	"""Return the most recent commits, newest first."""
	try:
		return _log(count)
	except GitError as e:
		msg = "Failed to get commit history"
		raise GitError(msg) from e


def get_recent_commit_messages(count: int = 5) -> list[str]:
	"""Return the full messages of the most recent commits."""
	try:
		return [c.message for c in _log(count, body=True)]
	except GitError as e:
		msg = "Failed to get commit messages"
		raise GitError(msg) from e


def get_commit_message_style_examples(count: int = 5) -> list[CommitInfo]:
	"""
	Return recent subjects that show the repository's commit style.

	Reverts, merges and empty subjects are skipped. Three times the requested
	count is fetched so filtering still leaves enough examples.

	"""
	try:
		commits = _log(count * 3)
	except GitError as e:
		msg = "Failed to get commit message style examples"
		raise GitError(msg) from e

	examples = []
	for commit in commits:
		lowered = commit.message.lower()
		if lowered.startswith(STYLE_EXAMPLE_SKIP_PREFIXES) or "revert:" in lowered or not commit.message.strip():
			continue
		examples.append(commit)
	return examples[:count]


def get_file_commit_history(file_path: str, count: int = 10) -> list[CommitInfo]:
	"""Return the last commits that touched a file."""
	try:
		return _log(count, ["--follow", "--", file_path])
	except GitError as e:
		msg = f"Failed to get commit history for file: {file_path}"
		raise GitError(msg) from e


def get_status() -> GitStatus:
	"""
	Get the repository status.

	Returns:
	    GitStatus with staged, modified, untracked and deleted paths

	"""
	try:
		output = run_git_command(["git", "status", "--porcelain=v1", "--untracked-files=all"])
	except GitError as e:
		msg = "Failed to get git status"
		raise GitError(msg) from e

	status = GitStatus()
	for line in output.splitlines():
		if len(line) < 4:  # noqa: PLR2004
			continue
		index_state, worktree_state, path = line[0], line[1], line[3:]
		if " -> " in path:
			path = path.split(" -> ", 1)[1]
		if index_state == "?" and worktree_state == "?":
			status.untracked.append(path)
			continue
		if index_state not in (" ", "?"):
			status.staged.append(path)
		if worktree_state == "M":
			status.modified.append(path)
		elif worktree_state == "D":
			status.deleted.append(path)
	return status


def list_directory(directory: str = ".", include_hidden: bool = False) -> list[str]:
	"""
	List entries of a directory inside the repository.

	Returns:
	    Lines of the form "dir: name" or "file: name"

	"""
	root = assert_git_repo()
	full_path = (root / directory).resolve()
	if root.resolve() not in (full_path, *full_path.parents):
		msg = f"Directory is outside the repository: {directory}"
		raise GitError(msg)
	entries = []
	for item in sorted(full_path.iterdir(), key=lambda p: p.name):
		if not include_hidden and item.name.startswith("."):
			continue
		kind = "dir" if item.is_dir() else "file"
		entries.append(f"{kind}: {item.name}")
	return entries


def get_current_branch() -> str:
	"""Return the checked out branch name."""
	try:
		return run_git_command(["git", "rev-parse", "--abbrev-ref", "HEAD"]).strip()
	except GitError as e:
		msg = "Failed to get current branch"
		raise GitError(msg) from e


def branch_exists(branch: str) -> bool:
	"""Return True if the branch resolves locally or on origin."""
	for ref in (branch, f"origin/{branch}"):
		try:
			run_git_command(["git", "rev-parse", "--verify", "--quiet", ref])
		except GitError:
			continue
		return True
	return False


def get_default_branch() -> str:
	"""
	Guess the repository's default branch.

	Uses origin/HEAD when it is known, otherwise the first of main or master
	that exists.

	"""
	try:
		ref = run_git_command(["git", "symbolic-ref", "--short", "refs/remotes/origin/HEAD"]).strip()
		if ref:
			return ref.removeprefix("origin/")
	except GitError:
		logger.debug("origin/HEAD is not set, probing common branch names")

	for candidate in ("main", "master"):
		if branch_exists(candidate):
			return candidate
	msg = "Could not determine the default branch. Pass --base explicitly."
	raise GitError(msg)


def get_commit_hash(ref: str) -> str:
	"""Resolve a ref to its full commit hash."""
	return run_git_command(["git", "rev-parse", ref]).strip()


def get_branch_tracking_status(branch: str) -> BranchTrackingStatus:
	"""Return how far a branch is ahead of and behind its upstream."""
	try:
		upstream = run_git_command(["git", "rev-parse", "--abbrev-ref", f"{branch}@{{upstream}}"]).strip()
	except GitError:
		return BranchTrackingStatus(has_remote=False)

	counts = run_git_command(["git", "rev-list", "--left-right", "--count", f"{branch}...{upstream}"]).split()
	ahead, behind = (int(counts[0]), int(counts[1])) if len(counts) == 2 else (0, 0)  # noqa: PLR2004
	return BranchTrackingStatus(has_remote=True, ahead=ahead, behind=behind, remote_branch=upstream)


def fetch_from_remote(remote: str = "origin") -> None:
	"""Fetch the latest refs from a remote."""
	run_git_command(["git", "fetch", remote])


def get_branch_diff(base: str, head: str) -> BranchDiff:
	"""
	Get the changes on head since it diverged from base.

	Raises:
	    GitError: If either branch cannot be resolved

	"""
	files = _split_lines(run_git_command(["git", "diff", "--name-only", f"{base}...{head}"]))
	diff = run_git_command(["git", "diff", "--diff-algorithm=minimal", f"{base}...{head}"]) if files else ""
	return BranchDiff(files=files, diff=diff)


def get_detected_message(files: list[str]) -> str:
	"""Return a "Detected N staged files" line."""
	plural = "s" if len(files) > 1 else ""
	return f"Detected {len(files):,} staged file{plural}"
