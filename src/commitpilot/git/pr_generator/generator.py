"""Generate pull request titles and descriptions from a branch diff."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError, field_validator

from commitpilot.git.commit_generator.prompts import pr_system_prompt, pr_user_prompt

if TYPE_CHECKING:
	from collections.abc import Sequence

	from commitpilot.llm.client import CompletionClient

logger = logging.getLogger(__name__)

MAX_DIFF_LENGTH = 50000
FALLBACK_TITLE = "Update code"
FALLBACK_DESCRIPTION = "Updated code with various improvements."

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_TITLE_PREFIX = re.compile(r"^title:\s*", re.IGNORECASE)

# Checked in order; the first matching rule wins
_CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
	(
		"Configuration",
		("config", ".json", ".yml", ".yaml", ".env", "package.json", "tsconfig", ".rc", "dockerfile", "makefile"),
	),
	("Tests", ("test", "spec", "__tests__", ".test.", ".spec.")),
	("Documentation", ("readme", ".md", "doc", "changelog", "license")),
	("Build/CI", (".github", "ci", "build", "webpack", "rollup", "vite")),
]
_EXTENSION_RULES: list[tuple[str, tuple[str, ...]]] = [
	("TypeScript/JavaScript", (".ts", ".js", ".tsx", ".jsx")),
	("Python", (".py",)),
	("Java/Kotlin", (".java", ".kt")),
	("Go", (".go",)),
	("Rust", (".rs",)),
	("Styles", (".css", ".scss", ".less")),
	("HTML", (".html", ".htm")),
]


class PRContent(BaseModel):
	"""Title and markdown description of a pull request."""

	title: str
	description: str

	@field_validator("title", "description")
	@classmethod
	def _strip_required(cls, value: str) -> str:
		value = value.strip()
		if not value:
			msg = "must not be empty"
			raise ValueError(msg)
		return value


@dataclass(frozen=True)
class ChangeAnalysis:
	"""Size and shape of a branch diff."""

	files: list[str]
	additions: int
	deletions: int
	categories: dict[str, list[str]]


def file_category(file_path: str) -> str:
	"""Rough category of a changed file, used to summarise the PR."""
	path = file_path.lower()
	for name, needles in _CATEGORY_RULES:
		if any(needle in path for needle in needles):
			return name
	for name, extensions in _EXTENSION_RULES:
		if path.endswith(extensions):
			return name
	return "Other"


def categorize_files(files: Sequence[str]) -> dict[str, list[str]]:
	"""Group files by category, keeping first-seen category order."""
	categories: dict[str, list[str]] = {}
	for file_path in files:
		categories.setdefault(file_category(file_path), []).append(file_path)
	return categories


def analyze_changes(diff: str, files: Sequence[str]) -> ChangeAnalysis:
	"""Count added and removed lines and categorise the changed files."""
	additions = deletions = 0
	for line in diff.splitlines():
		if line.startswith("+") and not line.startswith("+++"):
			additions += 1
		elif line.startswith("-") and not line.startswith("---"):
			deletions += 1
	return ChangeAnalysis(list(files), additions, deletions, categorize_files(files))


def truncate_diff(diff: str, limit: int = MAX_DIFF_LENGTH) -> str:
	"""Cut the diff to limit characters and say how much was left out."""
	if len(diff) <= limit:
		return diff
	remaining = len(diff) - limit
	return f"{diff[:limit]}\n\n[DIFF TRUNCATED - {remaining} more characters not shown for brevity]"


def parse_pr_response(response: str) -> PRContent:
	"""
	Read the model's answer.

	A JSON object with title and description is preferred. Anything else is
	read as a first-line title followed by the description.

	"""
	match = _JSON_OBJECT.search(response)
	if match:
		try:
			return PRContent.model_validate(json.loads(match.group(0)))
		except (json.JSONDecodeError, ValidationError):
			logger.debug("PR response JSON was unusable, falling back to line parsing", exc_info=True)

	lines = [line for line in response.splitlines() if line.strip()]
	title = _TITLE_PREFIX.sub("", lines[0]).strip() if lines else ""
	description = "\n".join(lines[1:]).strip()
	return PRContent(title=title or FALLBACK_TITLE, description=description or FALLBACK_DESCRIPTION)


def basic_pr_content(base_branch: str, head_branch: str, files: Sequence[str]) -> PRContent:
	"""Content used when the model could not produce any."""
	file_list = "\n".join(f"- {f}" for f in files)
	description = "\n".join(
		[
			"## Changes",
			"",
			f"This PR includes changes from `{head_branch}` to be merged into `{base_branch}`.",
			"",
			"### Files changed:",
			file_list,
			"",
			"### Summary",
			"",
			"Please review the changes and provide a description of what this PR accomplishes.",
		]
	)
	return PRContent(title=f"Merge {head_branch} into {base_branch}", description=description)


class PRContentGenerator:
	"""Asks the model for a PR title and description."""

	def __init__(self, client: CompletionClient, locale: str = "en") -> None:
		"""
		Initialize the generator.

		Args:
		    client: Completion client to use
		    locale: Response language

		"""
		self.client = client
		self.locale = locale

	async def generate(self, diff: str, files: Sequence[str], base_branch: str, head_branch: str) -> PRContent:
		"""
		Generate PR content for the changes from head_branch into base_branch.

		Raises:
		    LLMError: If the provider call fails

		"""
		analysis = analyze_changes(diff, files)
		logger.debug(
			"PR analysis: %d files, +%d -%d, categories %s",
			len(analysis.files),
			analysis.additions,
			analysis.deletions,
			list(analysis.categories),
		)
		prompt = pr_user_prompt(
			base_branch,
			head_branch,
			len(analysis.files),
			analysis.additions,
			analysis.deletions,
			analysis.categories,
			truncate_diff(diff),
			self.locale,
		)
		completions = await self.client.generate_completion(
			[
				{"role": "system", "content": pr_system_prompt()},
				{"role": "user", "content": prompt},
			]
		)
		return parse_pr_response(completions[0] if completions else "")
