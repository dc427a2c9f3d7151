"""Prompt templates for commit message, commit splitting and pull request generation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from collections.abc import Sequence

COMMIT_TYPE_FORMATS = {
	"": "<commit message>",
	"conventional": "<type>(<optional scope>): <commit message>",
}

# Commitlint config-conventional and conventional-changelog type descriptions
CONVENTIONAL_TYPES = {
	"build": "Changes that affect the build system or external dependencies",
	"chore": "Other changes that don't modify src or test files",
	"ci": "Changes to our CI configuration files and scripts",
	"docs": "Documentation only changes",
	"feat": "A new feature",
	"fix": "A bug fix",
	"perf": "A code change that improves performance",
	"refactor": "A code change that neither fixes a bug nor adds a feature",
	"revert": "Reverts a previous commit",
	"style": "Changes that do not affect the meaning of the code (white-space, formatting, missing semi-colons, etc)",
	"test": "Adding missing tests or correcting existing tests",
}

REVISION_MARKER = "User revision prompt:"


def commit_type_description(commit_type: str) -> str:
	"""Taxonomy text for a commit type; empty for plain messages."""
	if commit_type != "conventional":
		return ""
	types = json.dumps(CONVENTIONAL_TYPES, indent=2)
	return f"Choose a type from the type-to-description JSON below that best describes the git diff:\n{types}"


def commit_format_line(commit_type: str) -> str:
	"""The required output format for a commit type."""
	return f"The output response must be in format:\n{COMMIT_TYPE_FORMATS.get(commit_type, COMMIT_TYPE_FORMATS[''])}"


def commit_message_system_prompt() -> str:
	"""System prompt for single-shot subject generation."""
	return " ".join(
		[
			"You are a git commit message generator.",
			"Your task is to write clear, concise, and descriptive commit messages that follow best practices.",
			"Always use the imperative mood and focus on the intent and impact of the change.",
			"CRITICAL: When analyzing a git diff, only consider the actual changes made "
			'(lines starting with "+" for additions or "-" for deletions).',
			'Ignore context lines and existing code that appears in the diff without "+" or "-" prefixes.',
			"Do not include file names, code snippets, or unnecessary details.",
			"Never include explanations, commentary, or formatting outside the commit message itself.",
		]
	)


def commit_message_prompt(
	locale: str,
	max_length: int,
	commit_type: str = "",
	recent_commits: Sequence[str] = (),
) -> str:
	"""
	Build the user instructions for subject generation.

	Args:
	    locale: Message language
	    max_length: Maximum subject length in characters
	    commit_type: "conventional" or "" for plain messages
	    recent_commits: Recent subjects shown as style examples

	Returns:
	    The prompt text

	"""
	lines = [
		f"Message language: {locale}",
		f"Commit message must be a maximum of {max_length} characters.",
		'Write a clear, concise, and descriptive commit message in the imperative mood (e.g., "Add feature", "Fix bug").',
		"Focus on the main intent and impact of the change. If possible, briefly mention the reason or motivation.",
		"IMPORTANT: Base the commit message only on the actual changes made "
		'(lines starting with "+" for additions or "-" for deletions).',
		"Do not describe existing code, context lines, or unchanged code that appears in the diff.",
		"Do not include file names, code snippets, or restate the diff. Do not include unnecessary words or phrases.",
		'Avoid generic messages like "update code" or "fix issue".',
		"Return only the commit message, with no extra commentary or formatting.",
	]
	if recent_commits:
		examples = "\n".join(f"- {message}" for message in recent_commits)
		lines.append(f"Match the style of these recent commit messages from this repository:\n{examples}")
	lines.append(commit_type_description(commit_type))
	lines.append(commit_format_line(commit_type))
	return "\n".join(line for line in lines if line)


def summary_prompt(locale: str) -> str:
	"""System prompt for the commit body: "*" bullets describing added lines only."""
	return "\n".join(
		[
			"Generate a concise git commit body written in present tense for the following code diff "
			"with the given specifications below:",
			f"Message language: {locale}",
			'IMPORTANT: Only describe the changes that were ADDED in this diff. Focus only on lines that start with "+" (plus sign).',
			"Do not describe existing code, context lines, or unchanged code that appears in the diff.",
			'If a line does not start with "+", it was already there and should not be mentioned in the commit body.',
			"Use bullet points for the items.",
			'Return only the bullet points using the ascii character "*". '
			"Your entire response will be passed directly into git commit.",
		]
	)


def revision_suffix(user_prompt: str) -> str:
	"""Text appended to the diff when the user asks for a revision."""
	return f"\n\n{REVISION_MARKER} {user_prompt}"


AGENT_SYSTEM_PROMPT = """\
You are an AI agent that writes git commit messages by inspecting the staged changes of a repository.
You have access to tools that allow you to:
- List the files staged for commit
- Read line ranges of staged files
- Read the staged diff of one or more files
- Read recent commit message examples from this repository
- Finish with a commit message when ready

Your goal is to:
1. Understand what the staged changes do
2. Learn the commit message style of this repository
3. Write a meaningful commit message and body

IMPORTANT GUIDELINES:
- Call get_recent_commit_message_examples before writing the message.
- The message MUST match the style of those examples: prefix convention, tense, casing, punctuation and language.
- Focus on the actual changes made (lines with + or - in diffs).
- Use imperative mood (e.g., "Add feature", "Fix bug") unless the examples clearly use another form.
- Be specific about what was changed and why.
- The body should only describe added or changed behaviour, as "*" bullet points.

CRITICAL: When you are ready, you MUST call the "finish_commit_message" tool with your commit message and optional body.
This is the only way to finish. Do not put the commit message in your regular text response."""


def agent_system_prompt() -> str:
	"""System prompt for the agentic commit generator."""
	return AGENT_SYSTEM_PROMPT


def _format_requirements(locale: str, max_length: int, commit_type: str) -> list[str]:
	lines = [
		f"Message language: {locale}",
		f"Commit message must be a maximum of {max_length} characters.",
	]
	if commit_type:
		lines.append(f"Follow the {commit_type} commit format.")
		lines.append(commit_format_line(commit_type))
	return lines


def agent_user_prompt(locale: str, max_length: int, commit_type: str = "") -> str:
	"""Task prompt for a fresh agentic generation."""
	return "\n".join(
		[
			"Please analyze the staged changes in this git repository and generate an appropriate commit message.",
			*_format_requirements(locale, max_length, commit_type),
			"",
			"Start by listing the staged files and reading their diffs.",
			"Then look at recent commit message examples to understand the typical patterns:",
			"   - Message length and format",
			"   - Language and style",
			"   - Commit type conventions (conventional commits, etc.)",
			"",
			"Then call the finish_commit_message tool with your final commit message and optional body.",
		]
	)


def agent_revision_prompt(
	current_message: str,
	current_body: str,
	user_request: str,
	locale: str,
	max_length: int,
	commit_type: str = "",
) -> str:
	"""Task prompt asking the agent to revise an existing draft."""
	return "\n".join(
		[
			"I need you to revise a commit message based on user feedback.",
			"",
			"CURRENT COMMIT MESSAGE:",
			current_message,
			"",
			"CURRENT COMMIT BODY:",
			current_body or "(empty)",
			"",
			"USER REVISION REQUEST:",
			user_request,
			"",
			"Please use your tools to re-examine the staged changes and generate a revised commit message "
			"that addresses the user's feedback.",
			*_format_requirements(locale, max_length, commit_type),
			"",
			"Ensure your revised message matches the style, language, format, and conventions of the commit history.",
			"Then call the finish_commit_message tool with your revised commit message and optional body.",
		]
	)


SPLITTING_SYSTEM_PROMPT = """\
You are an AI assistant that groups the uncommitted changes of a git repository into logical commits \
using precise hunk-level control.
You have access to tools that allow you to:
- Check git status and see what files are modified
- Get working directory changes as structured hunks
- View diffs of changes
- List files in the repository
- Read file contents
- View recent commit history, for the repository and for single files
- Stage specific hunks to try out a grouping
- Propose logical commit groupings with specific hunks when ready

Your goal is to:
1. Get the changes as structured hunks using get_working_changes_as_hunks
2. Understand what each hunk changes and how hunks relate to each other
3. Group related hunks into logical, focused commits

Guidelines for grouping hunks:
- Group related functionality together (e.g., a function implementation and its test changes)
- Separate different types of changes (bug fixes, new features, refactoring)
- Keep formatting/style hunks separate from functional changes
- Group related hunks from different files if they implement the same feature
- Consider dependencies between hunks
- Aim for 2-5 logical groups (avoid over-splitting)
- Every hunk from get_working_changes_as_hunks must be assigned to exactly one group
- Use the exact Hunk ID from get_working_changes_as_hunks

IMPORTANT GUIDELINES:
- Start by calling get_working_changes_as_hunks to see all available hunks
- If there are only minor changes or everything is closely related, propose a single group

CRITICAL: When you are ready to provide the commit groupings, you MUST call the "propose_commit_groups" tool.
Do not include the groupings in your regular text response."""


def splitting_system_prompt() -> str:
	"""System prompt for the commit-splitting negotiator."""
	return SPLITTING_SYSTEM_PROMPT


def splitting_user_prompt(locale: str, max_length: int = 140, commit_type: str = "") -> str:
	"""Task prompt for the commit-splitting negotiator."""
	lines = [
		"Please analyze the uncommitted changes in this git repository and propose logical groupings of hunks "
		"for separate commits.",
		f"Response language: {locale}",
		f"Each group title is used as a commit message and must be a maximum of {max_length} characters.",
	]
	if commit_type:
		lines.append(f"Group titles must follow the {commit_type} commit format.")
	lines.extend(
		[
			"",
			"Start by calling get_working_changes_as_hunks to see all available changes broken down into hunks.",
			"Use other available tools as needed to understand the broader context.",
			"Then call the propose_commit_groups tool with your recommended hunk groupings, "
			"using the exact Hunk ID from get_working_changes_as_hunks.",
		]
	)
	return "\n".join(lines)


def pr_system_prompt() -> str:
	"""System prompt for pull request titles and descriptions."""
	return "\n".join(
		[
			"You are an AI assistant that generates GitHub Pull Request titles and descriptions.",
			"Your task is to analyze code changes and create clear, informative PR content.",
			"",
			"GUIDELINES:",
			"- Generate a concise, descriptive PR title that summarizes the main change",
			"- Create a detailed description that explains what was changed and why",
			"- Focus on the business value and impact of the changes",
			"- Highlight important changes like breaking changes or new features",
			"",
			"RESPONSE FORMAT:",
			"You must respond with a JSON object containing exactly two fields:",
			'{"title": "PR title here", "description": "PR description here"}',
			"",
			"The description should use markdown formatting and include:",
			"- A brief summary of what was changed",
			"- Key changes organized by category when applicable",
			"- Any important notes about the implementation",
		]
	)


def pr_user_prompt(
	base_branch: str,
	head_branch: str,
	file_count: int,
	additions: int,
	deletions: int,
	categories: dict[str, list[str]],
	diff: str,
	locale: str = "en",
) -> str:
	"""
	Build the pull request prompt.

	Args:
	    base_branch: Branch the PR merges into
	    head_branch: Branch with the changes
	    file_count: Number of changed files
	    additions: Added lines in the diff
	    deletions: Removed lines in the diff
	    categories: Changed files grouped by category
	    diff: The (possibly truncated) branch diff
	    locale: Response language

	Returns:
	    The prompt text

	"""
	files_by_category = "\n".join(f"- {name}: {len(files)} files" for name, files in categories.items())
	return "\n".join(
		[
			f'Please generate a PR title and description for changes from branch "{head_branch}" to "{base_branch}".',
			f"Response language: {locale}",
			"",
			"CHANGE SUMMARY:",
			f"- {file_count} files changed",
			f"- {additions} additions, {deletions} deletions",
			"",
			"FILES BY CATEGORY:",
			files_by_category,
			"",
			"DETAILED DIFF:",
			diff,
			"",
			"Please analyze these changes and generate an appropriate PR title and description.",
			"Focus on the main purpose and impact of these changes.",
		]
	)
