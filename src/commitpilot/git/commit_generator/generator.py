"""Generator module for commit messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import asyncer

from commitpilot.git.utils import GitError, get_recent_commit_messages
from commitpilot.llm.errors import GenerationFailure, first_error

from .prompts import commit_message_prompt, commit_message_system_prompt, revision_suffix, summary_prompt
from .utils import CommitDraft, dedupe_messages, sanitize_message

if TYPE_CHECKING:
	from collections.abc import Callable

	from commitpilot.llm.client import CompletionClient, MessageDict

logger = logging.getLogger(__name__)

RECENT_COMMIT_COUNT = 5


class CommitMessageGenerator:
	"""
	Generates commit messages from a diff with plain completions.

	The subject and the body are requested concurrently and joined once
	both are done.

	"""

	def __init__(
		self,
		client: CompletionClient,
		locale: str = "en",
		max_length: int = 140,
		commit_type: str = "",
		generate: int = 1,
	) -> None:
		"""
		Initialize the commit message generator.

		Args:
		    client: Completion client to use
		    locale: Message language
		    max_length: Maximum subject length
		    commit_type: "conventional" or "" for plain messages
		    generate: Number of candidate subjects to request

		"""
		self.client = client
		self.locale = locale
		self.max_length = max_length
		self.commit_type = commit_type
		self.generate_count = max(1, generate)

	async def _recent_commits(self) -> list[str]:
		try:
			messages = await asyncer.asyncify(get_recent_commit_messages)(RECENT_COMMIT_COUNT)
		except GitError:
			logger.debug("Could not read recent commits", exc_info=True)
			return []
		# Only subjects are useful as style examples
		return [m.splitlines()[0] for m in messages if m.strip()]

	def _subject_messages(self, diff: str, recent: list[str]) -> list[MessageDict]:
		return [
			{"role": "system", "content": commit_message_system_prompt()},
			{
				"role": "user",
				"content": commit_message_prompt(self.locale, self.max_length, self.commit_type, recent),
			},
			{"role": "user", "content": diff},
		]

	def _body_messages(self, diff: str) -> list[MessageDict]:
		return [
			{"role": "system", "content": summary_prompt(self.locale)},
			{"role": "user", "content": diff},
		]

	async def generate(self, diff: str) -> list[CommitDraft]:
		"""
		Generate candidate commit messages for a diff.

		Args:
		    diff: Staged diff text

		Returns:
		    Distinct candidates in the order they were produced, sharing one body

		Raises:
		    GenerationFailure: If every candidate came back empty
		    LLMError: If a provider call fails

		"""
		recent = await self._recent_commits()
		try:
			async with asyncer.create_task_group() as task_group:
				soon_subjects = task_group.soonify(self.client.generate_completion)(
					self._subject_messages(diff, recent), n=self.generate_count
				)
				soon_body = task_group.soonify(self.client.generate_completion)(self._body_messages(diff))
		except ExceptionGroup as group:
			raise first_error(group) from None

		subjects = dedupe_messages(soon_subjects.value)
		if not subjects:
			msg = "No commit messages were generated. Try again."
			raise GenerationFailure(msg)
		body = soon_body.value[0].strip() if soon_body.value else ""
		logger.debug("Generated %d distinct candidate(s)", len(subjects))
		return [CommitDraft(message=subject, body=body) for subject in subjects]

	async def generate_streaming(
		self,
		diff: str,
		on_message_delta: Callable[[str], None] | None = None,
		on_body_delta: Callable[[str], None] | None = None,
	) -> CommitDraft:
		"""
		Generate one commit message while streaming both parts.

		Deltas are only for display; the returned draft is built from the
		accumulated text.

		"""
		recent = await self._recent_commits()
		try:
			async with asyncer.create_task_group() as task_group:
				soon_subject = task_group.soonify(self.client.stream_completion)(
					self._subject_messages(diff, recent), on_message_delta
				)
				soon_body = task_group.soonify(self.client.stream_completion)(self._body_messages(diff), on_body_delta)
		except ExceptionGroup as group:
			raise first_error(group) from None

		subject = sanitize_message(soon_subject.value)
		if not subject:
			msg = "No commit message was generated. Try again."
			raise GenerationFailure(msg)
		return CommitDraft(message=subject, body=soon_body.value.strip())

	async def revise(
		self,
		diff: str,
		user_prompt: str,
		on_message_delta: Callable[[str], None] | None = None,
	) -> CommitDraft:
		"""
		Regenerate the message with the user's revision request appended to the diff.

		Args:
		    diff: Staged diff text
		    user_prompt: Free-text revision request
		    on_message_delta: Optional callback for subject deltas

		Returns:
		    The revised draft

		"""
		return await self.generate_streaming(diff + revision_suffix(user_prompt), on_message_delta)
