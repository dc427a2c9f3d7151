"""Exceptions raised by the LLM layer."""

from __future__ import annotations


class LLMError(Exception):
	"""Custom exception for LLM-related errors."""


class GenerationFailure(LLMError):  # noqa: N818
	"""The agent finished without calling its terminating tool."""


def first_error(error: BaseException) -> BaseException:
	"""
	Unwrap task-group errors down to the first underlying exception.

	anyio task groups always raise an ExceptionGroup, even for a single
	failing child.

	"""
	while isinstance(error, BaseExceptionGroup) and error.exceptions:
		error = error.exceptions[0]
	return error
