# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Context-window overflow detection.

Decides whether an error raised (or streamed) by a model call means "the
input exceeded the model's context window".  Provider SDK errors are often
wrapped by several layers of framework exceptions, so the classifier first
walks the cause chain looking for the provider's API error and only then
inspects its text.

Text is gathered in priority order:
    1. raw HTTP response body
    2. the error's ``message`` attribute, when it is a string
    3. a best-effort JSON serialization of the whole error

and tested against case-insensitive patterns
(``settings.DEFAULT_OVERFLOW_PATTERNS`` unless overridden).

This is a heuristic.  A false negative only means the overflow surfaces as
an ordinary model error; it never corrupts history.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Optional, Sequence, Tuple

import httpx
import openai

from compactor.services.compaction.settings import DEFAULT_OVERFLOW_PATTERNS

logger = logging.getLogger(__name__)

# Errors that carry a model provider's HTTP response.
API_ERROR_TYPES: Tuple[type, ...] = (openai.APIError, httpx.HTTPStatusError)

_SCALAR_TYPES = (str, bytes, int, float, bool)


@lru_cache(maxsize=32)
def _compile_patterns(patterns: Tuple[str, ...]) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def _next_cause(error: Any) -> Any:
    """Return the value wrapped by *error*, or ``None``."""
    if isinstance(error, dict):
        return error.get("cause")
    # Only explicit wrapping counts. An error raised while handling another
    # one (``__context__``) is a separate failure.
    if isinstance(error, BaseException) and error.__cause__ is not None:
        return error.__cause__
    return getattr(error, "cause", None)


def find_api_call_error(
    error: Any,
    api_error_types: Tuple[type, ...] = API_ERROR_TYPES,
) -> Optional[BaseException]:
    """Search *error* and its cause chain for a provider API error.

    Follows ``__cause__``, a ``cause`` attribute and the ``"cause"`` key of
    plain dicts.  The implicit ``__context__`` chain is not followed.
    Descent stops at scalar values and at cycles.

    Args:
        error (Any): The raised or streamed error value.
        api_error_types (Tuple[type, ...]): Types recognized as provider
            API errors.

    Returns:
        Optional[BaseException]: The first API error found, or ``None``.
    """
    seen: set[int] = set()
    current = error
    while current is not None and not isinstance(current, _SCALAR_TYPES):
        if isinstance(current, api_error_types):
            return current
        if id(current) in seen:
            return None
        seen.add(id(current))
        current = _next_cause(current)
    return None


def _response_body(error: BaseException) -> str:
    response = getattr(error, "response", None)
    if isinstance(response, httpx.Response):
        try:
            if response.text:
                return response.text
        except httpx.ResponseNotRead:
            pass
    body = getattr(error, "body", None)
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def _serialize_error(error: BaseException) -> str:
    payload = {"type": type(error).__name__, "message": str(error)}
    payload.update(vars(error))
    try:
        return json.dumps(payload, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(error)


def _error_text(error: BaseException) -> str:
    text = _response_body(error)
    if text:
        return text
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return _serialize_error(error)


def matches_context_overflow(
    text: str,
    patterns: Optional[Sequence[str]] = None,
) -> bool:
    """Check whether *text* reads like a context-window overflow.

    Args:
        text (str): Error text to test.
        patterns (Optional[Sequence[str]]): Regular expressions to use
            instead of the defaults.

    Returns:
        bool: ``True`` if any pattern matches.
    """
    if not text:
        return False
    compiled = _compile_patterns(tuple(patterns) if patterns is not None else DEFAULT_OVERFLOW_PATTERNS)
    return any(p.search(text) for p in compiled)


def is_context_overflow_error(
    error: Any,
    patterns: Optional[Sequence[str]] = None,
) -> bool:
    """Check whether an error indicates a context window overflow.

    Args:
        error (Any): The exception (or streamed error value) to inspect.
        patterns (Optional[Sequence[str]]): Regular expressions to use
            instead of the defaults.

    Returns:
        bool: ``True`` if a provider API error in the cause chain matches a
            known overflow pattern. Errors without a provider API error
            always return ``False``.
    """
    api_error = find_api_call_error(error)
    if api_error is None:
        return False
    matched = matches_context_overflow(_error_text(api_error), patterns)
    if matched:
        logger.debug("Classified %s as context window overflow", type(api_error).__name__)
    return matched
