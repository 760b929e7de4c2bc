"""Structured error codes for consumer-facing stream errors.

Error text surfaced on a terminal ``error`` status follows the format::

    {ERROR_CODE}: {human_readable_detail}
"""

from __future__ import annotations

import re
from enum import Enum

from errors import StreamSourceError


class ErrorCode(str, Enum):
    """Error codes carried in ``ChatStreamStatus.message`` for failures."""

    STREAM_SOURCE_ERROR = "STREAM_SOURCE_ERROR"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def format_error(code: ErrorCode, detail: str) -> str:
    """Format an error for the status ``message``.

    Returns:
        ``{ERROR_CODE}: {detail}``
    """
    return f"{code.value}: {detail}"


_TIMEOUT_RE = re.compile(r"timed? ?out|timeout", re.IGNORECASE)


def classify_stream_error(error: BaseException) -> str:
    """Classify an exception raised while streaming into a status message.

    Classification order (first match wins):
        1. Timeout — the message mentions a timeout.
        2. Source failure — :class:`StreamSourceError` (the byte source broke).
        3. Fallback — ``INTERNAL_ERROR``.
    """
    detail = str(error) or type(error).__name__
    if _TIMEOUT_RE.search(detail):
        return format_error(ErrorCode.UPSTREAM_TIMEOUT, detail)
    if isinstance(error, StreamSourceError):
        return format_error(ErrorCode.STREAM_SOURCE_ERROR, detail)
    return format_error(ErrorCode.INTERNAL_ERROR, detail)
