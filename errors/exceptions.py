"""Domain-specific exceptions for the chat stream parser.

These exceptions let the framer, the delta engine and the chat stream
wrapper distinguish between recoverable per-line / per-delta failures and
fatal source failures.
"""

from __future__ import annotations


class ChatStreamError(Exception):
    """Base class for chat stream parsing errors."""


class EventParseError(ChatStreamError):
    """A stream line could not be decoded into a stream event.

    Raised by ``parse_event`` for invalid JSON, non-object payloads or
    payloads that fail validation.  The framer logs it and skips the line.
    """

    def __init__(self, line: str, message: str) -> None:
        self.line = line
        super().__init__(f"Invalid stream event: {message}")


class DeltaApplyError(ChatStreamError):
    """A structural diff could not be applied to a snapshot.

    Carries the path (list of keys / indices) at which the patch failed so
    the log record points at the offending node.
    """

    def __init__(self, message: str, path: list[str | int] | None = None) -> None:
        self.path = list(path or [])
        location = "/".join(str(p) for p in self.path) or "<root>"
        super().__init__(f"Delta apply failed at {location}: {message}")


class StreamSourceError(ChatStreamError):
    """The underlying byte source failed while being read.

    The only fatal error class: the framer releases the source and
    propagates this to the consumer.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Stream source failed: {message}")
