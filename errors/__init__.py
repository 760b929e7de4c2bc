"""Custom exception hierarchy for the chat stream parser."""

from errors.exceptions import (
    ChatStreamError,
    DeltaApplyError,
    EventParseError,
    StreamSourceError,
)

__all__ = [
    "ChatStreamError",
    "DeltaApplyError",
    "EventParseError",
    "StreamSourceError",
]
