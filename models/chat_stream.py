"""Status models emitted by the chat stream wrapper.

One stream produces, in order: ``connecting``, zero or more ``streaming``,
then exactly one terminal ``complete`` or ``error``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from models.base import CamelModel


class StreamStatus(str, Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETE = "complete"
    ERROR = "error"


class ChatStreamStatus(CamelModel):
    """A progress update for the outer transport."""

    status: StreamStatus
    chat_id: str | None = None
    message: str = ""
    # The snapshot object itself; ``Any`` keeps pydantic from copying it
    content: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (StreamStatus.COMPLETE, StreamStatus.ERROR)
