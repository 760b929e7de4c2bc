"""Stream event models — the records carried on a chat delta stream.

Every non-blank line of the stream decodes to one of:

- ``connected``: the upstream opened the chat; may carry the chat id.
- ``delta``: carries a ``delta`` to fold into the document snapshot.
- ``done``: end of stream, no content.
- ``chat-data``: chat metadata (``object`` starts with ``"chat"``).

Anything else becomes an :class:`UnknownEvent`.  Fields the models do not
declare are kept as pydantic extras.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import EventParseError

# Document snapshot: a list of ``[kind, payload]`` nodes
MessageBinaryFormat = list[Any]


class EventType(str, Enum):
    """Recognized values of the ``type`` field."""

    CONNECTED = "connected"
    DELTA = "delta"
    DONE = "done"
    CHAT_DATA = "chat-data"


class _StreamEventBase(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    delta: Any = None
    data: Any = None
    object_type: str | None = Field(default=None, alias="object")
    chat_id: str | None = Field(default=None, alias="id")

    @field_validator("object_type", "chat_id", mode="before")
    @classmethod
    def ignore_non_string(cls, value: Any) -> str | None:
        # Non-string ids and objects are ignored, the rest of the event stands
        return value if isinstance(value, str) else None

    @property
    def kind(self) -> EventType | None:
        return None

    @property
    def establishes_chat(self) -> bool:
        """True if this event names the chat the stream belongs to."""
        return self.object_type == "chat" and bool(self.chat_id)

    @property
    def is_chat_metadata(self) -> bool:
        return self.object_type is not None and self.object_type.startswith("chat")


class ConnectedEvent(_StreamEventBase):
    type: Literal["connected"] = "connected"

    @property
    def kind(self) -> EventType:
        return EventType.CONNECTED


class DeltaEvent(_StreamEventBase):
    type: Literal["delta"] = "delta"

    @property
    def kind(self) -> EventType:
        return EventType.DELTA


class DoneEvent(_StreamEventBase):
    type: Literal["done"] = "done"

    @property
    def kind(self) -> EventType:
        return EventType.DONE


class ChatDataEvent(_StreamEventBase):
    type: Literal["chat-data"] = "chat-data"

    @property
    def kind(self) -> EventType:
        return EventType.CHAT_DATA


class UnknownEvent(_StreamEventBase):
    """Any record whose ``type`` is missing or unrecognized."""

    type: Any = None


StreamEvent = Union[ConnectedEvent, DeltaEvent, DoneEvent, ChatDataEvent, UnknownEvent]

_EVENT_MODELS: dict[str, type[_StreamEventBase]] = {
    EventType.CONNECTED.value: ConnectedEvent,
    EventType.DELTA.value: DeltaEvent,
    EventType.DONE.value: DoneEvent,
    EventType.CHAT_DATA.value: ChatDataEvent,
}


def parse_event(data: str) -> StreamEvent:
    """Decode one stream payload (prefix already stripped) into an event.

    Raises:
        EventParseError: invalid or too deeply nested JSON, a non-object
            payload, or a payload the event model rejects.
    """
    try:
        payload = json.loads(data)
    except (ValueError, RecursionError) as exc:
        raise EventParseError(data, str(exc) or type(exc).__name__) from exc

    if not isinstance(payload, dict):
        raise EventParseError(data, f"expected an object, got {type(payload).__name__}")

    event_type = payload.get("type")
    model = UnknownEvent
    if isinstance(event_type, str):
        model = _EVENT_MODELS.get(event_type, UnknownEvent)

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise EventParseError(data, str(exc)) from exc


# ── Framer output ────────────────────────────────────────────


@dataclass(frozen=True)
class StreamUpdate:
    """A ``(content, chat_id)`` pair produced by the stream framer.

    ``content`` is the snapshot object itself (not a copy) so consumers can
    compare successive updates by identity.
    """

    content: MessageBinaryFormat
    chat_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "chatId": self.chat_id}
