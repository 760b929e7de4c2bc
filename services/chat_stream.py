"""Chat stream wrapper — framer updates → status events for the transport.

Wraps :class:`services.stream_parser.ChatStream` into a sequence of
:class:`models.chat_stream.ChatStreamStatus` values that always ends with a
terminal ``complete`` or ``error`` status, so the consumer never waits on a
stream that died silently.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from config.settings import Settings, get_settings
from models.chat_stream import ChatStreamStatus, StreamStatus
from models.errors import classify_stream_error
from services.stream_parser import AsyncByteSource, ChatStream

logger = logging.getLogger(__name__)


async def stream_chat_status(
    source: AsyncByteSource,
    *,
    settings: Settings | None = None,
) -> AsyncIterator[ChatStreamStatus]:
    """Yield status events while reconstructing the chat from *source*.

    Yields:
        ``connecting`` first, one ``streaming`` status per snapshot change,
        then ``complete`` with the final state or ``error`` with a
        classified message.  Exceptions are not re-raised.
    """
    settings = settings or get_settings()

    yield ChatStreamStatus(
        status=StreamStatus.CONNECTING,
        message=settings.connecting_message,
    )

    try:
        async with ChatStream(source, settings=settings) as stream:
            async for update in stream:
                yield ChatStreamStatus(
                    status=StreamStatus.STREAMING,
                    chat_id=update.chat_id,
                    message=settings.streaming_message,
                    content=update.content,
                )
        final = stream.result
        yield ChatStreamStatus(
            status=StreamStatus.COMPLETE,
            chat_id=final.chat_id if final else stream.chat_id,
            message=settings.complete_message,
            content=final.content if final else None,
        )
    except Exception as exc:
        logger.exception("Error in chat stream")
        yield ChatStreamStatus(
            status=StreamStatus.ERROR,
            message=classify_stream_error(exc),
        )
