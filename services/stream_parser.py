"""Stream framer — raw chat stream bytes → document snapshots.

Consumes a byte stream of newline-delimited, optionally ``data: ``-prefixed
JSON records, folds every ``delta`` into a running document snapshot and
tracks the chat id announced by the upstream.

Three entry points share one state machine (:class:`StreamFramer`):

- :class:`ChatStream` — async iteration over an ``httpx.Response`` or any
  async iterable of bytes; ``result`` holds the final state.
- :func:`iter_chat_stream` — the same for synchronous sources; the final
  state is the generator's return value.
- :func:`collect_chat_stream` — drain an async source, return the final state.

A :class:`StreamUpdate` is produced once per chunk that changed the
snapshot.  The final state is authoritative: it also reflects an
unterminated last line flushed at end of stream, which never yields.
"""

from __future__ import annotations

import codecs
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Generator, Iterable, Union

import httpx

from config.settings import Settings, get_settings
from errors import EventParseError, StreamSourceError
from models.stream_events import (
    EventType,
    MessageBinaryFormat,
    StreamUpdate,
    parse_event,
)
from services.delta import apply_delta

logger = logging.getLogger(__name__)

AsyncByteSource = Union[httpx.Response, AsyncIterable[bytes]]
SyncByteSource = Union[httpx.Response, Iterable[bytes]]


@dataclass
class StreamState:
    """Cursor state of one stream: pending text, snapshot and chat id."""

    buffer: str = ""
    content: MessageBinaryFormat = field(default_factory=list)
    chat_id: str | None = None


class StreamFramer:
    """Incremental framing state machine shared by the sync and async readers."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        decoder_cls = codecs.getincrementaldecoder(self._settings.stream_encoding)
        self._decoder = decoder_cls(errors=self._settings.stream_decode_errors)
        self.state = StreamState()

    @property
    def update(self) -> StreamUpdate:
        return StreamUpdate(content=self.state.content, chat_id=self.state.chat_id)

    def feed(self, chunk: bytes | str) -> bool:
        """Consume one chunk.  Returns True if the snapshot changed."""
        text = chunk if isinstance(chunk, str) else self._decoder.decode(bytes(chunk))
        *lines, remainder = (self.state.buffer + text).split("\n")

        previous = self.state.content
        content, chat_id = previous, self.state.chat_id
        for line in lines:
            content, chat_id = self.process_line(content, chat_id, line)

        self.state = StreamState(buffer=remainder, content=content, chat_id=chat_id)
        return content is not previous

    def finish(self) -> StreamUpdate:
        """Flush the decoder and the trailing line; return the final state."""
        tail = self.state.buffer + self._decoder.decode(b"", final=True)
        content, chat_id = self.state.content, self.state.chat_id

        if tail.strip():
            if self._settings.flush_trailing_line:
                content, chat_id = self.process_line(content, chat_id, tail)
            else:
                logger.debug("Dropping unterminated trailing line: %r", tail[:200])

        self.state = StreamState(buffer="", content=content, chat_id=chat_id)
        return self.update

    def process_line(
        self,
        content: MessageBinaryFormat,
        chat_id: str | None,
        line: str,
    ) -> tuple[MessageBinaryFormat, str | None]:
        """Fold one complete line into ``(content, chat_id)``."""
        if not line.strip():
            return content, chat_id

        data = line.rstrip("\r")
        prefix = self._settings.sse_data_prefix
        if prefix and data.startswith(prefix):
            data = data[len(prefix):]

        if data.strip() == self._settings.done_sentinel:
            return content, chat_id

        try:
            event = parse_event(data)
        except EventParseError as exc:
            logger.warning("Error parsing stream event: %s (line=%r)", exc, data[:200])
            return content, chat_id

        if event.kind is EventType.DONE:
            return content, chat_id

        if event.establishes_chat:
            chat_id = event.chat_id

        if event.kind is EventType.CONNECTED or event.is_chat_metadata:
            return content, chat_id

        if event.delta is not None:
            content = apply_delta(content, event.delta)

        return content, chat_id


# ── Async reader ─────────────────────────────────────────────


class ChatStream:
    """Async iterator of :class:`StreamUpdate` over one byte source.

    Use as an async context manager to guarantee the source is released
    even when the consumer stops early::

        async with ChatStream(response) as stream:
            async for update in stream:
                render(update.content)
        final = stream.result

    ``result`` is set once the source is exhausted and is the
    authoritative end state.
    """

    def __init__(self, source: AsyncByteSource, *, settings: Settings | None = None) -> None:
        self._source = source
        self._framer = StreamFramer(settings)
        self._chunks: AsyncIterator[Any] | None = None
        self._iterator: AsyncIterator[StreamUpdate] | None = None
        self._released = False
        self.result: StreamUpdate | None = None

    @property
    def chat_id(self) -> str | None:
        return self._framer.state.chat_id

    def __aiter__(self) -> AsyncIterator[StreamUpdate]:
        if self._iterator is None:
            self._iterator = self._run()
        return self._iterator

    async def __aenter__(self) -> ChatStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stop iteration (if running) and release the source."""
        if self._iterator is not None:
            await self._iterator.aclose()
        await self._release()

    async def _run(self) -> AsyncIterator[StreamUpdate]:
        try:
            self._chunks = _open_async(self._source)
            while True:
                try:
                    chunk = await self._chunks.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    raise StreamSourceError(str(exc) or type(exc).__name__) from exc

                if self._framer.feed(chunk):
                    yield self._framer.update

            self.result = self._framer.finish()
        finally:
            await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._chunks is not None and self._chunks is not self._source:
            await _aclose(self._chunks)
        await _aclose(self._source)


def _open_async(source: AsyncByteSource) -> AsyncIterator[Any]:
    if isinstance(source, httpx.Response):
        return source.aiter_bytes()
    return source.__aiter__()


async def _aclose(resource: Any) -> None:
    close = getattr(resource, "aclose", None) or getattr(resource, "close", None)
    if close is None:
        return
    result = close()
    if inspect.isawaitable(result):
        await result


async def collect_chat_stream(
    source: AsyncByteSource, *, settings: Settings | None = None
) -> StreamUpdate | None:
    """Drain *source* and return the final authoritative state."""
    async with ChatStream(source, settings=settings) as stream:
        async for _ in stream:
            pass
    return stream.result


# ── Sync reader ──────────────────────────────────────────────


def iter_chat_stream(
    source: SyncByteSource, *, settings: Settings | None = None
) -> Generator[StreamUpdate, None, StreamUpdate]:
    """Yield a :class:`StreamUpdate` per chunk that changed the snapshot.

    The generator's return value is the final authoritative state.  The
    source is closed on every exit path, including ``close()`` on the
    generator by an early-exiting consumer.
    """
    framer = StreamFramer(settings)
    chunks = None
    try:
        try:
            chunks = iter(source.iter_bytes() if isinstance(source, httpx.Response) else source)
        except Exception as exc:
            raise StreamSourceError(str(exc) or type(exc).__name__) from exc

        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except Exception as exc:
                raise StreamSourceError(str(exc) or type(exc).__name__) from exc

            if framer.feed(chunk):
                yield framer.update

        return framer.finish()
    finally:
        for resource in (chunks, source):
            close = getattr(resource, "close", None)
            if close is not None:
                close()
