"""Test doubles for stream framing tests.

Byte sources that record whether they were released, plus an encoder for
``data: {json}`` stream lines.
"""

from __future__ import annotations

import json
from typing import Any


class FakeAsyncSource:
    """Async byte source that records whether it was released.

    ``fail_after`` raises ``ConnectionError`` once that many chunks have
    been served, simulating a dropped upstream connection.
    """

    def __init__(self, chunks: list[bytes], fail_after: int | None = None) -> None:
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.served = 0
        self.closed = False

    def __aiter__(self) -> FakeAsyncSource:
        return self

    async def __anext__(self) -> bytes:
        if self.fail_after is not None and self.served >= self.fail_after:
            raise ConnectionError("connection reset by peer")
        if self.served >= len(self.chunks):
            raise StopAsyncIteration
        chunk = self.chunks[self.served]
        self.served += 1
        return chunk

    async def aclose(self) -> None:
        self.closed = True


class FakeSyncSource:
    """Sync counterpart of :class:`FakeAsyncSource`."""

    def __init__(self, chunks: list[bytes], fail_after: int | None = None) -> None:
        self.chunks = list(chunks)
        self.fail_after = fail_after
        self.served = 0
        self.closed = False

    def __iter__(self) -> FakeSyncSource:
        return self

    def __next__(self) -> bytes:
        if self.fail_after is not None and self.served >= self.fail_after:
            raise ConnectionError("connection reset by peer")
        if self.served >= len(self.chunks):
            raise StopIteration
        chunk = self.chunks[self.served]
        self.served += 1
        return chunk

    def close(self) -> None:
        self.closed = True


def encode_events(*events: dict[str, Any] | str) -> bytes:
    """Encode events as ``data: {json}`` lines; strings are sent verbatim."""
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event, ensure_ascii=False)
        lines.append(f"data: {payload}\n")
    return "".join(lines).encode("utf-8")
