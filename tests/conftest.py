"""Shared pytest fixtures for the chat stream parser tests.

Provides:
- ``settings``: Settings isolated from any local ``.env`` file
- ``make_source``: async byte sources that record release
- ``sse``: encode event dicts as ``data: {json}\\n`` stream bytes
"""

from __future__ import annotations

import pytest

from config.settings import Settings
from tests.helpers import FakeAsyncSource, encode_events


@pytest.fixture
def settings() -> Settings:
    """Default settings, never read from a developer's ``.env``."""
    return Settings(_env_file=None)


@pytest.fixture
def make_source():
    """Factory for :class:`FakeAsyncSource` instances."""
    return FakeAsyncSource


@pytest.fixture
def sse():
    """Encoder for ``data: {json}`` stream bytes."""
    return encode_events
