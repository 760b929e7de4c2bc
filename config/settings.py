"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Parser configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Stream framing ───────────────────────────────────────
    stream_encoding: str = "utf-8"
    stream_decode_errors: str = "replace"  # codecs error policy for bad bytes
    sse_data_prefix: str = "data: "
    done_sentinel: str = "[DONE]"
    # Process an unterminated last line when the source ends
    flush_trailing_line: bool = True

    # ── Projection ───────────────────────────────────────────
    default_message_id: str = "message"

    # ── Chat stream status texts ─────────────────────────────
    connecting_message: str = "Connecting to chat stream..."
    streaming_message: str = "Streaming response..."
    complete_message: str = "Response complete"


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for parser settings."""
    return Settings()
