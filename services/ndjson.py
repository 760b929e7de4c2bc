"""NDJSON encoder for forwarding chat stream status to the browser.

Each status becomes one JSON document followed by ``\\n``.  The outer
transport sends these lines with :data:`NDJSON_HEADERS`.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

from models.base import CamelModel

NDJSON_HEADERS = {
    "Content-Type": "application/x-ndjson",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class NdjsonEncoder:
    """Encode status models or plain dicts into NDJSON lines.

    Every public method returns a ready-to-send line.
    """

    @staticmethod
    def encode(payload: BaseModel | dict[str, Any]) -> str:
        if isinstance(payload, CamelModel):
            payload = payload.to_camel_dict(mode="json")
        elif isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        return json.dumps(payload, ensure_ascii=False, default=str) + "\n"

    def status(self, status: BaseModel) -> str:
        return self.encode(status)

    def error(self, text: str) -> str:
        return self.encode({"status": "error", "chatId": None, "message": text, "content": None})
