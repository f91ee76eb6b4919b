"""Request body schemas + validation.

Every POST endpoint takes a JSON object. Validation failures are reported to
the client as ``{"success": false, "error": ...}`` with a 200 status, so the
parsers raise ``ProtocolError`` carrying the client-facing message.

The live count feed is a server-sent event stream:
  data: {"current":3,"total":7}\\n\\n
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

MISSING_FIELDS = "Missing required fields"


class ProtocolError(Exception):
    pass


def dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))


def sse_event(data: dict[str, Any]) -> bytes:
    return f"data: {dumps(data)}\n\n".encode("utf-8")


def loads(text: str) -> dict[str, Any]:
    try:
        obj = json.loads(text) if text else {}
    except ValueError as e:
        raise ProtocolError("Invalid JSON body") from e
    if not isinstance(obj, dict):
        raise ProtocolError("Invalid JSON body")
    return obj


def _player_id(v: Any) -> str | None:
    # Numbers are accepted and stored under their string form, like JSON object keys.
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        v = str(v)
    if not isinstance(v, str) or not v:
        return None
    return v


@dataclass
class ReviewSubmission:
    text: str
    timestamp: Any

    @classmethod
    def parse(cls, data: dict[str, Any], *, max_chars: int = 0) -> "ReviewSubmission":
        text = data.get("text")
        ts = data.get("timestamp")
        if isinstance(text, str):
            text = text.strip()
        if not text or not ts:
            raise ProtocolError(MISSING_FIELDS)
        if not isinstance(text, str):
            raise ProtocolError("text must be a string")
        if max_chars > 0:
            text = text[:max_chars]
        return cls(text=text, timestamp=ts)


@dataclass
class SaveOffline:
    playerId: str
    offlineData: dict[str, Any]

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "SaveOffline":
        pid = _player_id(data.get("playerId"))
        payload = data.get("offlineData")
        if not pid or payload is None:
            raise ProtocolError(MISSING_FIELDS)
        if not isinstance(payload, dict):
            raise ProtocolError("offlineData must be an object")
        return cls(playerId=pid, offlineData=payload)


@dataclass
class OfflineLookup:
    playerId: str

    @classmethod
    def parse(cls, data: dict[str, Any]) -> "OfflineLookup":
        pid = _player_id(data.get("playerId"))
        if not pid:
            raise ProtocolError("Missing player ID")
        return cls(playerId=pid)
