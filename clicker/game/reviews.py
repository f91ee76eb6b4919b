"""Bounded review log."""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable


class ReviewLog:
    def __init__(self, capacity: int = 100):
        self.capacity = int(capacity)
        self._items: deque[dict[str, Any]] = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, text: str, timestamp: Any) -> dict[str, Any]:
        # Oldest entry falls off once capacity is reached.
        review = {"text": text, "timestamp": timestamp}
        self._items.append(review)
        return review

    def recent(self, limit: int = 10) -> list[dict[str, Any]]:
        if limit <= 0:
            return []
        out = list(self._items)[-int(limit):]
        out.reverse()
        return out

    def all(self) -> list[dict[str, Any]]:
        return list(self._items)

    def restore(self, items: Iterable[Any]) -> int:
        n = 0
        for r in items:
            if isinstance(r, dict) and "text" in r:
                self._items.append({"text": r.get("text"), "timestamp": r.get("timestamp")})
                n += 1
        return n
