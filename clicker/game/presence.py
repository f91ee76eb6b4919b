"""Connected player tracking."""

from __future__ import annotations

from typing import Any


class PresenceTracker:
    """Keys with at least one open HTTP connection.

    Each key carries a count of its open connections so that one connection
    closing does not hide another still open for the same key (a live count
    stream held alongside ordinary polling).
    """

    def __init__(self, total_mode: str = "peak"):
        self.total_mode = total_mode
        self._open: dict[str, int] = {}
        self.current = 0
        self.total = 0

    def enter(self, key: str) -> None:
        self._open[key] = self._open.get(key, 0) + 1
        self._recount()
        if self.total_mode == "peak" and self.current > self.total:
            self.total = self.current

    def leave(self, key: str) -> None:
        n = self._open.get(key, 0)
        if n <= 1:
            self._open.pop(key, None)
        else:
            self._open[key] = n - 1
        self._recount()

    def record_visit(self) -> None:
        if self.total_mode == "visits":
            self.total += 1

    def restore_total(self, total: Any) -> None:
        try:
            n = int(total)
        except (TypeError, ValueError):
            return
        self.total = max(self.total, n, 0)

    def is_present(self, key: str) -> bool:
        return key in self._open

    def connections(self, key: str) -> int:
        return self._open.get(key, 0)

    def counts(self) -> dict[str, int]:
        return {"current": self.current, "total": self.total}

    def _recount(self) -> None:
        self.current = len(self._open)
