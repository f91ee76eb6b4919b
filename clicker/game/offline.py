"""Offline points accrual.

Every observed request for a player key credits whole elapsed seconds since
the key was last seen, then moves ``lastSeen`` to now. Clients may also push a
record they computed themselves; that replaces the stored one outright and the
most recent write wins.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable

from clicker.storage.memory import MemoryStore

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


def wall_ms() -> int:
    return int(time.time() * 1000)


def _num(v: Any, *, default: float) -> float:
    if isinstance(v, bool) or v is None:
        return default
    try:
        n = float(v)
    except (TypeError, ValueError):
        return default
    # inf/nan count as missing.
    return n if math.isfinite(n) else default


def _compact(v: float) -> int | float:
    return int(v) if float(v).is_integer() else v


def coerce_record(record: dict[str, Any], now_ms: int) -> dict[str, Any]:
    """Normalize ``points``/``lastSeen`` to numbers in place."""
    record["points"] = _compact(_num(record.get("points"), default=0))
    record["lastSeen"] = _compact(_num(record.get("lastSeen"), default=now_ms))
    return record


def award_offline_points(record: dict[str, Any], now_ms: int, rate: float) -> int | float:
    """Credit floor(elapsed seconds) * rate to ``record``; returns the credit."""
    coerce_record(record, now_ms)
    elapsed = max(0, now_ms - record["lastSeen"])
    credit = _compact(int(elapsed // 1000) * rate)
    record["points"] = _compact(record["points"] + credit)
    record["lastSeen"] = now_ms
    return credit


class AccrualEngine:
    def __init__(
        self,
        records: MemoryStore,
        rate: float = 1,
        ttl_days: float = 0.0,
        clock: Callable[[], int] = wall_ms,
    ):
        self.records = records
        self.rate = rate
        self.ttl_days = ttl_days
        self.clock = clock

    def touch(self, key: str, now_ms: int | None = None) -> dict[str, Any]:
        now = self.clock() if now_ms is None else now_ms
        record = self.records.get(key)
        if record is None:
            record = {"points": 0, "lastSeen": now}
        else:
            award_offline_points(record, now, self.rate)
        self.records.put(key, record)
        return record

    def overwrite(self, key: str, data: dict[str, Any]) -> None:
        # Client-authoritative: no plausibility checks.
        self.records.put(key, data)

    def lookup(self, key: str) -> dict[str, Any] | None:
        return self.records.get(key)

    def expire(self, now_ms: int | None = None) -> int:
        """Drop records not seen within ``ttl_days``. Returns how many were dropped."""
        if self.ttl_days <= 0:
            return 0
        now = self.clock() if now_ms is None else now_ms
        cutoff = now - self.ttl_days * DAY_MS
        dropped = 0
        for key, record in self.records.items():
            if _num(record.get("lastSeen"), default=now) < cutoff:
                self.records.pop(key)
                dropped += 1
        if dropped:
            logger.info("expired %d offline records older than %s days", dropped, self.ttl_days)
        return dropped
