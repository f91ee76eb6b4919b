"""In-memory offline records, keyed by player key."""

from __future__ import annotations

from typing import Any, Iterator


class MemoryStore:
    def __init__(self):
        self._records: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def get(self, key: str) -> dict[str, Any] | None:
        return self._records.get(key)

    def put(self, key: str, record: dict[str, Any]) -> None:
        self._records[key] = record

    def pop(self, key: str) -> dict[str, Any] | None:
        return self._records.pop(key, None)

    def items(self) -> Iterator[tuple[str, dict[str, Any]]]:
        return iter(list(self._records.items()))

    def replace_all(self, records: dict[str, dict[str, Any]]) -> None:
        self._records = dict(records)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        # Shallow copies per record so the caller can serialize outside the loop turn.
        return {k: dict(v) for k, v in self._records.items()}
