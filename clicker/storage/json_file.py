"""Whole-file JSON persistence.

The document is rewritten in place on every save; there is no temp file or
rename, so a crash mid-write can leave a truncated file. ``load`` treats that
the same as a missing file.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    def __init__(self, path: str):
        self.path = path
        self.saves = 0
        self.failures = 0

    def load(self) -> Any | None:
        if not os.path.exists(self.path):
            logger.info("no store file at %s, starting empty", self.path)
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except OSError:
            logger.exception("error reading %s", self.path)
            return None
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.exception("error parsing %s, starting empty", self.path)
            return None

    def save(self, document: Any) -> bool:
        try:
            text = json.dumps(document, indent=2)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(text)
        except (OSError, TypeError, ValueError):
            self.failures += 1
            logger.exception("error saving %s", self.path)
            return False
        self.saves += 1
        return True
