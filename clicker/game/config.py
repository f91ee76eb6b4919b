"""Ports, persistence cadence, accrual rate, caps."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

TOTAL_MODES = ("peak", "visits")


@dataclass
class ServerConfig:
    # Versions
    server_version: str = "0.1.0"

    # Network
    host: str = "0.0.0.0"
    port: int = 10000
    cors_allow_all: bool = True
    cors_allowed_origins: list[str] = field(default_factory=list)
    # Honor X-Forwarded-For when deriving player keys (reverse proxy in front).
    trust_forwarded: bool = True

    # Persistence
    store_path: str = "offlineData.json"
    save_interval_sec: float = 5.0

    # Offline progress
    points_per_second: float = 1
    offline_ttl_days: float = 90.0

    # Player counters: "peak" keeps the historical max of concurrent players,
    # "visits" counts root page loads.
    total_players_mode: str = "peak"

    # Reviews
    max_reviews: int = 100
    reviews_page: int = 10
    max_review_chars: int = 0

    # Live count stream
    stream_interval_sec: float = 5.0

    # Front-end
    static_dir: str = "public"
    static_prefix: str = "/static"

    def __post_init__(self):
        if self.total_players_mode not in TOTAL_MODES:
            raise ValueError(f"total_players_mode must be one of {TOTAL_MODES}, got {self.total_players_mode!r}")

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.store_path)

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_num(v: str | None, default: float) -> float:
        if v is None or not v.strip():
            return default
        try:
            return float(v)
        except ValueError:
            return default

    @classmethod
    def from_env(cls) -> "ServerConfig":
        cfg = cls()
        cfg.host = os.environ.get("CLICKER_HOST", cfg.host)
        try:
            cfg.port = int(os.environ.get("PORT", str(cfg.port)))
        except ValueError:
            pass
        cfg.cors_allow_all = cls._parse_bool(os.environ.get("CLICKER_CORS_ALLOW_ALL"), cfg.cors_allow_all)
        origins = os.environ.get("CLICKER_CORS_ORIGINS")
        if origins:
            cfg.cors_allowed_origins = [o.strip() for o in origins.split(",") if o.strip()]
        cfg.trust_forwarded = cls._parse_bool(os.environ.get("CLICKER_TRUST_FORWARDED"), cfg.trust_forwarded)

        cfg.store_path = os.environ.get("CLICKER_STORE_PATH", cfg.store_path).strip()
        cfg.save_interval_sec = cls._parse_num(os.environ.get("CLICKER_SAVE_INTERVAL"), cfg.save_interval_sec)
        cfg.points_per_second = cls._parse_num(os.environ.get("CLICKER_POINTS_PER_SECOND"), cfg.points_per_second)
        if float(cfg.points_per_second).is_integer():
            cfg.points_per_second = int(cfg.points_per_second)
        cfg.offline_ttl_days = cls._parse_num(os.environ.get("CLICKER_OFFLINE_TTL_DAYS"), cfg.offline_ttl_days)

        mode = os.environ.get("CLICKER_TOTAL_MODE")
        if mode and mode.strip().lower() in TOTAL_MODES:
            cfg.total_players_mode = mode.strip().lower()

        cfg.max_review_chars = int(cls._parse_num(os.environ.get("CLICKER_MAX_REVIEW_CHARS"), cfg.max_review_chars))
        cfg.stream_interval_sec = cls._parse_num(os.environ.get("CLICKER_STREAM_INTERVAL"), cfg.stream_interval_sec)
        cfg.static_dir = os.environ.get("CLICKER_STATIC_DIR", cfg.static_dir)
        return cfg
