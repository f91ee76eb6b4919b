"""Player key derivation.

Keys are not authenticated: a client that sends ``x-client-id`` is trusted,
anyone else is identified by address.
"""

from __future__ import annotations

import logging
import random
from typing import Mapping

from aiohttp import web

logger = logging.getLogger(__name__)

CLIENT_ID_HEADER = "x-client-id"


def client_ip(headers: Mapping[str, str], remote: str | None, *, trust_forwarded: bool = True) -> str:
    if trust_forwarded:
        forwarded = headers.get("X-Forwarded-For", "")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    return remote or ""


def known_key(headers: Mapping[str, str], remote: str | None, *, trust_forwarded: bool = True) -> str:
    """Header id or address; empty string when neither is available."""
    cid = (headers.get(CLIENT_ID_HEADER) or "").strip()
    if cid:
        return cid
    return client_ip(headers, remote, trust_forwarded=trust_forwarded)


def fallback_key(now_ms: int, rng: random.Random | None = None) -> str:
    # Fresh on every call, so an anonymous client never accrues history.
    bits = (rng or random).getrandbits(32)
    return f"anon-{now_ms}-{bits:08x}"


def player_key(
    headers: Mapping[str, str],
    remote: str | None,
    now_ms: int,
    *,
    trust_forwarded: bool = True,
    rng: random.Random | None = None,
) -> str:
    key = known_key(headers, remote, trust_forwarded=trust_forwarded)
    if key:
        return key
    key = fallback_key(now_ms, rng)
    logger.debug("no client id or address, using fallback key %s", key)
    return key


def request_key(request: web.Request, now_ms: int) -> str:
    cfg = request.app["config"]
    return player_key(request.headers, request.remote, now_ms, trust_forwarded=cfg.trust_forwarded)


def request_known_key(request: web.Request) -> str:
    cfg = request.app["config"]
    return known_key(request.headers, request.remote, trust_forwarded=cfg.trust_forwarded)
