"""Live player-count event streams."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field

from aiohttp import web

from clicker.game import protocol

logger = logging.getLogger(__name__)


@dataclass
class StreamConnection:
    conn_id: str
    resp: web.StreamResponse
    created_at: float
    closed: asyncio.Event = field(default_factory=asyncio.Event)
    sent: int = 0


class StreamHub:
    def __init__(self, svc):
        self.svc = svc
        self._conns: dict[str, StreamConnection] = {}
        self.opened = 0
        self.released = 0

    @property
    def open_count(self) -> int:
        return len(self._conns)

    async def handle(self, request: web.Request) -> web.StreamResponse:
        resp = web.StreamResponse(
            status=200,
            headers={
                "Content-Type": "text/event-stream",
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
            },
        )
        await resp.prepare(request)

        conn = StreamConnection(conn_id=uuid.uuid4().hex, resp=resp, created_at=time.time())
        self._conns[conn.conn_id] = conn
        self.opened += 1
        logger.debug("count stream %s opened (%d open)", conn.conn_id, self.open_count)

        interval = float(self.svc.config.stream_interval_sec)
        try:
            # One wait per stream doubles as its send timer; close_all() wakes it early.
            while not conn.closed.is_set():
                if not await self._send(conn):
                    break
                try:
                    await asyncio.wait_for(conn.closed.wait(), timeout=interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._disconnect(conn)
        return resp

    async def _send(self, conn: StreamConnection) -> bool:
        try:
            await conn.resp.write(protocol.sse_event(self.svc.presence.counts()))
        except (ConnectionError, RuntimeError):
            # Client went away; never write to this response again.
            return False
        conn.sent += 1
        return True

    def _disconnect(self, conn: StreamConnection) -> None:
        # Idempotent.
        if conn.conn_id not in self._conns:
            return
        self._conns.pop(conn.conn_id, None)
        conn.closed.set()
        self.released += 1
        logger.debug("count stream %s closed after %d events", conn.conn_id, conn.sent)

    async def close_all(self) -> None:
        for c in list(self._conns.values()):
            c.closed.set()
