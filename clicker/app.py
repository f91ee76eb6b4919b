"""HTTP entrypoint for the Kitten Clicker backend.

The front-end is served from ``static_dir`` when that directory exists; the
API works without it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Callable

from aiohttp import web

from clicker.game import protocol
from clicker.game.config import ServerConfig
from clicker.game.offline import AccrualEngine, coerce_record, wall_ms
from clicker.game.presence import PresenceTracker
from clicker.game.reviews import ReviewLog
from clicker.net.identity import request_key, request_known_key
from clicker.net.stream import StreamHub
from clicker.storage.json_file import JsonFileStore
from clicker.storage.memory import MemoryStore

logger = logging.getLogger(__name__)


class ClickerService:
    def __init__(self, config: ServerConfig, clock: Callable[[], int] = wall_ms):
        self.config = config
        self.clock = clock
        self.start_time = time.time()

        self.memory = MemoryStore()
        self.store = JsonFileStore(config.store_path) if config.persistence_enabled else None

        self.presence = PresenceTracker(total_mode=config.total_players_mode)
        self.offline = AccrualEngine(
            self.memory,
            rate=config.points_per_second,
            ttl_days=config.offline_ttl_days,
            clock=clock,
        )
        self.reviews = ReviewLog(capacity=config.max_reviews)
        self.hub = StreamHub(self)

        self._running = False
        self._save_task: asyncio.Task | None = None

    def now(self) -> int:
        return self.clock()

    async def start(self) -> None:
        if self.store:
            self.restore(self.store.load())
        self._running = True
        if self.store:
            self._save_task = asyncio.create_task(self._save_loop())
        logger.info(
            "service started: %d offline records, %d reviews, total=%d",
            len(self.memory),
            len(self.reviews),
            self.presence.total,
        )

    async def stop(self) -> None:
        self._running = False
        if self._save_task:
            self._save_task.cancel()
            try:
                await self._save_task
            except asyncio.CancelledError:
                pass
            self._save_task = None

        await self.hub.close_all()
        # Last snapshot on the way out.
        self.persist()
        logger.info("service stopped")

    async def _save_loop(self) -> None:
        interval = max(0.05, float(self.config.save_interval_sec))
        while self._running:
            await asyncio.sleep(interval)
            self.offline.expire()
            self.persist()

    # Snapshots

    def snapshot(self) -> dict[str, Any]:
        return {
            "totalPlayers": self.presence.total,
            "reviews": self.reviews.all(),
            "offline": self.memory.to_dict(),
        }

    def persist(self) -> bool:
        if not self.store:
            return False
        return self.store.save(self.snapshot())

    def restore(self, doc: Any) -> None:
        if doc is None:
            return
        if not isinstance(doc, dict):
            logger.warning("ignoring store document of type %s", type(doc).__name__)
            return

        # Older files hold either the bare offline mapping or {totalPlayers, reviews}.
        if "offline" in doc and isinstance(doc.get("offline"), dict):
            offline = doc["offline"]
        elif "totalPlayers" in doc or "reviews" in doc:
            offline = {}
        else:
            offline = doc

        if "totalPlayers" in doc:
            self.presence.restore_total(doc.get("totalPlayers"))
        if isinstance(doc.get("reviews"), list):
            self.reviews.restore(doc["reviews"])

        now = self.now()
        records = {}
        for key, rec in offline.items():
            if not isinstance(rec, dict):
                logger.warning("skipping offline record %r: not an object", key)
                continue
            records[str(key)] = coerce_record(dict(rec), now)
        self.memory.replace_all(records)

    def health_payload(self) -> dict[str, Any]:
        return {
            "ok": True,
            "serverVersion": self.config.server_version,
            "uptimeSec": time.time() - self.start_time,
            **self.presence.counts(),
            "records": len(self.memory),
            "reviews": len(self.reviews),
            "streams": self.hub.open_count,
        }


def _cors_headers(config: ServerConfig, origin: str | None) -> dict[str, str]:
    if not origin:
        return {}
    if config.cors_allow_all:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    if origin in config.cors_allowed_origins:
        return {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    return {}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        origin = request.headers.get("Origin")
        headers = {
            **_cors_headers(request.app["config"], origin),
            "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, X-Client-Id",
            "Access-Control-Max-Age": "86400",
        }
        return web.Response(status=204, headers=headers)

    resp = await handler(request)

    # Streaming responses have already sent their headers.
    if resp.prepared:
        return resp

    origin = request.headers.get("Origin")
    for k, v in _cors_headers(request.app["config"], origin).items():
        resp.headers[k] = v
    return resp


@web.middleware
async def presence_middleware(request: web.Request, handler):
    svc: ClickerService = request.app["svc"]
    # Front-end assets are not player activity.
    prefix = svc.config.static_prefix.rstrip("/")
    if prefix and request.path.startswith(prefix + "/"):
        return await handler(request)

    now = svc.now()
    key = request_key(request, now)

    svc.offline.touch(key, now)
    svc.presence.enter(key)
    try:
        return await handler(request)
    finally:
        # Runs once whether the handler returned, raised or was cancelled.
        svc.presence.leave(key)


async def _read_body(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    return protocol.loads(await request.text())


def _fail(error: str) -> web.Response:
    return web.json_response({"success": False, "error": error})


def create_app(config: ServerConfig, clock: Callable[[], int] = wall_ms) -> web.Application:
    app = web.Application(middlewares=[cors_middleware, presence_middleware])
    svc = ClickerService(config, clock=clock)

    app["config"] = config
    app["svc"] = svc

    async def on_startup(_: web.Application):
        await svc.start()

    async def on_shutdown(_: web.Application):
        # Open streams would otherwise hold graceful shutdown until timeout.
        await svc.hub.close_all()

    async def on_cleanup(_: web.Application):
        await svc.stop()

    app.on_startup.append(on_startup)
    app.on_shutdown.append(on_shutdown)
    app.on_cleanup.append(on_cleanup)

    static_dir = os.path.abspath(config.static_dir) if config.static_dir else ""
    main_page = os.path.join(static_dir, "main.html") if static_dir else ""

    async def root(_: web.Request):
        svc.presence.record_visit()
        if main_page and os.path.isfile(main_page):
            return web.FileResponse(main_page)
        return web.json_response(
            {
                "ok": True,
                "service": "kitten-clicker",
                "serverVersion": config.server_version,
                "endpoints": {
                    "playerCount": "/player-count",
                    "playerCountStream": "/player-count-stream",
                    "submitReview": "/submit-review",
                    "getReviews": "/get-reviews",
                    "saveOfflineData": "/save-offline-data",
                    "getOfflineData": "/get-offline-data",
                    "myOffline": "/my-offline",
                    "health": "/health",
                },
            }
        )

    async def preflight(_: web.Request):
        return web.Response(status=204)

    async def health(_: web.Request):
        return web.json_response(svc.health_payload())

    async def player_count(_: web.Request):
        return web.json_response(svc.presence.counts())

    async def player_count_stream(request: web.Request):
        return await svc.hub.handle(request)

    async def submit_review(request: web.Request):
        try:
            r = protocol.ReviewSubmission.parse(await _read_body(request), max_chars=config.max_review_chars)
        except protocol.ProtocolError as e:
            return _fail(str(e))
        svc.reviews.add(r.text, r.timestamp)
        return web.json_response({"success": True})

    async def get_reviews(_: web.Request):
        return web.json_response({"reviews": svc.reviews.recent(config.reviews_page)})

    async def save_offline_data(request: web.Request):
        try:
            s = protocol.SaveOffline.parse(await _read_body(request))
        except protocol.ProtocolError as e:
            return _fail(str(e))
        svc.offline.overwrite(s.playerId, s.offlineData)
        return web.json_response({"success": True})

    async def get_offline_data(request: web.Request):
        try:
            q = protocol.OfflineLookup.parse(await _read_body(request))
        except protocol.ProtocolError as e:
            return _fail(str(e))
        data = svc.offline.lookup(q.playerId)
        if data is None:
            return _fail("No offline data found")
        return web.json_response({"success": True, "data": data})

    async def my_offline(request: web.Request):
        key = request_known_key(request)
        if not key:
            return _fail("No client ID or IP found")
        rec = svc.offline.touch(key)
        return web.json_response({"success": True, "points": rec["points"], "lastSeen": rec["lastSeen"]})

    app.router.add_get("/", root)
    app.router.add_get("/health", health)
    app.router.add_get("/player-count", player_count)
    app.router.add_get("/player-count-stream", player_count_stream)
    app.router.add_post("/submit-review", submit_review)
    app.router.add_get("/get-reviews", get_reviews)
    app.router.add_post("/save-offline-data", save_offline_data)
    app.router.add_post("/get-offline-data", get_offline_data)
    app.router.add_get("/my-offline", my_offline)
    if static_dir and os.path.isdir(static_dir):
        app.router.add_static(config.static_prefix, static_dir, name="static")
    app.router.add_route("OPTIONS", "/{tail:.*}", preflight)

    return app


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("CLICKER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = ServerConfig.from_env()
    app = create_app(config)
    logger.info("Kitten Clicker server running on port %d", config.port)
    web.run_app(app, host=config.host, port=config.port, print=None)


if __name__ == "__main__":
    main()
