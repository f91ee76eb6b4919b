import pytest

from clicker.app import create_app
from clicker.game.config import ServerConfig


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store_path(tmp_path):
    return str(tmp_path / "offlineData.json")


@pytest.fixture()
def config(store_path, tmp_path):
    return ServerConfig(
        store_path=store_path,
        # Background saves stay out of the way; shutdown still writes a snapshot.
        save_interval_sec=3600.0,
        stream_interval_sec=0.05,
        static_dir=str(tmp_path / "public"),
    )


@pytest.fixture()
async def client(aiohttp_client, config, clock):
    app = create_app(config, clock=clock)
    return await aiohttp_client(app)


@pytest.fixture()
def svc(client):
    return client.server.app["svc"]
