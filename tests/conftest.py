"""Shared fixtures: settings, clocks, audit stores, a mocked Track API and the app."""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from mailprefs.core.config import Settings
from mailprefs.db.session import build_engine, build_session_factory, init_db
from mailprefs.main import create_app
from mailprefs.services.audit_service import InMemoryAuditStore, SqlAuditStore
from mailprefs.services.track_client import TrackClient

ADMIN_AUTH = ("admin", "s3cret-pass")


def pytest_configure(config) -> None:
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")


class SteppedClock:
    """Returns a fixed start instant, then advances by ``step`` on each call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now


class FakeTrackAPI:
    """Records every request and answers with a queue of status codes."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.statuses: List[int] = []
        self.default_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.statuses.pop(0) if self.statuses else self.default_status
        body = {} if status < 300 else {"meta": {"error": "upstream failure"}}
        return httpx.Response(status, json=body, request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        CUSTOMERIO_SITE_ID="site-123",
        CUSTOMERIO_API_KEY="key-abcdef123456",
        CUSTOMERIO_TRACK_URL="https://track.example.test/api/v1",
        ADMIN_USERNAME=ADMIN_AUTH[0],
        ADMIN_PASSWORD=ADMIN_AUTH[1],
        DATABASE_URL="sqlite://",
        LOG_TO_FILE=False,
    )


@pytest.fixture
def clock() -> SteppedClock:
    # 2026-01-15 00:00 UTC is 11:00 AEDT in Sydney
    return SteppedClock(datetime(2026, 1, 15, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def memory_store(clock) -> InMemoryAuditStore:
    return InMemoryAuditStore(clock=clock)


@pytest.fixture
def sql_store(tmp_path, clock) -> SqlAuditStore:
    engine = build_engine(f"sqlite:///{tmp_path / 'audit.db'}")
    init_db(engine)
    yield SqlAuditStore(build_session_factory(engine), clock=clock)
    engine.dispose()


@pytest.fixture
def track_api() -> FakeTrackAPI:
    return FakeTrackAPI()


@pytest.fixture
def track_client(settings, track_api) -> TrackClient:
    client = TrackClient.from_settings(settings, transport=track_api.transport)
    yield client
    client.close()


@pytest.fixture
def make_client(settings, track_client) -> Callable[..., TestClient]:
    def _make(store) -> TestClient:
        app = create_app(settings=settings, audit_store=store, track_client=track_client)
        return TestClient(app)

    return _make


@pytest.fixture
def api(make_client, memory_store) -> TestClient:
    with make_client(memory_store) as client:
        yield client
