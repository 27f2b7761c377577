import json

import pytest

from app.config import settings
from app.services.redis_client import KVStoreError


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail_strict = False

    def _check(self, key: str, strict: bool) -> None:
        if strict and self.fail_strict:
            raise KVStoreError("store unavailable", key=key)

    async def ping(self) -> bool:
        return True

    async def get(self, key: str, strict: bool = False) -> str | None:
        self._check(key, strict)
        return self.store.get(key)

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def set_if_absent(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        if key in self.store:
            return False
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def delete(self, key: str) -> bool:
        return self.store.pop(key, None) is not None

    async def smembers(self, key: str, strict: bool = False) -> set[str]:
        self._check(key, strict)
        return set(self.sets.get(key, set()))

    # Seeding helpers
    def put_json(self, key: str, value) -> None:
        self.store[key] = json.dumps(value)

    def add_order(self, order: dict) -> None:
        self.sets.setdefault("orders:index", set()).add(order["id"])
        self.put_json(f"order:{order['id']}", order)


class FakeTransport:
    """Records messages; fails the first `failures` sends."""

    def __init__(self, failures: int = 0, configured: bool = True):
        self.failures = failures
        self.configured = configured
        self.sent = []
        self.calls = 0

    async def send(self, message) -> dict:
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(f"provider down ({self.calls})")
        self.sent.append(message)
        return {"id": f"msg-{len(self.sent)}"}


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def no_sleep():
    sleeps: list[float] = []

    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    _sleep.calls = sleeps
    return _sleep


@pytest.fixture(autouse=True)
def report_settings(monkeypatch):
    """Pin report settings so tests do not depend on the local environment."""
    monkeypatch.setattr(settings, "RESEND_API_KEY", None)
    monkeypatch.setattr(settings, "RESEND_FROM", "reports@example.org")
    monkeypatch.setattr(settings, "REPLY_TO", None)
    monkeypatch.setattr(settings, "REPORTS_CC", "")
    monkeypatch.setattr(settings, "REPORTS_BCC", "")
    monkeypatch.setattr(settings, "REPORTS_LOG_TO", "")
    monkeypatch.setattr(settings, "REPORT_TOKEN", None)
    monkeypatch.setattr(settings, "REPORTS_STAGGER_BY_KIND", True)
    monkeypatch.setattr(settings, "REALTIME_CLAIM_MARKER_FIRST", False)
    return settings
