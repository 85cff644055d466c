"""Test doubles shared across suites."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional, Set

from bizsnap._storage.kv_memory import MemoryStoreClient
from bizsnap.base import Clock
from bizsnap.backup.scheduler import CancelToken, Timer

SAMPLE_DATA = {
    "products": [{"id": 1, "name": "Widget", "stock": 12}],
    "customers": [{"id": 7, "name": "Acme"}],
    "sales_invoices": [{"id": "INV-1", "total": 120.5}],
}

SAMPLE_SETTINGS = {
    "company_settings": {"name": "Acme Trading", "currency": "SAR"},
    "app_settings": {"theme": "dark"},
}


class FixedClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, now: Optional[datetime] = None):
        self.current = now or datetime(2026, 10, 19, 10, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class ScheduledCall:
    delay: float
    callback: Callable
    token: CancelToken
    fired: bool = False


class ManualTimer(Timer):
    """Records scheduled callbacks; tests fire them explicitly."""

    def __init__(self):
        self.calls: List[ScheduledCall] = []

    def schedule(self, delay: float, callback: Callable) -> CancelToken:
        token = CancelToken()
        self.calls.append(ScheduledCall(delay=delay, callback=callback, token=token))
        return token

    @property
    def pending(self) -> List[ScheduledCall]:
        return [c for c in self.calls if not c.fired and not c.token.cancelled]

    async def fire_next(self) -> ScheduledCall:
        call = self.pending[0]
        call.fired = True
        await call.callback()
        return call


@dataclass
class FlakyStoreClient(MemoryStoreClient):
    """Memory store whose writes to selected keys fail."""

    fail_keys: Set[str] = field(default_factory=set)
    fail_deletes: Set[str] = field(default_factory=set)

    async def set(self, key: str, value: Any) -> None:
        if key in self.fail_keys:
            raise IOError(f"write refused for {key}")
        await super().set(key, value)

    async def delete(self, key: str) -> None:
        if key in self.fail_deletes:
            raise IOError(f"delete refused for {key}")
        await super().delete(key)


async def seed(client, data=None, settings=None) -> None:
    for key, value in (data if data is not None else SAMPLE_DATA).items():
        await client.set(key, value)
    for key, value in (settings if settings is not None else SAMPLE_SETTINGS).items():
        await client.set(key, value)
