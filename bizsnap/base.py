from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class StorageNameSpace:
    namespace: str
    global_config: dict = field(default_factory=dict)


@dataclass
class BaseStoreClient(StorageNameSpace, ABC):
    """Generic key -> value persistent store holding JSON-compatible values.

    Business collections (products, customers, ...) and settings groups live
    under plain string keys. Implementations must return independent copies so
    that callers can mutate what they read without touching stored state.
    """

    @abstractmethod
    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        """Return the value stored at ``key`` or ``default`` when absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Persist ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is a no-op."""
        ...

    @abstractmethod
    async def all_keys(self) -> List[str]:
        ...

    @abstractmethod
    async def drop(self) -> None:
        ...

    async def close(self) -> None:
        """Release backend resources."""
        pass


class Clock(ABC):
    """Source of the current instant; injectable for tests."""

    @abstractmethod
    def now(self) -> datetime:
        """Return a timezone-aware datetime."""
        ...


class SystemClock(Clock):
    """Wall clock in the local timezone."""

    def now(self) -> datetime:
        return datetime.now().astimezone()
