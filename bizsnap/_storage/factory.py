"""Storage factory for centralized store client creation."""

from typing import Callable, Dict, Type

from ..base import BaseStoreClient


class StoreFactory:
    """Factory for creating store clients with validation and registration."""

    _backends: Dict[str, Callable[[], Type[BaseStoreClient]]] = {}

    ALLOWED_BACKENDS = {"memory", "json", "redis"}

    @classmethod
    def register(cls, name: str, backend_loader: Callable[[], Type[BaseStoreClient]]) -> None:
        """Register a store client backend.

        Args:
            name: Backend name (must be in ALLOWED_BACKENDS)
            backend_loader: Function that returns the store client class

        Raises:
            ValueError: If backend name not in allowed list
        """
        if name not in cls.ALLOWED_BACKENDS:
            raise ValueError(f"Backend {name} not in allowed backends: {cls.ALLOWED_BACKENDS}")
        cls._backends[name] = backend_loader

    @classmethod
    def create_store(cls, backend: str, namespace: str, global_config: dict) -> BaseStoreClient:
        """Create a store client instance.

        Args:
            backend: Backend name
            namespace: Storage namespace
            global_config: Global configuration dict

        Returns:
            Store client instance

        Raises:
            ValueError: If backend is not registered
        """
        if not cls._backends:
            _register_backends()

        if backend not in cls._backends:
            raise ValueError(f"Unknown storage backend: {backend}. Available: {sorted(cls._backends)}")

        store_class = cls._backends[backend]()
        return store_class(namespace=namespace, global_config=global_config)


def _get_memory_storage():
    from .kv_memory import MemoryStoreClient
    return MemoryStoreClient


def _get_json_storage():
    from .kv_json import JsonStoreClient
    return JsonStoreClient


def _get_redis_storage():
    from .kv_redis import RedisStoreClient
    return RedisStoreClient


def _register_backends():
    """Register built-in backends with lazy loaders."""
    StoreFactory.register("memory", _get_memory_storage)
    StoreFactory.register("json", _get_json_storage)
    StoreFactory.register("redis", _get_redis_storage)
