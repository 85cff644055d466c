"""Storage module with lazy loading support."""

from typing import TYPE_CHECKING

from .factory import StoreFactory, _register_backends

if TYPE_CHECKING:
    from .kv_json import JsonStoreClient
    from .kv_memory import MemoryStoreClient
    from .kv_redis import RedisStoreClient


def __getattr__(name):
    """Lazy import store backends."""
    if name == "MemoryStoreClient":
        from .kv_memory import MemoryStoreClient
        return MemoryStoreClient
    elif name == "JsonStoreClient":
        from .kv_json import JsonStoreClient
        return JsonStoreClient
    elif name == "RedisStoreClient":
        from .kv_redis import RedisStoreClient
        return RedisStoreClient
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "StoreFactory",
    "_register_backends",
    "MemoryStoreClient",
    "JsonStoreClient",
    "RedisStoreClient",
]
