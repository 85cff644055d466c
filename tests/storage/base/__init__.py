"""Base test suite shared by all store client backends."""

from .kv_suite import BaseStoreClientTestSuite, StoreClientContract

__all__ = [
    "BaseStoreClientTestSuite",
    "StoreClientContract",
]
