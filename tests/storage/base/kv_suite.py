"""Base test suite for store client implementations."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import pytest


@dataclass
class StoreClientContract:
    """Contract that all store clients must fulfill."""

    supports_persistence: bool = True
    isolates_values: bool = True


class BaseStoreClientTestSuite(ABC):
    """Abstract test suite all store client implementations must pass."""

    @pytest.fixture
    @abstractmethod
    async def storage(self) -> Any:
        """Provide store client instance for testing."""
        pass

    @pytest.fixture
    @abstractmethod
    def contract(self) -> StoreClientContract:
        """Define store capabilities contract."""
        pass

    @pytest.mark.asyncio
    async def test_basic_operations(self, storage):
        """Test basic get/set operations."""
        await storage.set("products", [{"id": 1, "name": "Widget"}])

        result = await storage.get("products")
        assert result == [{"id": 1, "name": "Widget"}]

        # Missing keys fall back to the default
        assert await storage.get("nonexistent") is None
        assert await storage.get("nonexistent", []) == []

        # Replace existing value
        await storage.set("products", [])
        assert await storage.get("products") == []

    @pytest.mark.asyncio
    async def test_json_values(self, storage):
        """Nested JSON-compatible values survive the round trip."""
        settings = {
            "name": "شركة الأمل",
            "tax": {"rate": 0.15, "enabled": True},
            "branches": ["Riyadh", "Jeddah"],
            "logo": None,
        }
        await storage.set("company_settings", settings)
        assert await storage.get("company_settings") == settings

    @pytest.mark.asyncio
    async def test_delete(self, storage):
        await storage.set("customers", [{"id": 1}])
        await storage.delete("customers")
        assert await storage.get("customers") is None

        # Deleting an absent key is a no-op
        await storage.delete("customers")

    @pytest.mark.asyncio
    async def test_all_keys(self, storage):
        """Test listing all keys."""
        await storage.drop()

        for i in range(10):
            await storage.set(f"test_key_{i}", {"value": i})

        all_keys = await storage.all_keys()
        for i in range(10):
            assert f"test_key_{i}" in all_keys
        assert len(all_keys) == 10

    @pytest.mark.asyncio
    async def test_drop(self, storage):
        """Test dropping all data."""
        for i in range(5):
            await storage.set(f"drop_key_{i}", [i])

        await storage.drop()

        assert await storage.all_keys() == []
        assert await storage.get("drop_key_3") is None

    @pytest.mark.asyncio
    async def test_value_isolation(self, storage, contract):
        """Mutating a value after set or get does not change stored state."""
        if not contract.isolates_values:
            pytest.skip("Store doesn't isolate values")

        original = [{"id": 1, "stock": 5}]
        await storage.set("products", original)
        original[0]["stock"] = 0

        fetched = await storage.get("products")
        assert fetched[0]["stock"] == 5

        fetched.append({"id": 2})
        assert len(await storage.get("products")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_access(self, storage):
        """Test concurrent read/write operations."""
        async def write_task(index):
            await storage.set(f"concurrent_{index}", {"index": index})

        async def read_task(index):
            return await storage.get(f"concurrent_{index}")

        await asyncio.gather(*[write_task(i) for i in range(20)])
        results = await asyncio.gather(*[read_task(i) for i in range(20)])

        for i, result in enumerate(results):
            assert result == {"index": i}
