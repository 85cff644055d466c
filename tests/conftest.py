"""Global pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bizsnap._storage.kv_memory import MemoryStoreClient
from bizsnap.backup import BackupService
from bizsnap.config import BackupConfig, BizSnapConfig, StorageConfig
from tests.utils import FixedClock, ManualTimer


@pytest.fixture
def temp_storage_dir(tmp_path):
    """Per-test working directory for file based stores and exports."""
    path = tmp_path / "bizsnap"
    path.mkdir()
    return path


@pytest.fixture
def client():
    return MemoryStoreClient(namespace="test")


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def config(temp_storage_dir):
    return BizSnapConfig(
        storage=StorageConfig(backend="memory", namespace="test", working_dir=str(temp_storage_dir)),
        backup=BackupConfig(export_dir=str(temp_storage_dir / "exports")),
    )


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def service(client, clock, timer, config, opened_urls):
    """BackupService over an in-memory store with a fixed clock and manual timer."""
    return BackupService(client, clock=clock, timer=timer, config=config, opener=opened_urls.append)
