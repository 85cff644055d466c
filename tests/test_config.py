"""Tests for configuration management."""

import dataclasses
import os
from unittest.mock import patch

import pytest

from bizsnap.config import BackupConfig, BizSnapConfig, StorageConfig


class TestStorageConfig:
    """Test store client configuration."""

    def test_defaults(self):
        config = StorageConfig()
        assert config.backend == "json"
        assert config.namespace == "app"
        assert config.working_dir == "./bizsnap_data"
        assert config.redis_url == "redis://localhost:6379"
        assert config.redis_password is None

    def test_from_env(self):
        with patch.dict(os.environ, {
            "STORAGE_BACKEND": "redis",
            "STORAGE_NAMESPACE": "shop",
            "STORAGE_WORKING_DIR": "/var/lib/bizsnap",
            "REDIS_URL": "redis://cache:6380",
            "REDIS_PASSWORD": "secret",
            "REDIS_MAX_CONNECTIONS": "8",
        }):
            config = StorageConfig.from_env()
            assert config.backend == "redis"
            assert config.namespace == "shop"
            assert config.working_dir == "/var/lib/bizsnap"
            assert config.redis_url == "redis://cache:6380"
            assert config.redis_password == "secret"
            assert config.redis_max_connections == 8

    def test_validation(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            StorageConfig(backend="sqlite")

        with pytest.raises(ValueError, match="namespace must not be empty"):
            StorageConfig(namespace="")

        with pytest.raises(ValueError, match="redis_max_connections must be positive"):
            StorageConfig(redis_max_connections=0)


class TestBackupConfig:
    """Test backup subsystem configuration."""

    def test_defaults(self):
        config = BackupConfig()
        assert config.backups_key == "bizsnap_backups"
        assert config.schedule_key == "backup_schedule"
        assert config.max_backup_size == 50 * 1024 * 1024
        assert config.schema_version == "2.0"
        assert config.export_file_version == "2.1"
        assert config.strict_checksum is False
        assert config.allowed_extensions == (".omran", ".json", ".backup")

    def test_from_env(self):
        with patch.dict(os.environ, {
            "BACKUP_STORAGE_KEY": "shop_backups",
            "BACKUP_MAX_SIZE": "1024",
            "BACKUP_STRICT_CHECKSUM": "true",
            "BACKUP_ALLOWED_EXTENSIONS": ".OMRAN, .json",
            "BACKUP_EXPORT_DIR": "/tmp/exports",
        }):
            config = BackupConfig.from_env()
            assert config.backups_key == "shop_backups"
            assert config.max_backup_size == 1024
            assert config.strict_checksum is True
            assert config.allowed_extensions == (".omran", ".json")
            assert config.export_dir == "/tmp/exports"

    def test_from_env_defaults_extensions(self):
        with patch.dict(os.environ, {"BACKUP_ALLOWED_EXTENSIONS": ""}):
            assert BackupConfig.from_env().allowed_extensions == (".omran", ".json", ".backup")

    def test_validation(self):
        with pytest.raises(ValueError, match="max_backup_size must be positive"):
            BackupConfig(max_backup_size=0)

        with pytest.raises(ValueError, match="must differ"):
            BackupConfig(backups_key="same", schedule_key="same")

        with pytest.raises(ValueError, match="must not be empty"):
            BackupConfig(backups_key="")

        with pytest.raises(ValueError, match="extension must start with"):
            BackupConfig(allowed_extensions=("json",))


class TestBizSnapConfig:

    def test_defaults(self):
        config = BizSnapConfig()
        assert isinstance(config.storage, StorageConfig)
        assert isinstance(config.backup, BackupConfig)

    def test_from_env(self):
        with patch.dict(os.environ, {"STORAGE_BACKEND": "memory", "BACKUP_MAX_SIZE": "2048"}):
            config = BizSnapConfig.from_env()
            assert config.storage.backend == "memory"
            assert config.backup.max_backup_size == 2048

    def test_to_dict(self):
        config = BizSnapConfig(storage=StorageConfig(working_dir="/data", redis_password="pw"))
        global_config = config.to_dict()

        assert global_config["working_dir"] == "/data"
        assert global_config["redis_password"] == "pw"
        assert global_config["redis_url"] == "redis://localhost:6379"

    def test_immutable(self):
        config = BizSnapConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.storage = StorageConfig(backend="memory")
