"""Configuration management for bizsnap."""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class StorageConfig:
    """Store client backend configuration."""
    backend: str = "json"  # memory, json, redis
    namespace: str = "app"
    working_dir: str = "./bizsnap_data"

    # Redis specific settings
    redis_url: str = "redis://localhost:6379"
    redis_password: Optional[str] = None
    redis_max_connections: int = 50
    redis_connection_timeout: float = 5.0
    redis_socket_timeout: float = 5.0
    redis_health_check_interval: int = 30

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        """Create config from environment variables."""
        return cls(
            backend=os.getenv("STORAGE_BACKEND", "json"),
            namespace=os.getenv("STORAGE_NAMESPACE", "app"),
            working_dir=os.getenv("STORAGE_WORKING_DIR", "./bizsnap_data"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            redis_password=os.getenv("REDIS_PASSWORD", None),
            redis_max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "50")),
            redis_connection_timeout=float(os.getenv("REDIS_CONNECTION_TIMEOUT", "5.0")),
            redis_socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5.0")),
            redis_health_check_interval=int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
        )

    def __post_init__(self):
        """Validate configuration."""
        valid_backends = {"memory", "json", "redis"}
        if self.backend not in valid_backends:
            raise ValueError(f"Unknown storage backend: {self.backend}. Available: {valid_backends}")
        if not self.namespace:
            raise ValueError("namespace must not be empty")
        if self.redis_max_connections <= 0:
            raise ValueError(f"redis_max_connections must be positive, got {self.redis_max_connections}")


@dataclass(frozen=True)
class BackupConfig:
    """Backup subsystem configuration."""
    backups_key: str = "bizsnap_backups"
    schedule_key: str = "backup_schedule"
    max_backup_size: int = 50 * 1024 * 1024  # 50 MiB of serialized text
    schema_version: str = "2.0"
    export_file_version: str = "2.1"
    strict_checksum: bool = False
    export_dir: str = "./exports"
    allowed_extensions: Tuple[str, ...] = (".omran", ".json", ".backup")
    app_title: str = "Business management system"

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        extensions_str = os.getenv("BACKUP_ALLOWED_EXTENSIONS", "")
        if extensions_str.strip():
            extensions = tuple(e.strip().lower() for e in extensions_str.split(",") if e.strip())
        else:
            extensions = cls.__dataclass_fields__["allowed_extensions"].default

        return cls(
            backups_key=os.getenv("BACKUP_STORAGE_KEY", "bizsnap_backups"),
            schedule_key=os.getenv("BACKUP_SCHEDULE_KEY", "backup_schedule"),
            max_backup_size=int(os.getenv("BACKUP_MAX_SIZE", str(50 * 1024 * 1024))),
            strict_checksum=os.getenv("BACKUP_STRICT_CHECKSUM", "false").lower() == "true",
            export_dir=os.getenv("BACKUP_EXPORT_DIR", "./exports"),
            allowed_extensions=extensions,
            app_title=os.getenv("BACKUP_APP_TITLE", "Business management system"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.max_backup_size <= 0:
            raise ValueError(f"max_backup_size must be positive, got {self.max_backup_size}")
        if not self.backups_key or not self.schedule_key:
            raise ValueError("backups_key and schedule_key must not be empty")
        if self.backups_key == self.schedule_key:
            raise ValueError("backups_key and schedule_key must differ")
        for ext in self.allowed_extensions:
            if not ext.startswith("."):
                raise ValueError(f"extension must start with '.', got {ext!r}")


@dataclass(frozen=True)
class BizSnapConfig:
    """Main bizsnap configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    backup: BackupConfig = field(default_factory=BackupConfig)

    @classmethod
    def from_env(cls) -> 'BizSnapConfig':
        """Create complete config from environment variables."""
        return cls(
            storage=StorageConfig.from_env(),
            backup=BackupConfig.from_env(),
        )

    def to_dict(self) -> dict:
        """Flatten into the global config dict handed to storage backends."""
        return {
            'working_dir': self.storage.working_dir,
            'redis_url': self.storage.redis_url,
            'redis_password': self.storage.redis_password,
            'redis_max_connections': self.storage.redis_max_connections,
            'redis_connection_timeout': self.storage.redis_connection_timeout,
            'redis_socket_timeout': self.storage.redis_socket_timeout,
            'redis_health_check_interval': self.storage.redis_health_check_interval,
        }
