"""Backup and restore for the business data held in a store client."""

from .exceptions import (
    BackupError,
    BackupNotFoundError,
    BackupValidationError,
    ChecksumMismatchError,
    ConcurrentModificationError,
    ExportError,
    ImportFormatError,
    PartialRestoreError,
    ScheduleConfigError,
)
from .manager import BackupService
from .models import (
    BackupMetadata,
    BackupOptions,
    BackupRecord,
    BackupSystemInfo,
    CreateResult,
    ExportFormat,
    ExportResult,
    ImportResult,
    RestoreOptions,
    RestoreResult,
    ScheduleConfig,
)

__all__ = [
    "BackupService",
    "BackupMetadata",
    "BackupOptions",
    "BackupRecord",
    "BackupSystemInfo",
    "CreateResult",
    "ExportFormat",
    "ExportResult",
    "ImportResult",
    "RestoreOptions",
    "RestoreResult",
    "ScheduleConfig",
    "BackupError",
    "BackupNotFoundError",
    "BackupValidationError",
    "ChecksumMismatchError",
    "ConcurrentModificationError",
    "ExportError",
    "ImportFormatError",
    "PartialRestoreError",
    "ScheduleConfigError",
]
