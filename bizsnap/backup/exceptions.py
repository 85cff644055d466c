"""Error hierarchy for backup/restore operations."""

from typing import List, Optional


class BackupError(Exception):
    """Base exception for backup operations."""
    code = "backup_error"


class BackupValidationError(BackupError):
    """Size over cap, or required metadata missing."""
    code = "validation"


class BackupNotFoundError(BackupError):
    code = "not_found"

    def __init__(self, backup_id: str):
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class ChecksumMismatchError(BackupError):
    """Stored checksum differs from the recomputed one (strict mode only)."""
    code = "checksum"

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class PartialRestoreError(BackupError):
    """A write failed mid-restore.

    Earlier writes are rolled back from the journal; ``unrolled_keys`` lists the
    keys whose rollback also failed and are left in a mixed state.
    """
    code = "partial_restore"

    def __init__(self, failed_key: str, cause: Exception, unrolled_keys: Optional[List[str]] = None):
        self.failed_key = failed_key
        self.cause = cause
        self.unrolled_keys = unrolled_keys or []
        message = f"Restore failed while writing '{failed_key}': {cause}"
        if self.unrolled_keys:
            message += f"; could not roll back: {', '.join(self.unrolled_keys)}"
        super().__init__(message)


class ImportFormatError(BackupError):
    """Unparsable content, disallowed extension, or no recognizable structure."""
    code = "import_format"


class ScheduleConfigError(BackupError):
    code = "schedule_config"


class ConcurrentModificationError(BackupError):
    """The backups collection changed between read and write."""
    code = "concurrent_modification"


class ExportError(BackupError):
    code = "export"
