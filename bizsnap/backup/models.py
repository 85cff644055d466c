"""Data models for backup/restore operations."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

CompressionLevel = Literal["fast", "balanced", "maximum"]


class BackupMetadata(BaseModel):
    """Descriptive envelope of a backup."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Opaque unique backup identifier")
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(..., alias="createdAt")
    size: int = Field(0, description="Byte length of the serialized payload")
    version: str = Field(..., description="Backup schema version")
    data_types: List[str] = Field(default_factory=list, alias="dataTypes")
    is_automatic: bool = Field(False, alias="isAutomatic")
    checksum: str = Field("", description="SHA-256 hex digest of data")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class BackupRecord(BaseModel):
    """A stored backup: metadata plus the snapshot itself."""

    model_config = ConfigDict(populate_by_name=True)

    metadata: BackupMetadata
    data: Dict[str, Any]
    settings: Dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        """Wire/file representation with camelCase metadata keys."""
        return self.model_dump(mode="json", by_alias=True)


class BackupOptions(BaseModel):
    """Which domain areas a new backup covers."""

    model_config = ConfigDict(populate_by_name=True)

    include_settings: bool = Field(True, alias="includeSettings")
    include_sales_data: bool = Field(True, alias="includeSalesData")
    include_purchases_data: bool = Field(True, alias="includePurchasesData")
    include_inventory_data: bool = Field(True, alias="includeInventoryData")
    include_employees_data: bool = Field(True, alias="includeEmployeesData")
    include_financial_data: bool = Field(True, alias="includeFinancialData")
    include_investors_data: bool = Field(True, alias="includeInvestorsData")
    compress: bool = True
    encrypt: bool = False
    encryption_key: Optional[str] = Field(None, alias="encryptionKey")
    compression_level: CompressionLevel = Field("balanced", alias="compressionLevel")

    @model_validator(mode="after")
    def check_encryption_key(self) -> "BackupOptions":
        if self.encrypt and not self.encryption_key:
            raise ValueError("encryption requires an encryption key")
        return self


class RestoreOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overwrite_existing: bool = Field(False, alias="overwriteExisting")
    merge_data: bool = Field(True, alias="mergeData")
    restore_settings: bool = Field(True, alias="restoreSettings")
    create_backup_before_restore: bool = Field(True, alias="createBackupBeforeRestore")


class ScheduleConfig(BaseModel):
    """Persisted automatic-backup schedule."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    frequency: Literal["daily", "weekly", "monthly"] = "weekly"
    time: str = Field("02:00", description="Time of day, HH:MM (24h)")
    max_backups: int = Field(10, alias="maxBackups")
    auto_cleanup: bool = Field(True, alias="autoCleanup")

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        if not _TIME_PATTERN.match(v):
            raise ValueError(f"time must be HH:MM, got {v!r}")
        return v

    @field_validator("max_backups")
    @classmethod
    def validate_max_backups(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_backups must be positive, got {v}")
        return v

    @property
    def hour_minute(self) -> Tuple[int, int]:
        hours, minutes = self.time.split(":")
        return int(hours), int(minutes)


class ExportFormat(BaseModel):
    """Serialization options for an export."""

    model_config = ConfigDict(populate_by_name=True)

    format: Literal["json", "compressed", "encrypted"] = "json"
    encryption_key: Optional[str] = Field(None, alias="encryptionKey")
    compression_level: CompressionLevel = Field("balanced", alias="compressionLevel")

    @model_validator(mode="after")
    def check_encryption_key(self) -> "ExportFormat":
        if self.format == "encrypted" and not self.encryption_key:
            raise ValueError("encrypted export requires an encryption key")
        return self

    @classmethod
    def from_options(cls, options: BackupOptions) -> "ExportFormat":
        """Export format implied by the compress/encrypt flags of a backup request."""
        if options.encrypt:
            return cls(format="encrypted", encryption_key=options.encryption_key,
                       compression_level=options.compression_level)
        if options.compress:
            return cls(format="compressed", compression_level=options.compression_level)
        return cls(format="json")


class BackupSystemInfo(BaseModel):
    total_backups: int
    total_size: int
    last_backup: Optional[datetime] = None
    scheduled_backups: bool


class OperationResult(BaseModel):
    """Discriminated result returned across the public API."""

    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


class CreateResult(OperationResult):
    backup_id: Optional[str] = None


class RestoreResult(OperationResult):
    restored_keys: List[str] = Field(default_factory=list)
    checksum_verified: Optional[bool] = None


class ExportResult(OperationResult):
    filename: Optional[str] = None
    location: Optional[str] = None


class ImportResult(OperationResult):
    backup_id: Optional[str] = None
