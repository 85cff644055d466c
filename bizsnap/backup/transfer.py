"""Import and export of backup files.

Exports render a stored record as a self-describing document (optionally
compressed or encrypted) and hand it to a channel. Imports accept that
document back, or a bare map of collections from an older or foreign tool,
and append it to the Backup Store as a new record.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..base import Clock
from ..config import BackupConfig
from .._utils import logger
from .exceptions import BackupValidationError, ExportError, ImportFormatError
from .exporters import ExportChannel
from .models import BackupMetadata, BackupRecord, ExportFormat
from .store import BackupStore
from .utils import (
    build_export_filename,
    compress_text,
    compute_checksum,
    decompress_text,
    decrypt_text,
    encrypt_text,
    format_file_size,
    generate_backup_id,
    payload_size,
)

_PENDING_ID = "pending"


class ImportAdapter(ABC):
    """Turns one family of import documents into a BackupRecord."""

    name: str = ""
    versions: Tuple[str, ...] = ()

    @abstractmethod
    def matches(self, document: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    def normalize(self, document: Dict[str, Any], now: datetime, schema_version: str) -> BackupRecord:
        ...


class CanonicalAdapter(ImportAdapter):
    """Documents produced by this package: ``{metadata, data, settings}``."""

    name = "canonical"
    versions = ("1.0", "2.0", "2.1")

    def matches(self, document: Dict[str, Any]) -> bool:
        return isinstance(document.get("metadata"), dict) and isinstance(document.get("data"), dict)

    def normalize(self, document: Dict[str, Any], now: datetime, schema_version: str) -> BackupRecord:
        if not self.matches(document):
            raise ImportFormatError("Backup file is missing its metadata or data section")

        meta = document["metadata"]
        if not meta.get("name") and not meta.get("id"):
            raise BackupValidationError("Backup metadata is missing a name and an id")

        settings = document.get("settings") or {}
        if not isinstance(settings, dict):
            raise BackupValidationError("Backup settings must be an object")

        try:
            metadata = BackupMetadata(
                id=str(meta.get("id") or _PENDING_ID),
                name=str(meta.get("name") or ""),
                description=meta.get("description"),
                created_at=now,
                version=str(meta.get("version") or schema_version),
                data_types=meta.get("dataTypes") or [],
                checksum=meta.get("checksum") or document.get("checksum") or "",
            )
        except ValidationError as e:
            raise BackupValidationError(f"Backup metadata is invalid: {e}") from e

        return BackupRecord(metadata=metadata, data=document["data"], settings=settings)


class LegacyCollectionsAdapter(ImportAdapter):
    """A bare ``{collection: records}`` map without any envelope."""

    name = "legacy-collections"
    hints = ("settings", "products", "customers", "sales", "purchases")

    def matches(self, document: Dict[str, Any]) -> bool:
        if any(hint in key.lower() for key in document for hint in self.hints):
            return True
        return any(isinstance(value, (list, dict)) for value in document.values())

    def normalize(self, document: Dict[str, Any], now: datetime, schema_version: str) -> BackupRecord:
        if not self.matches(document):
            raise ImportFormatError("The file contains no recognizable business data")

        data: Dict[str, Any] = {}
        settings: Dict[str, Any] = {}
        for key, value in document.items():
            if "settings" in key.lower():
                settings[key] = value
            else:
                data[key] = value

        metadata = BackupMetadata(
            id=_PENDING_ID,
            name="",
            description="Imported from an external file",
            created_at=now,
            version=schema_version,
            data_types=list(data.keys()),
        )
        return BackupRecord(metadata=metadata, data=data, settings=settings)


class AdapterChain:
    """Pick the adapter for a document by its declared schema version.

    ``schemaVersion`` at the top level, or ``metadata.version``, selects an
    adapter directly; an explicit ``schemaVersion`` nobody handles is rejected.
    Documents without a discriminant go to the first adapter that matches
    structurally, and finally to the fallback.
    """

    def __init__(self, adapters: Sequence[ImportAdapter], fallback: ImportAdapter):
        self.adapters = list(adapters)
        self.fallback = fallback

    @staticmethod
    def discriminant(document: Dict[str, Any]) -> Tuple[Optional[str], bool]:
        if document.get("schemaVersion") is not None:
            return str(document["schemaVersion"]), True
        metadata = document.get("metadata")
        if isinstance(metadata, dict) and metadata.get("version") is not None:
            return str(metadata["version"]), False
        return None, False

    def select(self, document: Dict[str, Any]) -> ImportAdapter:
        version, explicit = self.discriminant(document)
        if version is not None:
            for adapter in self.adapters:
                if version in adapter.versions:
                    return adapter
            if explicit:
                raise ImportFormatError(f"Unsupported backup schema version: {version}")

        for adapter in self.adapters:
            if adapter.matches(document):
                return adapter

        logger.warning(f"No known backup layout detected, importing as {self.fallback.name} (best effort)")
        return self.fallback


class ImportExportGateway:
    """Renders records for export and turns imported files into new records."""

    def __init__(
        self,
        store: BackupStore,
        clock: Clock,
        channels: Dict[str, ExportChannel],
        config: Optional[BackupConfig] = None,
        adapters: Optional[AdapterChain] = None,
    ):
        self.store = store
        self.clock = clock
        self.channels = channels
        self.config = config or BackupConfig()
        self.adapters = adapters or AdapterChain([CanonicalAdapter()], LegacyCollectionsAdapter())

    # ----- export -----

    def render(self, record: BackupRecord, fmt: Optional[ExportFormat] = None, export_type: str = "file") -> Tuple[str, str]:
        """Serialize ``record`` for export.

        The exported metadata is a copy stamped with ``exportDate``,
        ``fileVersion`` and ``exportType``; ``record`` itself is not modified.

        Returns:
            ``(text, filename)``

        Raises:
            ExportError: If the encryption key is malformed
        """
        fmt = fmt or ExportFormat()
        metadata = record.metadata.model_dump(mode="json", by_alias=True)
        metadata.update(
            exportDate=self.clock.now().isoformat(),
            fileVersion=self.config.export_file_version,
            exportType=export_type,
        )
        document = {"metadata": metadata, "data": record.data, "settings": record.settings}
        text = json.dumps(document, indent=2, ensure_ascii=False, default=str)

        if fmt.format == "compressed":
            text = compress_text(text, fmt.compression_level)
        elif fmt.format == "encrypted":
            try:
                text = encrypt_text(text, fmt.encryption_key, fmt.compression_level)
            except ValueError as e:
                raise ExportError(f"Invalid encryption key: {e}") from e

        return text, build_export_filename(record.metadata.name, record.metadata.created_at)

    async def export(self, record: BackupRecord, channel: str = "file", fmt: Optional[ExportFormat] = None) -> Tuple[str, Optional[str]]:
        """Render ``record`` and deliver it through ``channel``.

        Returns:
            ``(filename, location)`` where location is channel specific

        Raises:
            ExportError: Unknown channel or delivery failure
        """
        sink = self.channels.get(channel)
        if sink is None:
            raise ExportError(f"Unsupported export channel: {channel}. Available: {sorted(self.channels)}")

        text, filename = self.render(record, fmt, export_type=channel)
        try:
            location = await sink.send(text, filename)
        except OSError as e:
            raise ExportError(f"Could not export {filename} via {channel}: {e}") from e

        logger.info(
            f"Exported backup {record.metadata.id} as {filename} via {channel} "
            f"({format_file_size(len(text.encode('utf-8')))})"
        )
        return filename, location

    # ----- import -----

    def check_extension(self, filename: str) -> None:
        extension = os.path.splitext(filename)[1].lower()
        if extension not in self.config.allowed_extensions:
            raise ImportFormatError(
                f"Unsupported file type {extension or '(none)'!r}; "
                f"expected one of {', '.join(self.config.allowed_extensions)}"
            )

    def decode(self, text: str, encryption_key: Optional[str] = None) -> Dict[str, Any]:
        """Parse plain JSON, then base64 gzip, then (with a key) Fernet payloads."""
        candidates: List[Any] = [lambda: text]
        if encryption_key:
            candidates.append(lambda: decrypt_text(text, encryption_key))
        candidates.append(lambda: decompress_text(text))

        for candidate in candidates:
            try:
                document = json.loads(candidate())
            except ValueError:
                continue
            if not isinstance(document, dict):
                raise ImportFormatError("Backup file must contain a JSON object")
            return document

        hint = "" if encryption_key else " (an encrypted file needs its encryption key)"
        raise ImportFormatError(f"The file is corrupt or not a valid backup{hint}")

    async def import_path(self, path: Union[str, Path], encryption_key: Optional[str] = None) -> BackupRecord:
        """Import a backup file from disk; the extension is checked before reading."""
        path = Path(path)
        self.check_extension(path.name)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ImportFormatError(f"Cannot read {path}: {e}") from e
        return await self.import_backup(path.name, content, encryption_key)

    async def import_backup(self, filename: str, content: Union[str, bytes], encryption_key: Optional[str] = None) -> BackupRecord:
        """Validate, normalize and store an imported backup.

        Args:
            filename: Original file name, used for the extension check
            content: File content; bytes are decoded as UTF-8
            encryption_key: Fernet key for encrypted exports

        Returns:
            The stored record, with a fresh ``imported_`` id

        Raises:
            ImportFormatError: Unsupported extension or undecodable content
            BackupValidationError: Structurally invalid backup or size cap exceeded
        """
        self.check_extension(filename)

        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ImportFormatError(f"Backup file is not UTF-8 text: {e}") from e

        document = self.decode(content, encryption_key)
        now = self.clock.now()
        adapter = self.adapters.select(document)
        record = self._restamp(adapter.normalize(document, now, self.config.schema_version), now)

        await self.store.save(record)
        logger.info(f"Imported {filename} as backup {record.metadata.id} via {adapter.name} layout")
        return record

    def _restamp(self, record: BackupRecord, now: datetime) -> BackupRecord:
        metadata = record.metadata
        if metadata.checksum:
            if compute_checksum(record.data) != metadata.checksum:
                logger.warning(f"Imported backup {metadata.id} does not match its checksum; restore will report it")
            checksum = metadata.checksum
        else:
            checksum = compute_checksum(record.data)

        size = payload_size(record.data, record.settings)
        if size > self.config.max_backup_size:
            raise BackupValidationError(
                f"Imported backup is too large: {format_file_size(size)} "
                f"(limit {format_file_size(self.config.max_backup_size)})"
            )

        name = f"{metadata.name} (imported)" if metadata.name else f"Imported backup - {now.date().isoformat()}"
        metadata = metadata.model_copy(
            update={
                "id": generate_backup_id(now, prefix="imported"),
                "name": name,
                "created_at": now,
                "size": size,
                "is_automatic": False,
                "checksum": checksum,
            }
        )
        return record.model_copy(update={"metadata": metadata})
