"""Persisted collection of backup records."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..base import BaseStoreClient
from .._utils import logger
from .exceptions import BackupValidationError, ConcurrentModificationError
from .models import BackupMetadata, BackupRecord

Mutation = Callable[[List[Dict[str, Any]]], Tuple[List[Dict[str, Any]], Any]]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _record_id(raw: Any) -> Optional[str]:
    if isinstance(raw, dict) and isinstance(raw.get("metadata"), dict):
        return raw["metadata"].get("id")
    return None


def _record_created_at(raw: Any) -> datetime:
    try:
        return BackupMetadata.model_validate(raw["metadata"]).created_at
    except (KeyError, TypeError, ValidationError):
        return _OLDEST


class BackupStore:
    """All backups live in one store key as a list of record documents.

    Mutations are read-modify-write of the whole list. They are serialized by
    an in-process lock, and a revision counter kept next to the list detects
    writers outside this process: the revision read before a mutation must
    still be current right before the write, otherwise the mutation is retried.
    """

    def __init__(self, client: BaseStoreClient, backups_key: str = "bizsnap_backups"):
        self.client = client
        self.backups_key = backups_key
        self.revision_key = f"{backups_key}_revision"
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def _read_all(self) -> List[Dict[str, Any]]:
        records = await self.client.get(self.backups_key, [])
        return records if isinstance(records, list) else []

    async def revision(self) -> int:
        return await self.client.get(self.revision_key, 0)

    async def save(self, record: BackupRecord) -> None:
        """Append a record."""
        document = record.to_document()
        await self._mutate(lambda records: (records + [document], None))
        logger.info(f"Stored backup {record.metadata.id} ({record.metadata.size:,} bytes)")

    async def list(self) -> List[BackupMetadata]:
        """Metadata of every readable record, newest first."""
        backups = []
        for position, raw in enumerate(await self._read_all()):
            try:
                backups.append((position, BackupMetadata.model_validate(raw["metadata"])))
            except (KeyError, TypeError, ValidationError) as e:
                logger.warning(f"Skipping unreadable backup entry {_record_id(raw)!r}: {e}")

        # Equal timestamps: later in the list means created later
        backups.sort(key=lambda p: (p[1].created_at, p[0]), reverse=True)
        return [metadata for _, metadata in backups]

    async def load(self, backup_id: str) -> Optional[BackupRecord]:
        """Return the record with ``backup_id`` or None.

        Raises:
            BackupValidationError: If the stored record is structurally broken
        """
        for raw in await self._read_all():
            if _record_id(raw) != backup_id:
                continue
            try:
                return BackupRecord.model_validate(raw)
            except ValidationError as e:
                raise BackupValidationError(f"Backup {backup_id} is corrupt or invalid: {e}") from e
        return None

    async def delete(self, backup_id: str) -> bool:
        """Remove a record; deleting an absent id still succeeds."""
        removed = await self._mutate(
            lambda records: (
                [r for r in records if _record_id(r) != backup_id],
                any(_record_id(r) == backup_id for r in records),
            )
        )
        if removed:
            logger.info(f"Deleted backup: {backup_id}")
        return True

    async def prune(self, keep: int) -> List[str]:
        """Keep the ``keep`` newest records and return the ids removed."""

        def _prune(records):
            if len(records) <= keep:
                return records, []
            ranked = sorted(
                range(len(records)),
                key=lambda i: (_record_created_at(records[i]), i),
                reverse=True,
            )
            dropped = set(ranked[keep:])
            kept = [r for i, r in enumerate(records) if i not in dropped]
            return kept, [_record_id(records[i]) for i in ranked[keep:]]

        removed = await self._mutate(_prune)
        if removed:
            logger.info(f"Pruned {len(removed)} old backups: {removed}")
        return removed

    async def _mutate(self, mutation: Mutation) -> Any:
        async with self._get_lock():
            return await self._commit(mutation)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception_type(ConcurrentModificationError),
        reraise=True,
    )
    async def _commit(self, mutation: Mutation) -> Any:
        revision = await self.revision()
        records = await self._read_all()
        updated, result = mutation(records)

        current = await self.revision()
        if current != revision:
            logger.warning(f"Backups collection changed during update (revision {revision} -> {current})")
            raise ConcurrentModificationError(
                f"Backups collection was modified concurrently (revision {revision} -> {current})"
            )

        await self.client.set(self.backups_key, updated)
        await self.client.set(self.revision_key, revision + 1)
        return result
