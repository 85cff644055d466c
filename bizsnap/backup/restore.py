"""Apply a stored backup back into the store client."""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from ..base import BaseStoreClient
from ..events import DATA_RESTORED, EventBus
from .._utils import logger
from .exceptions import BackupValidationError, ChecksumMismatchError, PartialRestoreError
from .models import BackupRecord, RestoreOptions
from .utils import compute_checksum

_MISSING = object()


@dataclass
class StagedWrite:
    key: str
    value: Any
    label: str
    prior: Any = _MISSING


@dataclass
class RestoreOutcome:
    restored_keys: List[str] = field(default_factory=list)
    checksum_verified: Optional[bool] = None


def validate_record(record: BackupRecord) -> None:
    """Structural checks every restorable record must pass."""
    if not record.metadata.id:
        raise BackupValidationError("Backup is corrupt or invalid: missing id")
    if not record.metadata.version:
        raise BackupValidationError("Backup is corrupt or invalid: missing version")
    if record.data is None:
        raise BackupValidationError("Backup is corrupt or invalid: missing data")


class RestoreEngine:
    """Two-phase restore: stage every write in memory, then commit with a journal.

    Staging reads the current value of each target key and decides between
    overwrite, merge and skip. Committing writes the staged values in order;
    if one write fails, the keys already written are put back to their prior
    values (or deleted when they did not exist) before the error is raised.
    """

    def __init__(self, client: BaseStoreClient, events: EventBus, strict_checksum: bool = False):
        self.client = client
        self.events = events
        self.strict_checksum = strict_checksum

    async def restore(self, record: BackupRecord, options: RestoreOptions) -> RestoreOutcome:
        validate_record(record)
        checksum_verified = self.check_integrity(record)

        staged = await self._stage(record, options)
        await self._commit(staged)

        logger.info(f"Restored backup {record.metadata.id}: {len(staged)} keys written")
        await self.events.emit(DATA_RESTORED)

        return RestoreOutcome(
            restored_keys=[write.label for write in staged],
            checksum_verified=checksum_verified,
        )

    def check_integrity(self, record: BackupRecord) -> Optional[bool]:
        """Compare the stored checksum with one recomputed over ``record.data``.

        Returns None when the record carries no checksum. A mismatch is logged
        and reported as False, or raised in strict mode.
        """
        expected = record.metadata.checksum
        if not expected:
            return None

        actual = compute_checksum(record.data)
        if actual == expected:
            logger.info(f"Checksum verified for backup {record.metadata.id}")
            return True

        if self.strict_checksum:
            raise ChecksumMismatchError(expected, actual)
        logger.warning(
            f"Checksum mismatch for backup {record.metadata.id}, data may have been modified. "
            f"Expected: {expected}, Got: {actual}"
        )
        return False

    async def _stage(self, record: BackupRecord, options: RestoreOptions) -> List[StagedWrite]:
        staged: List[StagedWrite] = []

        for key, value in record.data.items():
            existing = await self.client.get(key, None)
            decision = self._decide(key, existing, value, options)
            if decision is None:
                logger.debug(f"Skipping existing key {key}")
                continue
            new_value, label = decision
            prior = _MISSING if existing is None else existing
            staged.append(StagedWrite(key=key, value=new_value, label=label, prior=prior))

        if options.restore_settings:
            for group, value in record.settings.items():
                existing = await self.client.get(group, None)
                prior = _MISSING if existing is None else existing
                staged.append(StagedWrite(key=group, value=value, label=f"settings.{group}", prior=prior))

        return staged

    @staticmethod
    def _decide(key: str, existing: Any, value: Any, options: RestoreOptions) -> Optional[Tuple[Any, str]]:
        if options.overwrite_existing or existing is None:
            return value, key
        if options.merge_data and isinstance(existing, list) and isinstance(value, list):
            # Concatenate without de-duplication; backup entries go last
            return existing + value, f"{key} (merged)"
        return None

    async def _commit(self, staged: List[StagedWrite]) -> None:
        journal: List[StagedWrite] = []

        for write in staged:
            try:
                await self.client.set(write.key, write.value)
            except Exception as e:
                logger.error(f"Restore write failed for {write.key}: {e}; rolling back {len(journal)} keys")
                unrolled = await self._rollback(journal)
                raise PartialRestoreError(write.key, e, unrolled) from e
            journal.append(write)

    async def _rollback(self, journal: List[StagedWrite]) -> List[str]:
        unrolled = []
        for write in reversed(journal):
            try:
                if write.prior is _MISSING:
                    await self.client.delete(write.key)
                else:
                    await self.client.set(write.key, write.prior)
            except Exception as e:
                logger.error(f"Rollback failed for {write.key}: {e}")
                unrolled.append(write.key)
        return unrolled
