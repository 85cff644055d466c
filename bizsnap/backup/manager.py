"""Backup and restore orchestration over a single store client."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Type, TypeVar, Union

from ..base import BaseStoreClient, Clock, SystemClock
from ..config import BizSnapConfig
from ..events import EventBus
from .._storage import StoreFactory
from .._utils import logger
from .collector import DataCollector
from .exceptions import BackupError, BackupNotFoundError, BackupValidationError
from .exporters import SHARE_DESTINATIONS, ExportChannel, FileChannel, ShareChannel
from .exporters.channels import Opener, ShareSurface
from .models import (
    BackupMetadata,
    BackupOptions,
    BackupRecord,
    BackupSystemInfo,
    CreateResult,
    ExportFormat,
    ExportResult,
    ImportResult,
    OperationResult,
    RestoreOptions,
    RestoreResult,
    ScheduleConfig,
)
from .restore import RestoreEngine
from .scheduler import AsyncioTimer, ScheduleManager, Timer
from .store import BackupStore
from .transfer import ImportExportGateway
from .utils import compute_checksum, format_file_size, generate_backup_id, payload_size

R = TypeVar("R", bound=OperationResult)


class BackupService:
    """Public entry point of the backup subsystem.

    Create, restore, export and import never raise; they return result models
    carrying ``success`` plus an ``error`` message and ``error_code`` on failure.
    """

    def __init__(
        self,
        client: BaseStoreClient,
        clock: Optional[Clock] = None,
        timer: Optional[Timer] = None,
        config: Optional[BizSnapConfig] = None,
        events: Optional[EventBus] = None,
        share_surface: Optional[ShareSurface] = None,
        opener: Optional[Opener] = None,
    ):
        """Initialize backup service.

        Args:
            client: Store client holding business collections, settings and backups
            clock: Source of "now"; defaults to the local wall clock
            timer: One-shot timer used by the schedule; defaults to asyncio tasks
            config: Package configuration
            events: Bus receiving the "data-restored" broadcast
            share_surface: Native share hook for the messaging/cloud channels
            opener: Opens a channel's destination URL when sharing falls back
        """
        self.client = client
        self.clock = clock or SystemClock()
        self.timer = timer or AsyncioTimer()
        self.config = config or BizSnapConfig()
        self.events = events or EventBus()

        backup_config = self.config.backup
        self.collector = DataCollector(client)
        self.store = BackupStore(client, backup_config.backups_key)
        self.restorer = RestoreEngine(client, self.events, strict_checksum=backup_config.strict_checksum)
        self.scheduler = ScheduleManager(
            client,
            self.store,
            self.clock,
            self.timer,
            self._create_automatic_backup,
            schedule_key=backup_config.schedule_key,
        )
        self.gateway = ImportExportGateway(
            self.store,
            self.clock,
            self._build_channels(share_surface, opener),
            config=backup_config,
        )

    @classmethod
    def from_config(cls, config: Optional[BizSnapConfig] = None, **kwargs) -> "BackupService":
        """Build the store client from ``config.storage`` and wrap it."""
        config = config or BizSnapConfig.from_env()
        client = StoreFactory.create_store(
            config.storage.backend,
            namespace=config.storage.namespace,
            global_config=config.to_dict(),
        )
        logger.info(f"Using {config.storage.backend} store for namespace {config.storage.namespace}")
        return cls(client, config=config, **kwargs)

    # ----- lifecycle -----

    async def start(self) -> None:
        """Re-arm automatic backups from the persisted schedule."""
        next_run = await self.scheduler.resume()
        if next_run is not None:
            logger.info(f"Automatic backups resumed, next run at {next_run.isoformat()}")

    async def shutdown(self) -> None:
        self.scheduler.cancel()
        await self.client.close()

    # ----- create / browse -----

    async def create_backup(
        self,
        name: str,
        description: Optional[str] = None,
        options: Optional[BackupOptions] = None,
        is_automatic: bool = False,
    ) -> CreateResult:
        """Snapshot the selected business data and append it to the backup list.

        Args:
            name: Human-readable backup name
            description: Optional free text
            options: Which areas to include; everything by default
            is_automatic: True for backups created by the schedule

        Returns:
            CreateResult with the new backup id, or the failure reason
        """
        try:
            record = await self._build_record(name, description, options or BackupOptions(), is_automatic)
            await self.store.save(record)
        except Exception as e:
            return self._failure(CreateResult, "create backup", e)

        logger.info(f"Backup created: {record.metadata.id} ({format_file_size(record.metadata.size)})")
        return CreateResult(success=True, backup_id=record.metadata.id)

    async def list_backups(self) -> List[BackupMetadata]:
        """List backups, newest first."""
        return await self.store.list()

    async def get_backup(self, backup_id: str) -> Optional[BackupRecord]:
        return await self.store.load(backup_id)

    async def delete_backup(self, backup_id: str) -> bool:
        return await self.store.delete(backup_id)

    async def get_system_info(self) -> BackupSystemInfo:
        backups = await self.store.list()
        schedule = await self.scheduler.get_config()
        return BackupSystemInfo(
            total_backups=len(backups),
            total_size=sum(b.size for b in backups),
            last_backup=backups[0].created_at if backups else None,
            scheduled_backups=schedule.enabled,
        )

    # ----- restore -----

    async def restore_backup(self, backup_id: str, options: Optional[RestoreOptions] = None) -> RestoreResult:
        """Restore a stored backup into the store client.

        A pre-restore snapshot is taken first unless disabled; failing to take
        it does not stop the restore.
        """
        options = options or RestoreOptions()
        logger.info(f"Starting restore: {backup_id}")

        try:
            if options.create_backup_before_restore:
                await self._pre_restore_snapshot()

            record = await self.store.load(backup_id)
            if record is None:
                raise BackupNotFoundError(backup_id)

            outcome = await self.restorer.restore(record, options)
        except Exception as e:
            return self._failure(RestoreResult, f"restore backup {backup_id}", e)

        return RestoreResult(
            success=True,
            restored_keys=outcome.restored_keys,
            checksum_verified=outcome.checksum_verified,
        )

    # ----- export / import -----

    async def render_export(self, backup_id: str, fmt: Optional[ExportFormat] = None) -> Tuple[str, str]:
        """Rendered export text and filename, for callers that deliver it themselves.

        Raises:
            BackupNotFoundError: If no backup has ``backup_id``
        """
        record = await self._require(backup_id)
        return self.gateway.render(record, fmt)

    async def export_backup(
        self,
        backup_id: str,
        channel: str = "file",
        fmt: Optional[ExportFormat] = None,
        options: Optional[BackupOptions] = None,
    ) -> ExportResult:
        """Export a backup through ``channel``.

        Args:
            backup_id: Backup to export
            channel: "file" or a share destination (whatsapp, drive, dropbox, onedrive, email)
            fmt: Explicit export format
            options: Backup options whose compress/encrypt flags pick the format
                when ``fmt`` is not given

        Returns:
            ExportResult with the file name and channel-specific location
        """
        if fmt is None and options is not None:
            fmt = ExportFormat.from_options(options)

        try:
            record = await self._require(backup_id)
            filename, location = await self.gateway.export(record, channel, fmt)
        except Exception as e:
            return self._failure(ExportResult, f"export backup {backup_id}", e)

        return ExportResult(success=True, filename=filename, location=location)

    async def import_backup(
        self,
        filename: str,
        content: Union[str, bytes],
        encryption_key: Optional[str] = None,
    ) -> ImportResult:
        try:
            record = await self.gateway.import_backup(filename, content, encryption_key)
        except Exception as e:
            return self._failure(ImportResult, f"import {filename}", e)
        return ImportResult(success=True, backup_id=record.metadata.id)

    async def import_file(self, path: Union[str, Path], encryption_key: Optional[str] = None) -> ImportResult:
        try:
            record = await self.gateway.import_path(path, encryption_key)
        except Exception as e:
            return self._failure(ImportResult, f"import {path}", e)
        return ImportResult(success=True, backup_id=record.metadata.id)

    # ----- schedule -----

    async def schedule_automatic_backups(self, config: Union[ScheduleConfig, dict]) -> bool:
        """Persist and apply a schedule; False when it is invalid or cannot be saved."""
        try:
            await self.scheduler.apply(config)
        except BackupError as e:
            logger.error(f"Failed to configure automatic backups: {e}")
            return False
        except Exception:
            logger.exception("Unexpected error while configuring automatic backups")
            return False
        return True

    async def get_schedule(self) -> ScheduleConfig:
        return await self.scheduler.get_config()

    async def cleanup_old_backups(self) -> List[str]:
        """Apply the retention policy of the persisted schedule."""
        return await self.scheduler.cleanup()

    # Private helper methods

    async def _build_record(
        self,
        name: str,
        description: Optional[str],
        options: BackupOptions,
        is_automatic: bool,
    ) -> BackupRecord:
        collected = await self.collector.collect(options)

        size = payload_size(collected.data, collected.settings)
        limit = self.config.backup.max_backup_size
        if size > limit:
            raise BackupValidationError(
                f"Backup is too large: {format_file_size(size)} (limit {format_file_size(limit)})"
            )

        now = self.clock.now()
        metadata = BackupMetadata(
            id=generate_backup_id(now),
            name=name,
            description=description,
            created_at=now,
            size=size,
            version=self.config.backup.schema_version,
            data_types=self.collector.data_types(options),
            is_automatic=is_automatic,
            checksum=compute_checksum(collected.data),
        )
        return BackupRecord(metadata=metadata, data=collected.data, settings=collected.settings)

    async def _require(self, backup_id: str) -> BackupRecord:
        record = await self.store.load(backup_id)
        if record is None:
            raise BackupNotFoundError(backup_id)
        return record

    async def _pre_restore_snapshot(self) -> None:
        date = self.clock.now().date().isoformat()
        result = await self.create_backup(f"Pre-restore backup - {date}", "Automatic backup taken before a restore")
        if not result.success:
            logger.warning(f"Pre-restore backup failed, continuing with restore: {result.error}")

    async def _create_automatic_backup(self) -> CreateResult:
        date = self.clock.now().date().isoformat()
        return await self.create_backup(
            f"Automatic backup - {date}",
            "Scheduled automatic backup",
            is_automatic=True,
        )

    def _build_channels(self, share_surface: Optional[ShareSurface], opener: Optional[Opener]) -> Dict[str, ExportChannel]:
        backup_config = self.config.backup
        file_channel = FileChannel(backup_config.export_dir)
        channels: Dict[str, ExportChannel] = {file_channel.name: file_channel}
        for name in SHARE_DESTINATIONS:
            channels[name] = ShareChannel(
                name,
                file_channel,
                share_surface=share_surface,
                opener=opener,
                app_title=backup_config.app_title,
                clock=self.clock,
            )
        return channels

    @staticmethod
    def _failure(result_cls: Type[R], action: str, error: Exception) -> R:
        if isinstance(error, BackupError):
            logger.error(f"Failed to {action}: {error}")
            return result_cls(success=False, error=str(error), error_code=error.code)
        logger.exception(f"Unexpected error while trying to {action}")
        return result_cls(success=False, error=str(error) or type(error).__name__, error_code="internal")
