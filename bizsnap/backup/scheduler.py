"""Automatic backups on a daily/weekly/monthly schedule, plus retention cleanup."""

import asyncio
import calendar
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, List, Optional, Union

from pydantic import ValidationError

from ..base import BaseStoreClient, Clock
from .._utils import logger
from .exceptions import ScheduleConfigError
from .models import ScheduleConfig
from .store import BackupStore

Callback = Callable[[], Awaitable[Any]]


class CancelToken:
    """Handle to one armed timer."""

    def __init__(self, task: Optional[asyncio.Task] = None):
        self._task = task
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()


class Timer(ABC):
    @abstractmethod
    def schedule(self, delay: float, callback: Callback) -> CancelToken:
        """Run ``callback`` once after ``delay`` seconds."""
        ...


class AsyncioTimer(Timer):
    """One-shot timer backed by an asyncio task; needs a running event loop."""

    def schedule(self, delay: float, callback: Callback) -> CancelToken:
        async def _run():
            await asyncio.sleep(max(delay, 0.0))
            await callback()

        return CancelToken(asyncio.create_task(_run()))


def _add_month(moment: datetime) -> datetime:
    year, month = (moment.year + 1, 1) if moment.month == 12 else (moment.year, moment.month + 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _localize(moment: datetime, reference: datetime) -> datetime:
    """Re-derive the UTC offset of ``moment`` when ``reference`` is host-local time.

    ``datetime.astimezone()`` yields a fixed offset, which goes stale across a
    DST change. Zone-aware tzinfo such as zoneinfo already follows the wall clock.
    """
    if not isinstance(reference.tzinfo, timezone):
        return moment
    if reference.utcoffset() != reference.replace(tzinfo=None).astimezone().utcoffset():
        return moment
    return moment.replace(tzinfo=None).astimezone()


def compute_next_run(now: datetime, config: ScheduleConfig) -> datetime:
    """Next instant at ``config.time`` strictly after ``now``.

    Today's slot is used when it is still ahead; otherwise the slot moves one
    day, seven days or one calendar month ahead depending on the frequency.
    The slot keeps its wall-clock time across DST changes of the host zone.
    """
    hour, minute = config.hour_minute
    candidate = _localize(now.replace(hour=hour, minute=minute, second=0, microsecond=0), now)
    if candidate > now:
        return candidate
    if config.frequency == "daily":
        candidate = candidate + timedelta(days=1)
    elif config.frequency == "weekly":
        candidate = candidate + timedelta(days=7)
    else:
        candidate = _add_month(candidate)
    return _localize(candidate, now)


class ScheduleManager:
    """Arms a self-perpetuating chain of one-shot timers from the persisted config.

    Each firing creates an automatic backup, runs retention cleanup, then reads
    the persisted config again and re-arms if the schedule is still enabled.
    Armed timers do not survive a restart; call :meth:`resume` at startup.
    """

    def __init__(
        self,
        client: BaseStoreClient,
        store: BackupStore,
        clock: Clock,
        timer: Timer,
        create_backup: Callback,
        schedule_key: str = "backup_schedule",
    ):
        self.client = client
        self.store = store
        self.clock = clock
        self.timer = timer
        self.create_backup = create_backup
        self.schedule_key = schedule_key
        self.next_run_key = f"{schedule_key}_next_run"
        self._token: Optional[CancelToken] = None

    @property
    def armed(self) -> bool:
        return self._token is not None and not self._token.cancelled

    async def get_config(self) -> ScheduleConfig:
        raw = await self.client.get(self.schedule_key, None)
        if raw is None:
            return ScheduleConfig()
        try:
            return ScheduleConfig.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable schedule config: {e}")
            return ScheduleConfig()

    async def apply(self, config: Union[ScheduleConfig, dict]) -> Optional[datetime]:
        """Persist ``config`` and (re)arm or cancel the timer.

        Returns:
            The next run instant, or None when the schedule is disabled

        Raises:
            ScheduleConfigError: If ``config`` is malformed; the persisted
                config is left untouched
        """
        config = self._validate(config)
        await self.client.set(self.schedule_key, config.model_dump(by_alias=True))
        self.cancel()

        if not config.enabled:
            await self.client.delete(self.next_run_key)
            logger.info("Automatic backups disabled")
            return None
        return await self._arm(config)

    async def resume(self) -> Optional[datetime]:
        """Re-arm from the persisted config, e.g. after a restart."""
        config = await self.get_config()
        if not config.enabled or self.armed:
            return None
        return await self._arm(config)

    async def run_if_due(self) -> bool:
        """Entry point for an external periodic driver (cron-like)."""
        raw = await self.client.get(self.next_run_key, None)
        if raw is None:
            return False
        if self.clock.now() < datetime.fromisoformat(raw):
            return False
        self.cancel()
        await self._fire()
        return True

    async def run_now(self) -> None:
        """One automatic backup followed by retention cleanup."""
        result = await self.create_backup()
        if not getattr(result, "success", True):
            logger.warning(f"Scheduled backup failed: {getattr(result, 'error', None)}")
        await self.cleanup()

    async def cleanup(self) -> List[str]:
        """Delete the oldest backups beyond ``max_backups`` when auto cleanup is on."""
        config = await self.get_config()
        if not config.auto_cleanup:
            return []
        return await self.store.prune(config.max_backups)

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    async def _arm(self, config: ScheduleConfig) -> datetime:
        now = self.clock.now()
        next_run = compute_next_run(now, config)
        self._token = self.timer.schedule((next_run - now).total_seconds(), self._fire)
        await self.client.set(self.next_run_key, next_run.isoformat())
        logger.info(f"Next automatic backup at {next_run.isoformat()} ({config.frequency})")
        return next_run

    async def _fire(self) -> None:
        # The firing token is spent; disabling from now on must not cancel this run
        self._token = None
        try:
            await self.run_now()
        except Exception as e:
            logger.error(f"Scheduled backup run failed: {e}")

        try:
            config = await self.get_config()
            if config.enabled and self._token is None:
                await self._arm(config)
        except Exception as e:
            logger.error(f"Could not re-arm backup schedule: {e}")

    @staticmethod
    def _validate(config: Union[ScheduleConfig, dict]) -> ScheduleConfig:
        if isinstance(config, ScheduleConfig):
            return config
        try:
            return ScheduleConfig.model_validate(config)
        except ValidationError as e:
            raise ScheduleConfigError(f"Invalid schedule configuration: {e}") from e
