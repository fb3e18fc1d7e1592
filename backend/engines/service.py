"""Scheduler Service

Explicitly constructed container for the stores, record cache and session
machine. The app builds one at startup and keeps it on `app.state`.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import SchedulerSettings, Settings
from core.database import create_engine, create_session_factory, create_tables
from core.errors import AppError, Err, Ok, Result, not_found
from core.logging import engine_logger
from engines.cache import RecordCache
from engines.importer import ImportSummary, VocabularyEntry, import_vocabulary
from engines.records import ItemContent, ItemRecord
from engines.review import ReviewLogEntry
from engines.session import SessionObserver, StudySessionMachine, utc_now
from engines.sql_stores import SqlItemStore, SqlSnapshotStore
from engines.statistics import (
    DailyProgress,
    DayActivity,
    DayForecast,
    forecast_reviews,
    local_midnight,
    review_history,
    start_of_day,
)
from engines.stores import (
    InMemoryItemStore,
    InMemorySnapshotStore,
    ItemStore,
    SnapshotStore,
)

log = engine_logger()

# Lower bound for "everything scheduled so far", overdue included
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SchedulerService:
    __slots__ = ("settings", "items", "snapshots", "cache", "machine", "_clock", "_engine")

    def __init__(
        self,
        items: ItemStore,
        snapshots: SnapshotStore,
        settings: SchedulerSettings | None = None,
        observer: SessionObserver | None = None,
        clock: Callable[[], datetime] = utc_now,
        engine: AsyncEngine | None = None,
    ):
        self.settings = settings or SchedulerSettings()
        self.items = items
        self.snapshots = snapshots
        self.cache = RecordCache()
        self._clock = clock
        self._engine = engine
        self.machine = StudySessionMachine(
            items, snapshots, self.cache, self.settings, observer=observer, clock=clock,
        )

    @classmethod
    def in_memory(
        cls,
        records: list[ItemRecord] | None = None,
        settings: SchedulerSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> SchedulerService:
        return cls(InMemoryItemStore(records or []), InMemorySnapshotStore(), settings, clock=clock)

    @classmethod
    async def from_settings(cls, settings: Settings) -> SchedulerService:
        engine = create_engine(settings.DATABASE_URL, echo=settings.LOG_SQL)
        await create_tables(engine)
        factory = create_session_factory(engine)
        return cls(
            SqlItemStore(factory),
            SqlSnapshotStore(factory),
            settings.scheduler_settings(),
            engine=engine,
        )

    async def close(self) -> None:
        """Save the active session, then release the database engine."""
        match await self.machine.suspend("shutdown"):
            case Err(error):
                log.warning("shutdown_snapshot_failed", error_code=error.code.name)
            case Ok(_):
                pass
        if self._engine is not None:
            await self._engine.dispose()

    def now(self) -> datetime:
        return self._clock()

    async def daily_progress(self) -> Result[DailyProgress, AppError]:
        now = self._clock()
        match await self.items.reviews_since(start_of_day(now, self.settings.day_timezone)):
            case Err(error):
                return Err(error)
            case Ok(entries):
                pass
        match await self.items.count_due(now):
            case Err(error):
                return Err(error)
            case Ok(due_now):
                return Ok(DailyProgress.from_entries(
                    entries,
                    new_items_goal=self.settings.new_items_per_day_goal,
                    reviews_goal=self.settings.reviews_per_day_goal,
                    due_now=due_now,
                ))

    async def review_history(self, days: int = 30) -> Result[list[DayActivity], AppError]:
        """Answers per calendar day over the last `days` days, today included."""
        now = self._clock()
        days = max(1, days)
        tz = self.settings.day_timezone
        first_day = now.astimezone(tz).date() - timedelta(days=days - 1)
        since = local_midnight(first_day, tz)
        match await self.items.reviews_since(since):
            case Err(error):
                return Err(error)
            case Ok(entries):
                return Ok(review_history(entries, now, days, tz))

    async def forecast(self, days: int = 7) -> Result[list[DayForecast], AppError]:
        now = self._clock()
        tz = self.settings.day_timezone
        end = local_midnight(now.astimezone(tz).date() + timedelta(days=max(0, days)), tz)
        match await self.items.fetch_scheduled(_EPOCH, end):
            case Err(error):
                return Err(error)
            case Ok(records):
                return Ok(forecast_reviews(records, now, days, tz))

    async def import_entries(self, entries: list[VocabularyEntry]) -> Result[ImportSummary, AppError]:
        return await import_vocabulary(self.items, entries)

    async def item_detail(self, item_id: int) -> Result[tuple[ItemRecord, ItemContent | None], AppError]:
        match await self.items.fetch_by_id(item_id):
            case Err(error):
                return Err(error)
            case Ok(None):
                return not_found("Item", item_id, origin="scheduler_service")
            case Ok(record):
                pass
        match await self.items.fetch_content(item_id):
            case Err(error):
                return Err(error)
            case Ok(content):
                return Ok((record, content))

    async def history(self, item_id: int) -> Result[list[ReviewLogEntry], AppError]:
        match await self.items.fetch_by_id(item_id):
            case Err(error):
                return Err(error)
            case Ok(None):
                return not_found("Item", item_id, origin="scheduler_service")
        return await self.items.reviews_for(item_id)

    async def reset_all(self) -> Result[int, AppError]:
        """Reset every item; the session in progress is finished first."""
        match await self.machine.finish():
            case Err(error):
                return Err(error)
        match await self.items.reset_all():
            case Err(error):
                return Err(error)
            case Ok(count):
                self.cache.clear()
                log.info("progress_reset", items=count)
                return Ok(count)
