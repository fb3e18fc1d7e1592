"""SQL Item and Snapshot Stores

Async SQLAlchemy adapters for the store ports. Each call opens its own
session; SQLAlchemy errors are mapped to store AppErrors at the boundary.
"""
from datetime import datetime
from typing import Iterable, Mapping

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import AppError, Ok, Result, map_db_errors, not_found
from core.logging import db_logger
from engines.records import (
    DEFAULT_EASE, ItemContent, ItemRecord, Status, StudyMode, moment, moment_value,
)
from engines.review import ReviewLogEntry
from engines.stores import ItemStore, SnapshotStore, flag_concurrent_mutation
from models.vocabulary import ReviewLog, StudySnapshot, VocabularyItem

log = db_logger()


def to_record(row: VocabularyItem) -> ItemRecord:
    return ItemRecord(
        item_id=row.id,
        difficulty=row.difficulty,
        ease_factor=row.ease_factor,
        interval_days=row.interval_days,
        review_count=row.review_count,
        last_reviewed_at=moment(row.last_reviewed_at),
        next_due_at=moment(row.next_due_at),
        status=Status(row.status),
        correct_count=row.correct_count,
        incorrect_count=row.incorrect_count,
        streak=row.streak,
    )


def _state_columns(record: ItemRecord) -> dict:
    return {
        "difficulty": record.difficulty,
        "ease_factor": record.ease_factor,
        "interval_days": record.interval_days,
        "review_count": record.review_count,
        "last_reviewed_at": moment_value(record.last_reviewed_at),
        "next_due_at": moment_value(record.next_due_at),
        "status": record.status.value,
        "correct_count": record.correct_count,
        "incorrect_count": record.incorrect_count,
        "streak": record.streak,
    }


def to_entry(row: ReviewLog) -> ReviewLogEntry:
    return ReviewLogEntry(
        item_id=row.item_id,
        reviewed_at=row.reviewed_at,
        quality=row.quality,
        correct=row.correct,
        previous_ease=row.previous_ease,
        new_ease=row.new_ease,
        previous_interval=row.previous_interval,
        new_interval=row.new_interval,
        repeat_same_day=row.repeat_same_day,
        first_review=row.first_review,
        time_spent=row.time_spent,
        mode=StudyMode(row.mode),
    )


class SqlItemStore(ItemStore):
    __slots__ = ("_session_factory",)

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @map_db_errors("sql_item_store")
    async def fetch_due(self, limit: int, now: datetime) -> Result[list[ItemRecord], AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VocabularyItem)
                .where(
                    VocabularyItem.next_due_at.is_not(None),
                    VocabularyItem.next_due_at <= now,
                )
                .order_by(
                    VocabularyItem.next_due_at,
                    VocabularyItem.difficulty,
                    VocabularyItem.id,
                )
                .limit(max(0, limit))
            )
            return Ok([to_record(row) for row in result.scalars().all()])

    @map_db_errors("sql_item_store")
    async def count_due(self, now: datetime) -> Result[int, AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(VocabularyItem.id)).where(
                    VocabularyItem.next_due_at.is_not(None),
                    VocabularyItem.next_due_at <= now,
                )
            )
            return Ok(result.scalar() or 0)

    @map_db_errors("sql_item_store")
    async def fetch_new(self, limit: int) -> Result[list[ItemRecord], AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VocabularyItem)
                .where(
                    VocabularyItem.status == Status.NEW.value,
                    VocabularyItem.next_due_at.is_(None),
                )
                .order_by(VocabularyItem.difficulty, VocabularyItem.id)
                .limit(max(0, limit))
            )
            return Ok([to_record(row) for row in result.scalars().all()])

    @map_db_errors("sql_item_store")
    async def fetch_by_id(self, item_id: int) -> Result[ItemRecord | None, AppError]:
        async with self._session_factory() as session:
            row = await session.get(VocabularyItem, item_id)
            return Ok(to_record(row) if row is not None else None)

    @map_db_errors("sql_item_store")
    async def update(
        self, record: ItemRecord, expected: ItemRecord | None = None
    ) -> Result[ItemRecord, AppError]:
        async with self._session_factory() as session:
            row = await session.get(VocabularyItem, record.item_id)
            if row is None:
                return not_found("Item", record.item_id, origin="sql_item_store")
            flag_concurrent_mutation(to_record(row), expected, origin="sql_item_store")
            for name, value in _state_columns(record).items():
                setattr(row, name, value)
            await session.commit()
            return Ok(record)

    @map_db_errors("sql_item_store")
    async def reset_all(self) -> Result[int, AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                update(VocabularyItem).values(
                    ease_factor=DEFAULT_EASE,
                    interval_days=0,
                    review_count=0,
                    last_reviewed_at=None,
                    next_due_at=None,
                    status=Status.NEW.value,
                    correct_count=0,
                    incorrect_count=0,
                    streak=0,
                )
            )
            await session.commit()
            log.info("items_reset", count=result.rowcount)
            return Ok(result.rowcount)

    @map_db_errors("sql_item_store")
    async def add_items(
        self,
        records: Iterable[ItemRecord],
        contents: Mapping[int, ItemContent] | None = None,
    ) -> Result[int, AppError]:
        contents = contents or {}
        added = 0
        async with self._session_factory() as session:
            for record in records:
                content = contents.get(record.item_id)
                row = await session.get(VocabularyItem, record.item_id)
                if row is None:
                    session.add(VocabularyItem(
                        id=record.item_id,
                        word=content.word if content else "",
                        translation=content.translation if content else "",
                        extra=dict(content.extra) if content else {},
                        **_state_columns(record),
                    ))
                    added += 1
                elif content is not None:
                    row.word = content.word
                    row.translation = content.translation
                    row.extra = dict(content.extra)
            await session.commit()
        return Ok(added)

    @map_db_errors("sql_item_store")
    async def fetch_content(self, item_id: int) -> Result[ItemContent | None, AppError]:
        async with self._session_factory() as session:
            row = await session.get(VocabularyItem, item_id)
            if row is None:
                return Ok(None)
            return Ok(ItemContent(word=row.word, translation=row.translation, extra=dict(row.extra or {})))

    @map_db_errors("sql_item_store")
    async def log_review(self, entry: ReviewLogEntry) -> Result[None, AppError]:
        async with self._session_factory() as session:
            session.add(ReviewLog(
                item_id=entry.item_id,
                reviewed_at=entry.reviewed_at,
                quality=entry.quality,
                correct=entry.correct,
                previous_ease=entry.previous_ease,
                new_ease=entry.new_ease,
                previous_interval=entry.previous_interval,
                new_interval=entry.new_interval,
                repeat_same_day=entry.repeat_same_day,
                first_review=entry.first_review,
                time_spent=entry.time_spent,
                mode=entry.mode.value,
            ))
            await session.commit()
        return Ok(None)

    @map_db_errors("sql_item_store")
    async def reviews_since(self, since: datetime) -> Result[list[ReviewLogEntry], AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ReviewLog)
                .where(ReviewLog.reviewed_at >= since)
                .order_by(ReviewLog.reviewed_at, ReviewLog.id)
            )
            return Ok([to_entry(row) for row in result.scalars().all()])

    @map_db_errors("sql_item_store")
    async def reviews_for(self, item_id: int) -> Result[list[ReviewLogEntry], AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ReviewLog)
                .where(ReviewLog.item_id == item_id)
                .order_by(ReviewLog.reviewed_at, ReviewLog.id)
            )
            return Ok([to_entry(row) for row in result.scalars().all()])

    @map_db_errors("sql_item_store")
    async def fetch_scheduled(
        self, start: datetime, end: datetime
    ) -> Result[list[ItemRecord], AppError]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(VocabularyItem)
                .where(
                    VocabularyItem.next_due_at >= start,
                    VocabularyItem.next_due_at < end,
                )
                .order_by(
                    VocabularyItem.next_due_at,
                    VocabularyItem.difficulty,
                    VocabularyItem.id,
                )
            )
            return Ok([to_record(row) for row in result.scalars().all()])


class SqlSnapshotStore(SnapshotStore):
    __slots__ = ("_session_factory", "_slot")

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], slot: str = "default"):
        self._session_factory = session_factory
        self._slot = slot

    @map_db_errors("sql_snapshot_store")
    async def save(self, blob: bytes) -> Result[None, AppError]:
        async with self._session_factory() as session:
            row = await session.get(StudySnapshot, self._slot)
            if row is None:
                session.add(StudySnapshot(slot=self._slot, payload=blob))
            else:
                row.payload = blob
            await session.commit()
        return Ok(None)

    @map_db_errors("sql_snapshot_store")
    async def load(self) -> Result[bytes | None, AppError]:
        async with self._session_factory() as session:
            row = await session.get(StudySnapshot, self._slot)
            return Ok(bytes(row.payload) if row is not None else None)

    @map_db_errors("sql_snapshot_store")
    async def clear(self) -> Result[None, AppError]:
        async with self._session_factory() as session:
            await session.execute(delete(StudySnapshot).where(StudySnapshot.slot == self._slot))
            await session.commit()
        return Ok(None)
