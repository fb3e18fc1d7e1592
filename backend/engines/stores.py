"""Item and Snapshot Store Interfaces

The scheduler only talks to these ports. Every method is async and returns
a Result; adapters never raise for I/O failures. In-memory adapters back
tests and embedded use; SQL adapters live in engines.sql_stores.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Mapping

from core.errors import AppError, Ok, Result, concurrent_mutation, not_found
from core.logging import db_logger
from engines.records import At, ItemContent, ItemRecord, Status, Unset
from engines.review import ReviewLogEntry

log = db_logger()


def due_order(record: ItemRecord) -> tuple:
    return (record.next_due_at.timestamp, record.difficulty, record.item_id)


def new_order(record: ItemRecord) -> tuple:
    return (record.difficulty, record.item_id)


def is_fresh(record: ItemRecord) -> bool:
    """Never scheduled and never reviewed."""
    return record.status is Status.NEW and isinstance(record.next_due_at, Unset)


def flag_concurrent_mutation(stored: ItemRecord, expected: ItemRecord | None, origin: str) -> None:
    """Log when the stored record moved since `expected` was read.

    The write still goes ahead; last write wins.
    """
    if expected is None or stored == expected:
        return
    error = concurrent_mutation(stored.item_id, origin=origin).error
    log.warning(
        "concurrent_mutation",
        item_id=stored.item_id,
        error_code=error.code.name,
        correlation_id=error.context.correlation_id,
    )


class ItemStore(ABC):
    """Persistent item records and review history."""

    @abstractmethod
    async def fetch_due(self, limit: int, now: datetime) -> Result[list[ItemRecord], AppError]:
        """Scheduled records due at `now`, by due date then difficulty."""

    @abstractmethod
    async def count_due(self, now: datetime) -> Result[int, AppError]:
        """How many scheduled records are due at `now`."""

    @abstractmethod
    async def fetch_new(self, limit: int) -> Result[list[ItemRecord], AppError]:
        """Never-scheduled NEW records, easiest first."""

    @abstractmethod
    async def fetch_by_id(self, item_id: int) -> Result[ItemRecord | None, AppError]: ...

    @abstractmethod
    async def update(
        self, record: ItemRecord, expected: ItemRecord | None = None
    ) -> Result[ItemRecord, AppError]:
        """Persist a record. A record missing from the store is an error."""

    @abstractmethod
    async def reset_all(self) -> Result[int, AppError]:
        """Reset every record to creation defaults; returns the count."""

    @abstractmethod
    async def add_items(
        self,
        records: Iterable[ItemRecord],
        contents: Mapping[int, ItemContent] | None = None,
    ) -> Result[int, AppError]:
        """Insert records whose ids are unknown; returns how many were added.

        Known ids keep their learning state; their content is refreshed.
        """

    @abstractmethod
    async def fetch_content(self, item_id: int) -> Result[ItemContent | None, AppError]: ...

    @abstractmethod
    async def log_review(self, entry: ReviewLogEntry) -> Result[None, AppError]: ...

    @abstractmethod
    async def reviews_since(self, since: datetime) -> Result[list[ReviewLogEntry], AppError]: ...

    @abstractmethod
    async def reviews_for(self, item_id: int) -> Result[list[ReviewLogEntry], AppError]: ...

    @abstractmethod
    async def fetch_scheduled(
        self, start: datetime, end: datetime
    ) -> Result[list[ItemRecord], AppError]:
        """Records whose due date falls in [start, end)."""


class SnapshotStore(ABC):
    """Single-slot storage for the recovery snapshot."""

    @abstractmethod
    async def save(self, blob: bytes) -> Result[None, AppError]: ...

    @abstractmethod
    async def load(self) -> Result[bytes | None, AppError]: ...

    @abstractmethod
    async def clear(self) -> Result[None, AppError]: ...


class InMemoryItemStore(ItemStore):
    __slots__ = ("_records", "_contents", "_reviews")

    def __init__(self, records: Iterable[ItemRecord] = ()):
        self._records: dict[int, ItemRecord] = {r.item_id: r for r in records}
        self._contents: dict[int, ItemContent] = {}
        self._reviews: list[ReviewLogEntry] = []

    async def fetch_due(self, limit: int, now: datetime) -> Result[list[ItemRecord], AppError]:
        due = [
            r for r in self._records.values()
            if isinstance(r.next_due_at, At) and r.next_due_at.timestamp <= now
        ]
        return Ok(sorted(due, key=due_order)[:max(0, limit)])

    async def count_due(self, now: datetime) -> Result[int, AppError]:
        return Ok(sum(
            1 for r in self._records.values()
            if isinstance(r.next_due_at, At) and r.next_due_at.timestamp <= now
        ))

    async def fetch_new(self, limit: int) -> Result[list[ItemRecord], AppError]:
        fresh = [r for r in self._records.values() if is_fresh(r)]
        return Ok(sorted(fresh, key=new_order)[:max(0, limit)])

    async def fetch_by_id(self, item_id: int) -> Result[ItemRecord | None, AppError]:
        return Ok(self._records.get(item_id))

    async def update(
        self, record: ItemRecord, expected: ItemRecord | None = None
    ) -> Result[ItemRecord, AppError]:
        stored = self._records.get(record.item_id)
        if stored is None:
            return not_found("Item", record.item_id, origin="memory_item_store")
        flag_concurrent_mutation(stored, expected, origin="memory_item_store")
        self._records[record.item_id] = record
        return Ok(record)

    async def reset_all(self) -> Result[int, AppError]:
        self._records = {i: r.reset() for i, r in self._records.items()}
        return Ok(len(self._records))

    async def add_items(
        self,
        records: Iterable[ItemRecord],
        contents: Mapping[int, ItemContent] | None = None,
    ) -> Result[int, AppError]:
        added = 0
        for record in records:
            if record.item_id not in self._records:
                self._records[record.item_id] = record
                added += 1
        for item_id, content in (contents or {}).items():
            if item_id in self._records:
                self._contents[item_id] = content
        return Ok(added)

    async def fetch_content(self, item_id: int) -> Result[ItemContent | None, AppError]:
        return Ok(self._contents.get(item_id))

    async def log_review(self, entry: ReviewLogEntry) -> Result[None, AppError]:
        self._reviews.append(entry)
        return Ok(None)

    async def reviews_since(self, since: datetime) -> Result[list[ReviewLogEntry], AppError]:
        return Ok([e for e in self._reviews if e.reviewed_at >= since])

    async def reviews_for(self, item_id: int) -> Result[list[ReviewLogEntry], AppError]:
        return Ok([e for e in self._reviews if e.item_id == item_id])

    async def fetch_scheduled(
        self, start: datetime, end: datetime
    ) -> Result[list[ItemRecord], AppError]:
        scheduled = [
            r for r in self._records.values()
            if isinstance(r.next_due_at, At) and start <= r.next_due_at.timestamp < end
        ]
        return Ok(sorted(scheduled, key=due_order))


class InMemorySnapshotStore(SnapshotStore):
    __slots__ = ("_blob",)

    def __init__(self, blob: bytes | None = None):
        self._blob = blob

    async def save(self, blob: bytes) -> Result[None, AppError]:
        self._blob = blob
        return Ok(None)

    async def load(self) -> Result[bytes | None, AppError]:
        return Ok(self._blob)

    async def clear(self) -> Result[None, AppError]:
        self._blob = None
        return Ok(None)
