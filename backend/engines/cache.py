"""Record Cache

In-memory index of ItemRecords keyed by item id. Session code and
background imports may touch it from different threads, so every
operation runs under one lock. The item store stays authoritative.
"""
import threading
from datetime import datetime
from typing import Iterable

from engines.records import At, ItemRecord


class RecordCache:
    __slots__ = ("_records", "_lock")

    def __init__(self):
        self._records: dict[int, ItemRecord] = {}
        self._lock = threading.Lock()

    def get(self, item_id: int) -> ItemRecord | None:
        with self._lock:
            return self._records.get(item_id)

    def set(self, record: ItemRecord) -> None:
        with self._lock:
            self._records[record.item_id] = record

    def set_batch(self, records: Iterable[ItemRecord]) -> None:
        # Materialize first so a failing iterator leaves the cache untouched
        batch = list(records)
        with self._lock:
            for record in batch:
                self._records[record.item_id] = record

    def remove(self, item_id: int) -> None:
        with self._lock:
            self._records.pop(item_id, None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def all(self) -> list[ItemRecord]:
        with self._lock:
            return list(self._records.values())

    def due_records(self, now: datetime) -> list[ItemRecord]:
        """Scheduled records due at `now`, earliest first."""
        with self._lock:
            due = [
                r for r in self._records.values()
                if isinstance(r.next_due_at, At) and r.next_due_at.timestamp <= now
            ]
        return sorted(due, key=lambda r: (r.next_due_at.timestamp, r.difficulty, r.item_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
