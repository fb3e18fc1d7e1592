from datetime import datetime, timedelta, timezone

import pytest

from core.config import SchedulerSettings
from engines.records import At, ItemRecord, Status


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now):
    return FrozenClock(now)


@pytest.fixture
def settings():
    return SchedulerSettings(
        new_items_per_day_goal=20,
        reviews_per_day_goal=50,
        store_retry_attempts=3,
        store_retry_base_delay=0.0,
        store_timeout=5.0,
    )


@pytest.fixture
def make_due():
    """Factory for records already in review, due `hours_ago` before `now`."""
    def _make(item_id: int, now: datetime, hours_ago: float = 1, difficulty: int = 1, **kwargs) -> ItemRecord:
        fields = dict(
            difficulty=difficulty,
            ease_factor=2.5,
            interval_days=3,
            review_count=2,
            last_reviewed_at=At(now - timedelta(days=3)),
            next_due_at=At(now - timedelta(hours=hours_ago)),
            status=Status.LEARNING,
            correct_count=2,
        )
        fields.update(kwargs)
        return ItemRecord(item_id=item_id, **fields)
    return _make
