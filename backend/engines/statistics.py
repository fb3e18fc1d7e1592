"""Study Statistics

Aggregates over the review log and the review schedule. Calendar days are
taken in the learner's timezone when one is given, else in the timezone of
`now` itself. Learner timezones are pytz zones, localized at midnight so
the offset matches the day even across DST changes.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable

from engines.records import At, ItemRecord
from engines.review import ReviewLogEntry


def local_midnight(day: date, tz: tzinfo) -> datetime:
    naive = datetime.combine(day, time.min)
    localize = getattr(tz, "localize", None)
    if localize is not None:
        return localize(naive)
    return naive.replace(tzinfo=tz)


def start_of_day(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight opening the calendar day of `now` as seen in `tz`."""
    zone = tz if tz is not None else now.tzinfo
    return local_midnight(now.astimezone(zone).date(), zone)


@dataclass(frozen=True, slots=True)
class StudyStatistics:
    total_reviews: int = 0
    correct_count: int = 0
    average_quality: float = 0.0
    total_time: float = 0.0

    @property
    def accuracy(self) -> float:
        if self.total_reviews == 0:
            return 0.0
        return self.correct_count / self.total_reviews

    @property
    def average_time_per_item(self) -> float:
        if self.total_reviews == 0:
            return 0.0
        return self.total_time / self.total_reviews

    @classmethod
    def from_entries(cls, entries: Iterable[ReviewLogEntry]) -> "StudyStatistics":
        entries = list(entries)
        if not entries:
            return cls()
        return cls(
            total_reviews=len(entries),
            correct_count=sum(1 for e in entries if e.correct),
            average_quality=sum(e.quality for e in entries) / len(entries),
            total_time=sum(e.time_spent for e in entries),
        )


@dataclass(frozen=True, slots=True)
class DailyProgress:
    """Today's work against the daily goals."""
    new_items_introduced: int
    new_items_goal: int
    reviews_done: int
    reviews_goal: int
    statistics: StudyStatistics
    due_now: int = 0

    @property
    def new_items_remaining(self) -> int:
        return max(0, self.new_items_goal - self.new_items_introduced)

    @property
    def goals_met(self) -> bool:
        return self.new_items_remaining == 0 and self.reviews_done >= self.reviews_goal

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[ReviewLogEntry],
        new_items_goal: int,
        reviews_goal: int,
        due_now: int = 0,
    ) -> "DailyProgress":
        entries = list(entries)
        introduced = {e.item_id for e in entries if e.first_review}
        # Answers on previously reviewed items; repeats of one item count once each
        reviews = sum(1 for e in entries if not e.first_review)
        return cls(
            new_items_introduced=len(introduced),
            new_items_goal=new_items_goal,
            reviews_done=reviews,
            reviews_goal=reviews_goal,
            statistics=StudyStatistics.from_entries(entries),
            due_now=due_now,
        )


@dataclass(frozen=True, slots=True)
class DayActivity:
    """Answers logged on one past calendar day."""
    day: date
    reviews: int = 0
    correct_count: int = 0
    new_items: int = 0
    total_time: float = 0.0

    @property
    def accuracy(self) -> float:
        if self.reviews == 0:
            return 0.0
        return self.correct_count / self.reviews


@dataclass(frozen=True, slots=True)
class DayForecast:
    day: date
    due_count: int


def review_history(
    entries: Iterable[ReviewLogEntry],
    now: datetime,
    days: int = 30,
    tz: tzinfo | None = None,
) -> list[DayActivity]:
    """Per-day activity for the `days` calendar days ending today, oldest first.

    Days without answers are included with zero counts; entries outside the
    window are ignored.
    """
    if days <= 0:
        return []
    zone = tz if tz is not None else now.tzinfo
    today = now.astimezone(zone).date()
    first = today - timedelta(days=days - 1)

    by_day: dict[date, list[ReviewLogEntry]] = defaultdict(list)
    for entry in entries:
        day = entry.reviewed_at.astimezone(zone).date()
        if first <= day <= today:
            by_day[day].append(entry)

    history = []
    for offset in range(days):
        day = first + timedelta(days=offset)
        logged = by_day.get(day, [])
        history.append(DayActivity(
            day=day,
            reviews=len(logged),
            correct_count=sum(1 for e in logged if e.correct),
            new_items=len({e.item_id for e in logged if e.first_review}),
            total_time=sum(e.time_spent for e in logged),
        ))
    return history


def forecast_reviews(
    records: Iterable[ItemRecord],
    now: datetime,
    days: int = 7,
    tz: tzinfo | None = None,
) -> list[DayForecast]:
    """Count scheduled reviews on each of the next `days` calendar days.

    Overdue items are counted on the first day.
    """
    if days <= 0:
        return []
    zone = tz if tz is not None else now.tzinfo
    today = now.astimezone(zone).date()
    counts = [0] * days
    horizon = local_midnight(today + timedelta(days=days), zone)
    for record in records:
        match record.next_due_at:
            case At(timestamp) if timestamp < horizon:
                offset = (timestamp.astimezone(zone).date() - today).days
                counts[max(0, offset)] += 1
            case _:
                continue
    return [DayForecast(day=today + timedelta(days=i), due_count=c) for i, c in enumerate(counts)]
