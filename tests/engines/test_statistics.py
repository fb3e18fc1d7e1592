from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from engines.records import At, ItemRecord, StudyMode
from engines.review import ReviewLogEntry
from engines.statistics import (
    DailyProgress,
    StudyStatistics,
    forecast_reviews,
    local_midnight,
    review_history,
    start_of_day,
)


def entry(item_id, quality, now, first_review=False, time_spent=2.0):
    return ReviewLogEntry(
        item_id=item_id,
        reviewed_at=now,
        quality=quality,
        correct=quality >= 3,
        previous_ease=2.5,
        new_ease=2.5,
        previous_interval=0,
        new_interval=1,
        repeat_same_day=quality < 2,
        first_review=first_review,
        time_spent=time_spent,
        mode=StudyMode.NORMAL,
    )


class TestStudyStatistics:
    def test_empty(self):
        stats = StudyStatistics.from_entries([])
        assert stats.total_reviews == 0
        assert stats.accuracy == 0.0
        assert stats.average_time_per_item == 0.0

    def test_aggregates(self, now):
        stats = StudyStatistics.from_entries([
            entry(1, 5, now, time_spent=1.0),
            entry(2, 4, now, time_spent=3.0),
            entry(3, 1, now, time_spent=5.0),
            entry(3, 3, now, time_spent=3.0),
        ])
        assert stats.total_reviews == 4
        assert stats.correct_count == 3
        assert stats.accuracy == 0.75
        assert stats.average_quality == pytest.approx(13 / 4)
        assert stats.total_time == 12.0
        assert stats.average_time_per_item == 3.0


class TestDailyProgress:
    def test_counts_introductions_and_reviews(self, now):
        entries = [
            entry(1, 0, now, first_review=True),
            entry(1, 4, now, first_review=True),
            entry(2, 4, now, first_review=True),
            entry(7, 5, now),
            entry(8, 2, now),
        ]
        progress = DailyProgress.from_entries(entries, new_items_goal=3, reviews_goal=2)

        assert progress.new_items_introduced == 2
        assert progress.new_items_remaining == 1
        assert progress.reviews_done == 2
        assert progress.goals_met is False
        assert progress.statistics.total_reviews == 5

    def test_goals_met(self, now):
        entries = [entry(1, 4, now, first_review=True), entry(9, 4, now)]
        progress = DailyProgress.from_entries(entries, new_items_goal=1, reviews_goal=1)
        assert progress.goals_met is True

    def test_remaining_never_negative(self, now):
        entries = [entry(i, 4, now, first_review=True) for i in range(5)]
        progress = DailyProgress.from_entries(entries, new_items_goal=2, reviews_goal=0)
        assert progress.new_items_remaining == 0

    def test_due_count_carried(self, now):
        progress = DailyProgress.from_entries([], new_items_goal=1, reviews_goal=1, due_now=4)
        assert progress.due_now == 4
        assert DailyProgress.from_entries([], 1, 1).due_now == 0


class TestForecast:
    def test_buckets_by_day(self, now):
        records = [
            ItemRecord(item_id=1, next_due_at=At(now - timedelta(days=3))),
            ItemRecord(item_id=2, next_due_at=At(now + timedelta(hours=1))),
            ItemRecord(item_id=3, next_due_at=At(now + timedelta(days=1))),
            ItemRecord(item_id=4, next_due_at=At(now + timedelta(days=1, hours=2))),
            ItemRecord(item_id=5, next_due_at=At(now + timedelta(days=6))),
            ItemRecord(item_id=6, next_due_at=At(now + timedelta(days=30))),
            ItemRecord.new(7),
        ]

        forecast = forecast_reviews(records, now, days=7)

        assert [d.day for d in forecast] == [date(2026, 3, 10) + timedelta(days=i) for i in range(7)]
        assert [d.due_count for d in forecast] == [2, 2, 0, 0, 0, 0, 1]

    def test_no_days(self, now):
        assert forecast_reviews([ItemRecord.new(1)], now, days=0) == []

    def test_local_timezone_moves_day_boundary(self, now):
        # Due 01:00 UTC tomorrow, which is 20:00 today at UTC-5
        records = [ItemRecord(item_id=1, next_due_at=At(now + timedelta(hours=16)))]
        eastern = timezone(timedelta(hours=-5))

        assert [d.due_count for d in forecast_reviews(records, now, days=2)] == [0, 1]
        assert [d.due_count for d in forecast_reviews(records, now, days=2, tz=eastern)] == [1, 0]


class TestReviewHistory:
    def test_groups_answers_by_day(self, now):
        entries = [
            entry(1, 5, now - timedelta(days=3)),
            entry(2, 4, now - timedelta(days=1), first_review=True, time_spent=1.5),
            entry(3, 1, now - timedelta(hours=2), first_review=True),
            entry(3, 4, now - timedelta(hours=1), first_review=True),
            entry(4, 5, now),
        ]

        history = review_history(entries, now, days=3)

        assert [d.day for d in history] == [date(2026, 3, 8), date(2026, 3, 9), date(2026, 3, 10)]
        assert [d.reviews for d in history] == [0, 1, 3]
        assert [d.correct_count for d in history] == [0, 1, 2]
        assert [d.new_items for d in history] == [0, 1, 1]
        assert history[1].total_time == 1.5
        assert history[2].accuracy == pytest.approx(2 / 3)
        assert history[0].accuracy == 0.0

    def test_days_use_local_timezone(self, now):
        # 03:00 UTC today is 22:00 yesterday at UTC-5
        entries = [entry(1, 4, now - timedelta(hours=6))]
        eastern = timezone(timedelta(hours=-5))

        assert [d.reviews for d in review_history(entries, now, days=2)] == [0, 1]
        assert [d.reviews for d in review_history(entries, now, days=2, tz=eastern)] == [1, 0]

    def test_no_days(self, now):
        assert review_history([entry(1, 4, now)], now, days=0) == []


class TestDayBoundaries:
    def test_start_of_day_in_own_timezone(self, now):
        assert start_of_day(now) == datetime(2026, 3, 10, tzinfo=timezone.utc)

    def test_start_of_day_in_learner_timezone(self, now):
        new_york = pytz.timezone("America/New_York")
        assert start_of_day(now, new_york) == datetime(2026, 3, 10, 4, tzinfo=timezone.utc)

    def test_midnight_before_dst_change_keeps_standard_offset(self):
        # Clocks went forward at 02:00 on 2026-03-08; midnight was still EST
        new_york = pytz.timezone("America/New_York")
        afternoon = datetime(2026, 3, 8, 18, 0, tzinfo=timezone.utc)

        assert start_of_day(afternoon, new_york) == datetime(2026, 3, 8, 5, tzinfo=timezone.utc)
        assert local_midnight(date(2026, 3, 9), new_york) == datetime(2026, 3, 9, 4, tzinfo=timezone.utc)
