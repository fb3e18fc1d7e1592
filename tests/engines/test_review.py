from datetime import timedelta

import pytest

from engines.intervals import ReviewQuality
from engines.records import UNSET, At, ItemRecord, Status, StudyMode
from engines.review import apply_review
from engines.status import classify


class TestClassify:
    def test_unreviewed_is_new(self):
        assert classify(0, None) is Status.NEW
        assert classify(0, 5) is Status.NEW

    def test_first_answer_only_reaches_learning(self):
        assert classify(1, None) is Status.LEARNING

    @pytest.mark.parametrize("quality", [4, 5])
    def test_good_answer_on_reviewed_item_masters(self, quality):
        assert classify(2, quality) is Status.MASTERED

    @pytest.mark.parametrize("quality", [0, 1, 2, 3])
    def test_weak_answer_stays_learning(self, quality):
        assert classify(3, quality) is Status.LEARNING


class TestApplyReview:
    def test_new_item_perfect_answer(self, now):
        outcome = apply_review(ItemRecord.new(1), ReviewQuality.PERFECT, now)
        record = outcome.record

        assert outcome.result.new_interval == 14
        assert record.ease_factor > 2.5
        assert outcome.result.repeat_same_day is False
        assert record.status is Status.LEARNING
        assert record.review_count == 1
        assert record.last_reviewed_at == At(now)
        assert record.next_due_at == At(now + timedelta(days=14))
        assert record.correct_count == 1
        assert record.streak == 1

    def test_blackout_on_reviewed_item(self, now):
        record = ItemRecord(item_id=2, ease_factor=2.5, interval_days=7, review_count=2,
                            status=Status.LEARNING, correct_count=2, streak=4)
        outcome = apply_review(record, ReviewQuality.BLACKOUT, now)

        assert outcome.result.new_interval == 0
        assert outcome.result.repeat_same_day is True
        assert outcome.record.ease_factor < 2.5
        assert outcome.record.streak == 0
        assert outcome.record.review_count == 2
        assert outcome.record.incorrect_count == 1
        assert outcome.record.next_due_at == At(now + timedelta(hours=1))

    def test_difficult_answer_keeps_streak(self, now):
        record = ItemRecord(item_id=3, interval_days=7, review_count=2, status=Status.LEARNING, streak=3)
        outcome = apply_review(record, ReviewQuality.DIFFICULT, now)

        assert outcome.record.streak == 3
        assert outcome.record.incorrect_count == 1
        assert outcome.record.review_count == 3

    def test_good_answer_on_second_review_masters(self, now):
        record = ItemRecord(item_id=4, ease_factor=2.5, interval_days=7, review_count=1,
                            status=Status.LEARNING)
        outcome = apply_review(record, ReviewQuality.GOOD, now)

        assert outcome.record.ease_factor == pytest.approx(2.5)
        assert outcome.record.interval_days == 17
        assert outcome.record.status is Status.MASTERED

    def test_original_record_untouched(self, now):
        record = ItemRecord.new(5)
        apply_review(record, ReviewQuality.GOOD, now)
        assert record.review_count == 0
        assert record.next_due_at == UNSET

    def test_log_entry_describes_transition(self, now):
        record = ItemRecord(item_id=6, ease_factor=2.2, interval_days=3, review_count=2,
                            status=Status.LEARNING)
        outcome = apply_review(record, 3, now, time_spent=4.5, mode=StudyMode.QUICK)
        entry = outcome.log_entry

        assert entry.item_id == 6
        assert entry.reviewed_at == now
        assert entry.quality == 3
        assert entry.correct is True
        assert entry.previous_ease == 2.2
        assert entry.new_ease == outcome.record.ease_factor
        assert entry.previous_interval == 3
        assert entry.new_interval == outcome.record.interval_days
        assert entry.first_review is False
        assert entry.time_spent == 4.5
        assert entry.mode is StudyMode.QUICK

    def test_first_review_flag(self, now):
        entry = apply_review(ItemRecord.new(7), ReviewQuality.BLACKOUT, now).log_entry
        assert entry.first_review is True
        assert entry.repeat_same_day is True


class TestItemRecord:
    def test_rejects_ease_below_floor(self):
        with pytest.raises(ValueError):
            ItemRecord(item_id=1, ease_factor=1.2)

    def test_rejects_interval_above_cap(self):
        with pytest.raises(ValueError):
            ItemRecord(item_id=1, interval_days=366)

    def test_rejects_negative_counts(self):
        with pytest.raises(ValueError):
            ItemRecord(item_id=1, streak=-1)

    def test_unscheduled_item_is_due(self, now):
        assert ItemRecord.new(1).is_due(now)

    def test_due_date_comparison(self, now):
        record = ItemRecord(item_id=1, next_due_at=At(now + timedelta(minutes=1)))
        assert not record.is_due(now)
        assert record.is_due(now + timedelta(minutes=1))

    def test_reset_keeps_identity_and_difficulty(self, now):
        record = ItemRecord(item_id=9, difficulty=4, ease_factor=1.9, interval_days=30,
                            review_count=6, next_due_at=At(now), status=Status.MASTERED,
                            correct_count=5, incorrect_count=1, streak=3)
        assert record.reset() == ItemRecord(item_id=9, difficulty=4)

    def test_accuracy(self):
        assert ItemRecord.new(1).accuracy == 0.0
        assert ItemRecord(item_id=1, correct_count=3, incorrect_count=1).accuracy == 0.75
