"""Per-answer record update

Combines the interval calculator and the status classifier into the single
transition an answer applies to an ItemRecord, and describes it as a
review log entry.
"""
from dataclasses import dataclass
from datetime import datetime

from core.logging import srs_logger
from engines.intervals import IntervalResult, ReviewQuality, compute_next, next_due_at
from engines.records import At, ItemRecord, StudyMode
from engines.status import classify

log = srs_logger()


@dataclass(frozen=True, slots=True)
class ReviewLogEntry:
    """One answered review, as appended to the review history."""
    item_id: int
    reviewed_at: datetime
    quality: int
    correct: bool
    previous_ease: float
    new_ease: float
    previous_interval: int
    new_interval: int
    repeat_same_day: bool
    first_review: bool
    time_spent: float = 0.0
    mode: StudyMode = StudyMode.NORMAL


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    record: ItemRecord
    result: IntervalResult
    log_entry: ReviewLogEntry


def apply_review(
    record: ItemRecord,
    quality: ReviewQuality | int,
    now: datetime,
    time_spent: float = 0.0,
    mode: StudyMode = StudyMode.NORMAL,
) -> ReviewOutcome:
    q = ReviewQuality(quality)
    result = compute_next(q, record.ease_factor, record.interval_days, record.review_count)

    correct_count = record.correct_count
    incorrect_count = record.incorrect_count
    streak = record.streak
    if q.is_correct:
        correct_count += 1
        streak += 1
    else:
        incorrect_count += 1
        if q.needs_repeat:
            streak = 0

    review_count = record.review_count
    if not result.repeat_same_day:
        review_count += 1

    # The answer that introduces an item never counts toward mastery
    first_review = record.review_count == 0
    latest = None if first_review else int(q)

    updated = record.evolve(
        ease_factor=result.new_ease,
        interval_days=result.new_interval,
        review_count=review_count,
        last_reviewed_at=At(now),
        next_due_at=At(next_due_at(result, now)),
        status=classify(review_count, latest),
        correct_count=correct_count,
        incorrect_count=incorrect_count,
        streak=streak,
    )

    entry = ReviewLogEntry(
        item_id=record.item_id,
        reviewed_at=now,
        quality=int(q),
        correct=q.is_correct,
        previous_ease=record.ease_factor,
        new_ease=result.new_ease,
        previous_interval=record.interval_days,
        new_interval=result.new_interval,
        repeat_same_day=result.repeat_same_day,
        first_review=first_review,
        time_spent=time_spent,
        mode=mode,
    )

    log.debug(
        "review_applied",
        item_id=record.item_id,
        quality=int(q),
        status=updated.status.value,
        interval=updated.interval_days,
    )
    return ReviewOutcome(record=updated, result=result, log_entry=entry)
