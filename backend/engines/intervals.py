"""Interval Calculator (SM-2 variant)

Turns a recall-quality score into a new ease factor and review interval.
Pure and synchronous; the caller validates the score first.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import IntEnum

from core.errors import AppError, Ok, Result, out_of_range
from core.logging import srs_logger
from engines.records import MAX_INTERVAL_DAYS, MIN_EASE

log = srs_logger()

# First-review interval in days, indexed by quality
BASE_INTERVALS = (0, 0, 1, 3, 7, 14)
SAME_DAY_DELAY = timedelta(hours=1)


class ReviewQuality(IntEnum):
    BLACKOUT = 0
    INCORRECT = 1
    DIFFICULT = 2
    HESITATION = 3
    GOOD = 4
    PERFECT = 5

    @property
    def is_correct(self) -> bool:
        return self >= ReviewQuality.HESITATION

    @property
    def needs_repeat(self) -> bool:
        return self < ReviewQuality.DIFFICULT


@dataclass(frozen=True, slots=True)
class IntervalResult:
    new_interval: int
    new_ease: float
    repeat_same_day: bool


def compute_ease(quality: int, ease_factor: float) -> float:
    miss = 5 - quality
    return max(MIN_EASE, ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))


def compute_next(
    quality: int,
    ease_factor: float,
    interval_days: int,
    review_count: int,
) -> IntervalResult:
    """Compute the next interval and ease for one answer.

    Args:
        quality: Recall quality 0-5
        ease_factor: Current ease factor (>= 1.3)
        interval_days: Current interval in days
        review_count: Completed (non same-day) reviews so far

    Returns:
        IntervalResult; quality below 2 repeats the item the same day
    """
    q = int(quality)
    new_ease = compute_ease(q, ease_factor)

    if q < 2:
        new_interval = 0
    elif q == 2:
        new_interval = 1
    elif review_count == 0:
        new_interval = BASE_INTERVALS[q]
    elif review_count == 1:
        new_interval = max(BASE_INTERVALS[q], math.floor(interval_days * new_ease))
    else:
        new_interval = math.floor(interval_days * new_ease)

    result = IntervalResult(
        new_interval=min(new_interval, MAX_INTERVAL_DAYS),
        new_ease=new_ease,
        repeat_same_day=q < 2,
    )
    log.debug(
        "interval_computed",
        quality=q,
        new_interval=result.new_interval,
        new_ease=round(new_ease, 3),
    )
    return result


def next_due_at(result: IntervalResult, now: datetime) -> datetime:
    """Due date measured from the moment of scoring."""
    if result.repeat_same_day:
        return now + SAME_DAY_DELAY
    return now + timedelta(days=result.new_interval)


def validate_quality(value: int) -> Result[ReviewQuality, AppError]:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 5:
        log.warning("quality_out_of_range", quality=value)
        return out_of_range("quality", value, 0, 5, origin="interval_calculator")
    return Ok(ReviewQuality(int(value)))
