"""Quality Estimation

Auto-grading for modes where the learner does not rate themselves, plus the
three-level rating offered in the UI and its mapping onto 0-5 qualities.
"""
from enum import Enum

from engines.intervals import ReviewQuality

FAST_RESPONSE_SECONDS = 3.0


def estimate_quality(accuracy: float, response_time: float) -> ReviewQuality:
    """Estimate recall quality from answer accuracy and response time.

    Args:
        accuracy: Fraction of the answer that was right, 0.0-1.0
        response_time: Seconds taken to answer

    Raises:
        ValueError: accuracy outside [0, 1] or negative response time
    """
    if not 0.0 <= accuracy <= 1.0:
        raise ValueError(f"accuracy {accuracy} outside [0, 1]")
    if response_time < 0:
        raise ValueError(f"response_time {response_time} is negative")

    if accuracy < 0.3:
        return ReviewQuality.BLACKOUT
    if accuracy < 0.5:
        return ReviewQuality.INCORRECT
    if accuracy < 0.7:
        return ReviewQuality.DIFFICULT
    if accuracy < 0.85:
        return ReviewQuality.HESITATION
    if accuracy >= 0.95 and response_time <= FAST_RESPONSE_SECONDS:
        return ReviewQuality.PERFECT
    return ReviewQuality.GOOD


class SimpleRating(str, Enum):
    FORGOT = "forgot"
    VAGUE = "vague"
    REMEMBERED = "remembered"

    @property
    def quality(self) -> ReviewQuality:
        return _RATING_QUALITY[self]

    @classmethod
    def from_quality(cls, quality: int) -> "SimpleRating":
        q = ReviewQuality(quality)
        if q <= ReviewQuality.INCORRECT:
            return cls.FORGOT
        if q <= ReviewQuality.HESITATION:
            return cls.VAGUE
        return cls.REMEMBERED


_RATING_QUALITY = {
    SimpleRating.FORGOT: ReviewQuality.BLACKOUT,
    SimpleRating.VAGUE: ReviewQuality.HESITATION,
    SimpleRating.REMEMBERED: ReviewQuality.GOOD,
}
