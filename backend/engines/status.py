"""Status Classifier"""
from engines.records import Status

MASTERY_QUALITY = 4


def classify(review_count: int, latest_quality: int | None) -> Status:
    """Classify an item from its review count and most recent quality.

    A single answer of 4 or better on an item that has been reviewed before
    is enough for mastery.
    """
    if review_count == 0:
        return Status.NEW
    if latest_quality is not None and latest_quality >= MASTERY_QUALITY:
        return Status.MASTERED
    return Status.LEARNING
