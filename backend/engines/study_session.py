"""Study Session value"""
from dataclasses import dataclass, replace
from datetime import datetime

from engines.records import StudyMode


@dataclass(frozen=True, slots=True)
class StudySession:
    """An ordered run through a built queue.

    The id sequence is fixed once built; answering or skipping moves the
    cursor forward by one. Complete when the cursor reaches the end.
    """
    item_ids: tuple[int, ...]
    started_at: datetime
    mode: StudyMode = StudyMode.NORMAL
    current_index: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    ratings: tuple[tuple[int, int], ...] = ()  # (item_id, quality) in answer order

    def __post_init__(self):
        if not 0 <= self.current_index <= len(self.item_ids):
            raise ValueError(
                f"current_index {self.current_index} outside 0..{len(self.item_ids)}"
            )
        if min(self.correct_count, self.incorrect_count, self.skipped_count) < 0:
            raise ValueError("session counts must be non-negative")

    @property
    def is_complete(self) -> bool:
        return self.current_index == len(self.item_ids)

    @property
    def current_item_id(self) -> int | None:
        if self.is_complete:
            return None
        return self.item_ids[self.current_index]

    @property
    def remaining(self) -> int:
        return len(self.item_ids) - self.current_index

    def answered(self, quality: int, correct: bool) -> "StudySession":
        item_id = self.current_item_id
        if item_id is None:
            raise ValueError("session is already complete")
        return replace(
            self,
            current_index=self.current_index + 1,
            correct_count=self.correct_count + (1 if correct else 0),
            incorrect_count=self.incorrect_count + (0 if correct else 1),
            ratings=self.ratings + ((item_id, int(quality)),),
        )

    def skipped(self) -> "StudySession":
        if self.is_complete:
            raise ValueError("session is already complete")
        return replace(
            self,
            current_index=self.current_index + 1,
            skipped_count=self.skipped_count + 1,
        )
