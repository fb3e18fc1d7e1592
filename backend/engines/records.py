"""Item Records

Per-item learning state. Records are plain values: scheduling produces a
new record and the store persists it; nothing saves itself on mutation.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

MIN_EASE = 1.3
DEFAULT_EASE = 2.5
MAX_INTERVAL_DAYS = 365


class Status(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


class StudyMode(str, Enum):
    NORMAL = "normal"  # due reviews followed by new items
    QUICK = "quick"    # due reviews only


@dataclass(frozen=True, slots=True)
class Unset:
    """Timestamp never set."""


@dataclass(frozen=True, slots=True)
class At:
    timestamp: datetime


UNSET = Unset()

# Optional timestamp: Unset marks a never-scheduled item, which is due now
# for a different reason than an item whose date has passed.
Moment = Unset | At


def moment(value: datetime | None) -> Moment:
    return UNSET if value is None else At(value)


def moment_value(value: Moment) -> datetime | None:
    match value:
        case At(timestamp):
            return timestamp
        case Unset():
            return None


@dataclass(frozen=True, slots=True)
class ItemRecord:
    """Learning state of one vocabulary item."""
    item_id: int
    difficulty: int = 1
    ease_factor: float = DEFAULT_EASE
    interval_days: int = 0
    review_count: int = 0
    last_reviewed_at: Moment = UNSET
    next_due_at: Moment = UNSET
    status: Status = Status.NEW
    correct_count: int = 0
    incorrect_count: int = 0
    streak: int = 0

    def __post_init__(self):
        if self.ease_factor < MIN_EASE:
            raise ValueError(f"ease_factor {self.ease_factor} below {MIN_EASE}")
        if not 0 <= self.interval_days <= MAX_INTERVAL_DAYS:
            raise ValueError(f"interval_days {self.interval_days} outside 0..{MAX_INTERVAL_DAYS}")
        for name in ("review_count", "correct_count", "incorrect_count", "streak"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if not isinstance(self.status, Status):
            raise ValueError(f"unknown status {self.status!r}")

    @classmethod
    def new(cls, item_id: int, difficulty: int = 1) -> "ItemRecord":
        return cls(item_id=item_id, difficulty=difficulty)

    def reset(self) -> "ItemRecord":
        """Back to creation defaults; identity and difficulty are kept."""
        return ItemRecord.new(self.item_id, self.difficulty)

    def is_due(self, now: datetime) -> bool:
        match self.next_due_at:
            case Unset():
                return True
            case At(timestamp):
                return timestamp <= now

    @property
    def accuracy(self) -> float:
        answered = self.correct_count + self.incorrect_count
        if answered == 0:
            return 0.0
        return self.correct_count / answered

    def evolve(self, **changes) -> "ItemRecord":
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class ItemContent:
    """What the learner sees for an item. Scheduling never reads it."""
    word: str
    translation: str = ""
    extra: dict = field(default_factory=dict)  # phonetic, part of speech, example, ...
