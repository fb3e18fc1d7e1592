
from engines.records import ItemRecord, ItemContent, Status, StudyMode, Moment, At, Unset, UNSET
from engines.intervals import ReviewQuality, IntervalResult, compute_next, next_due_at, validate_quality
from engines.status import classify
from engines.review import ReviewLogEntry, ReviewOutcome, apply_review
from engines.quality import SimpleRating, estimate_quality
from engines.queue import StudyQueue, build_queue
from engines.cache import RecordCache
from engines.study_session import StudySession
from engines.stores import ItemStore, SnapshotStore, InMemoryItemStore, InMemorySnapshotStore
from engines.snapshot import capture, restore, Restored, RecoveryExpired, InvalidSnapshot
from engines.session import StudySessionMachine, SessionState, SessionObserver, RecoveryKind
from engines.service import SchedulerService

__all__ = [
    "ItemRecord", "ItemContent", "Status", "StudyMode", "Moment", "At", "Unset", "UNSET",
    "ReviewQuality", "IntervalResult", "compute_next", "next_due_at", "validate_quality",
    "classify",
    "ReviewLogEntry", "ReviewOutcome", "apply_review",
    "SimpleRating", "estimate_quality",
    "StudyQueue", "build_queue",
    "RecordCache",
    "StudySession",
    "ItemStore", "SnapshotStore", "InMemoryItemStore", "InMemorySnapshotStore",
    "capture", "restore", "Restored", "RecoveryExpired", "InvalidSnapshot",
    "StudySessionMachine", "SessionState", "SessionObserver", "RecoveryKind",
    "SchedulerService",
]
