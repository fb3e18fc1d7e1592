from sqlalchemy import (
    Boolean, Column, Float, ForeignKey, Index, Integer, JSON, LargeBinary, String, Text,
)

from core.database import Base, UTCDateTime, utcnow


class VocabularyItem(Base):
    """A vocabulary item with its scheduling state"""
    __tablename__ = "vocabulary_items"

    id = Column(Integer, primary_key=True, autoincrement=False)
    word = Column(String(255), nullable=False)
    translation = Column(Text, nullable=False, default="")
    extra = Column(JSON, default=dict)  # phonetic, part of speech, example, ...
    difficulty = Column(Integer, nullable=False, default=1)  # 1 = easiest

    # SM-2 state
    ease_factor = Column(Float, nullable=False, default=2.5)
    interval_days = Column(Integer, nullable=False, default=0)
    review_count = Column(Integer, nullable=False, default=0)
    last_reviewed_at = Column(UTCDateTime)
    next_due_at = Column(UTCDateTime)  # NULL = never scheduled
    status = Column(String(20), nullable=False, default="new")  # new/learning/mastered
    correct_count = Column(Integer, nullable=False, default=0)
    incorrect_count = Column(Integer, nullable=False, default=0)
    streak = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_vocabulary_items_next_due_at", "next_due_at"),
        Index("ix_vocabulary_items_status_difficulty", "status", "difficulty"),
    )


class ReviewLog(Base):
    """One answered review"""
    __tablename__ = "review_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("vocabulary_items.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewed_at = Column(UTCDateTime, nullable=False, index=True)
    quality = Column(Integer, nullable=False)  # 0-5
    correct = Column(Boolean, nullable=False)
    previous_ease = Column(Float, nullable=False)
    new_ease = Column(Float, nullable=False)
    previous_interval = Column(Integer, nullable=False)
    new_interval = Column(Integer, nullable=False)
    repeat_same_day = Column(Boolean, nullable=False, default=False)
    first_review = Column(Boolean, nullable=False, default=False)
    time_spent = Column(Float, nullable=False, default=0.0)  # seconds
    mode = Column(String(20), nullable=False, default="normal")


class StudySnapshot(Base):
    """Saved in-progress session, one per slot"""
    __tablename__ = "study_snapshots"

    slot = Column(String(50), primary_key=True)
    payload = Column(LargeBinary, nullable=False)
    saved_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)
