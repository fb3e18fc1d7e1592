"""Vocabulary Item API

Import word lists, inspect an item's learning state and review history,
and reset all progress.
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_scheduler
from api.study import RecordResponse
from core.errors import raise_result
from engines.importer import VocabularyEntry
from engines.service import SchedulerService

router = APIRouter()


class ImportRequest(BaseModel):
    entries: list[VocabularyEntry]


class ImportResponse(BaseModel):
    total: int
    added: int
    skipped: int


class ItemResponse(BaseModel):
    word: str | None = None
    translation: str | None = None
    extra: dict = Field(default_factory=dict)
    difficulty: int
    record: RecordResponse


class ReviewResponse(BaseModel):
    reviewed_at: datetime
    quality: int
    correct: bool
    previous_ease: float
    new_ease: float
    previous_interval: int
    new_interval: int
    repeat_same_day: bool
    first_review: bool
    time_spent: float
    mode: str


class ResetResponse(BaseModel):
    reset: int


@router.post("/import", response_model=ImportResponse)
async def import_items(
    request: ImportRequest,
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Add unseen items with default learning state; known items keep theirs."""
    summary = raise_result(await scheduler.import_entries(request.entries))
    return ImportResponse(total=summary.total, added=summary.added, skipped=summary.skipped)


@router.post("/reset", response_model=ResetResponse)
async def reset_items(scheduler: SchedulerService = Depends(get_scheduler)):
    """Reset every item to its creation defaults."""
    count = raise_result(await scheduler.reset_all())
    return ResetResponse(reset=count)


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: int, scheduler: SchedulerService = Depends(get_scheduler)):
    record, content = raise_result(await scheduler.item_detail(item_id))
    return ItemResponse(
        word=content.word if content else None,
        translation=content.translation if content else None,
        extra=content.extra if content else {},
        difficulty=record.difficulty,
        record=RecordResponse.from_record(record),
    )


@router.get("/{item_id}/history", response_model=list[ReviewResponse])
async def get_item_history(item_id: int, scheduler: SchedulerService = Depends(get_scheduler)):
    entries = raise_result(await scheduler.history(item_id))
    return [
        ReviewResponse(
            reviewed_at=e.reviewed_at,
            quality=e.quality,
            correct=e.correct,
            previous_ease=e.previous_ease,
            new_ease=e.new_ease,
            previous_interval=e.previous_interval,
            new_interval=e.new_interval,
            repeat_same_day=e.repeat_same_day,
            first_review=e.first_review,
            time_spent=e.time_spent,
            mode=e.mode.value,
        )
        for e in entries
    ]
