"""Study Session API

Drives the single active study session: start or resume, answer, skip,
suspend and finish; plus today's progress, past study history and the
review forecast.
"""
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator

from api.dependencies import get_scheduler
from core.errors import raise_result
from engines.quality import SimpleRating
from engines.records import ItemRecord, StudyMode, moment_value
from engines.session import RecoveryKind, SessionState
from engines.service import SchedulerService

router = APIRouter()


class StartSessionRequest(BaseModel):
    mode: StudyMode = StudyMode.NORMAL


class CurrentItem(BaseModel):
    item_id: int
    word: str | None = None
    translation: str | None = None
    extra: dict = Field(default_factory=dict)


class SessionResponse(BaseModel):
    state: SessionState
    generation: int
    mode: StudyMode | None = None
    total: int = 0
    current_index: int = 0
    remaining: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    started_at: datetime | None = None
    current_item: CurrentItem | None = None


class ResumeResponse(BaseModel):
    recovery: RecoveryKind
    session: SessionResponse


class AnswerRequest(BaseModel):
    """Either a 0-5 quality or a three-level rating."""
    quality: int | None = None
    rating: SimpleRating | None = None
    time_spent: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _one_score(self):
        if (self.quality is None) == (self.rating is None):
            raise ValueError("provide exactly one of 'quality' or 'rating'")
        return self

    @property
    def score(self) -> int:
        if self.rating is not None:
            return int(self.rating.quality)
        return self.quality


class RecordResponse(BaseModel):
    item_id: int
    status: str
    ease_factor: float
    interval_days: int
    review_count: int
    correct_count: int
    incorrect_count: int
    streak: int
    last_reviewed_at: datetime | None
    next_due_at: datetime | None

    @classmethod
    def from_record(cls, record: ItemRecord) -> "RecordResponse":
        return cls(
            item_id=record.item_id,
            status=record.status.value,
            ease_factor=record.ease_factor,
            interval_days=record.interval_days,
            review_count=record.review_count,
            correct_count=record.correct_count,
            incorrect_count=record.incorrect_count,
            streak=record.streak,
            last_reviewed_at=moment_value(record.last_reviewed_at),
            next_due_at=moment_value(record.next_due_at),
        )


class AnswerResponse(BaseModel):
    record: RecordResponse
    repeat_same_day: bool
    session: SessionResponse


class SuspendRequest(BaseModel):
    reason: str = "suspended"


class SuspendResponse(BaseModel):
    saved: bool


class TodayStatsResponse(BaseModel):
    new_items_introduced: int
    new_items_goal: int
    new_items_remaining: int
    reviews_done: int
    reviews_goal: int
    due_now: int
    total_answers: int
    accuracy: float
    average_quality: float
    total_time: float
    average_time_per_item: float


class HistoryDay(BaseModel):
    day: date
    reviews: int
    correct_count: int
    new_items: int
    accuracy: float
    total_time: float


class ForecastDay(BaseModel):
    day: date
    due_count: int


async def _session_response(scheduler: SchedulerService) -> SessionResponse:
    machine = scheduler.machine
    session = machine.session
    if session is None:
        return SessionResponse(state=machine.state, generation=machine.generation)

    current = None
    if session.current_item_id is not None:
        current = CurrentItem(item_id=session.current_item_id)
        content = raise_result(await scheduler.items.fetch_content(session.current_item_id))
        if content is not None:
            current = CurrentItem(
                item_id=session.current_item_id,
                word=content.word,
                translation=content.translation,
                extra=content.extra,
            )

    return SessionResponse(
        state=machine.state,
        generation=machine.generation,
        mode=session.mode,
        total=len(session.item_ids),
        current_index=session.current_index,
        remaining=session.remaining,
        correct_count=session.correct_count,
        incorrect_count=session.incorrect_count,
        skipped_count=session.skipped_count,
        started_at=session.started_at,
        current_item=current,
    )


@router.post("/sessions", response_model=SessionResponse)
async def start_session(
    request: StartSessionRequest | None = None,
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Start a fresh session; an empty queue leaves the machine idle."""
    mode = request.mode if request else StudyMode.NORMAL
    raise_result(await scheduler.machine.start(mode))
    return await _session_response(scheduler)


@router.post("/sessions/resume", response_model=ResumeResponse)
async def resume_session(scheduler: SchedulerService = Depends(get_scheduler)):
    """Resume the saved session, falling back to a fresh queue."""
    recovery = raise_result(await scheduler.machine.resume())
    return ResumeResponse(recovery=recovery, session=await _session_response(scheduler))


@router.get("/sessions/current", response_model=SessionResponse)
async def current_session(scheduler: SchedulerService = Depends(get_scheduler)):
    return await _session_response(scheduler)


@router.post("/sessions/current/answers", response_model=AnswerResponse)
async def answer_current(
    answer: AnswerRequest,
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Score the current item and advance."""
    outcome = raise_result(await scheduler.machine.answer(answer.score, answer.time_spent))
    return AnswerResponse(
        record=RecordResponse.from_record(outcome.record),
        repeat_same_day=outcome.result.repeat_same_day,
        session=await _session_response(scheduler),
    )


@router.post("/sessions/current/skip", response_model=SessionResponse)
async def skip_current(scheduler: SchedulerService = Depends(get_scheduler)):
    raise_result(await scheduler.machine.skip())
    return await _session_response(scheduler)


@router.post("/sessions/current/suspend", response_model=SuspendResponse)
async def suspend_current(
    request: SuspendRequest | None = None,
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Save a recovery snapshot, e.g. when the client goes to background."""
    reason = request.reason if request else "suspended"
    saved = raise_result(await scheduler.machine.suspend(reason))
    return SuspendResponse(saved=saved)


@router.post("/sessions/current/finish", response_model=SessionResponse)
async def finish_current(scheduler: SchedulerService = Depends(get_scheduler)):
    finished = raise_result(await scheduler.machine.finish())
    if finished is None:
        return await _session_response(scheduler)
    return SessionResponse(
        state=scheduler.machine.state,
        generation=scheduler.machine.generation,
        mode=finished.mode,
        total=len(finished.item_ids),
        current_index=finished.current_index,
        remaining=finished.remaining,
        correct_count=finished.correct_count,
        incorrect_count=finished.incorrect_count,
        skipped_count=finished.skipped_count,
        started_at=finished.started_at,
    )


@router.get("/stats/today", response_model=TodayStatsResponse)
async def today_stats(scheduler: SchedulerService = Depends(get_scheduler)):
    progress = raise_result(await scheduler.daily_progress())
    stats = progress.statistics
    return TodayStatsResponse(
        new_items_introduced=progress.new_items_introduced,
        new_items_goal=progress.new_items_goal,
        new_items_remaining=progress.new_items_remaining,
        reviews_done=progress.reviews_done,
        reviews_goal=progress.reviews_goal,
        due_now=progress.due_now,
        total_answers=stats.total_reviews,
        accuracy=round(stats.accuracy, 4),
        average_quality=round(stats.average_quality, 3),
        total_time=stats.total_time,
        average_time_per_item=round(stats.average_time_per_item, 3),
    )


@router.get("/stats/history", response_model=list[HistoryDay])
async def study_history(
    days: int = Query(30, ge=1, le=365),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Answers logged on each of the last `days` days, oldest first."""
    history = raise_result(await scheduler.review_history(days))
    return [
        HistoryDay(
            day=d.day,
            reviews=d.reviews,
            correct_count=d.correct_count,
            new_items=d.new_items,
            accuracy=round(d.accuracy, 4),
            total_time=d.total_time,
        )
        for d in history
    ]


@router.get("/forecast", response_model=list[ForecastDay])
async def review_forecast(
    days: int = Query(7, ge=1, le=90),
    scheduler: SchedulerService = Depends(get_scheduler),
):
    """Number of reviews falling due on each of the next `days` days."""
    forecast = raise_result(await scheduler.forecast(days))
    return [ForecastDay(day=f.day, due_count=f.due_count) for f in forecast]
