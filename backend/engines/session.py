"""Study Session State Machine

Drives one learner through a built queue:

    IDLE -> LOADING -> STUDYING -> COMPLETE
               |-> IDLE   (nothing to study)
               |-> ERROR  (store failure; start again to retry)

Every start or resume bumps a generation counter. A load that finishes
after a newer one began is discarded rather than overwriting the newer
session.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from core.config import SchedulerSettings
from core.errors import (
    AppError,
    Err,
    Ok,
    Result,
    load_superseded,
    not_found,
    state_conflict,
)
from core.logging import session_logger
from core.resilience import CombinedPolicy, RetryConfig
from engines.cache import RecordCache
from engines.intervals import validate_quality
from engines.queue import build_queue
from engines.records import ItemRecord, StudyMode
from engines.review import ReviewOutcome, apply_review
from engines.snapshot import InvalidSnapshot, RecoveryExpired, Restored, capture, restore
from engines.statistics import start_of_day
from engines.stores import ItemStore, SnapshotStore
from engines.study_session import StudySession

log = session_logger()


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    STUDYING = "studying"
    COMPLETE = "complete"
    ERROR = "error"


class RecoveryKind(str, Enum):
    RESTORED = "restored"
    EXPIRED = "expired"
    INVALID = "invalid"
    NO_SNAPSHOT = "no_snapshot"


class SessionObserver:
    """Receives session lifecycle events. Methods default to no-ops."""

    def on_state_changed(self, old: SessionState, new: SessionState) -> None:
        pass

    def on_answer(self, session: StudySession, outcome: ReviewOutcome) -> None:
        pass

    def on_complete(self, session: StudySession) -> None:
        pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudySessionMachine:
    """Single active study session over an item store."""

    __slots__ = (
        "_items", "_snapshots", "_cache", "_settings", "_observer", "_clock",
        "_policy", "_state", "_session", "_generation", "_last_error", "_lock",
    )

    def __init__(
        self,
        items: ItemStore,
        snapshots: SnapshotStore,
        cache: RecordCache,
        settings: SchedulerSettings | None = None,
        observer: SessionObserver | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._items = items
        self._snapshots = snapshots
        self._cache = cache
        self._settings = settings or SchedulerSettings()
        self._observer = observer or SessionObserver()
        self._clock = clock
        self._policy = CombinedPolicy(
            timeout_seconds=self._settings.store_timeout,
            retry_config=RetryConfig(
                max_attempts=self._settings.store_retry_attempts,
                base_delay_seconds=self._settings.store_retry_base_delay,
            ),
            operation_name="session_load",
        )
        self._state = SessionState.IDLE
        self._session: StudySession | None = None
        self._generation = 0
        self._last_error: AppError | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> StudySession | None:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def last_error(self) -> AppError | None:
        return self._last_error

    def _transition_to(self, new_state: SessionState) -> None:
        old = self._state
        if old == new_state:
            return
        self._state = new_state
        log.info("session_state_changed", old=old.value, new=new_state.value, generation=self._generation)
        self._observer.on_state_changed(old, new_state)

    def _begin_load(self) -> int:
        self._generation += 1
        self._last_error = None
        self._transition_to(SessionState.LOADING)
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _superseded(self, generation: int) -> Err[AppError]:
        log.info("stale_load_discarded", generation=generation, current=self._generation)
        return load_superseded(generation, self._generation, origin="session")

    def _fail_load(self, generation: int, error: AppError) -> Err[AppError]:
        if self._is_stale(generation):
            return self._superseded(generation)
        self._last_error = error
        self._session = None
        log.error("session_load_failed", error_code=error.code.name, message=error.message)
        self._transition_to(SessionState.ERROR)
        return Err(error)

    async def _with_retry(self, fn):
        async def on_retry(attempt: int, error: AppError, delay: float) -> None:
            log.warning("store_retry", attempt=attempt, error_code=error.code.name, delay=round(delay, 3))

        outcome = await self._policy.execute(fn, on_retry)
        return outcome.result

    async def _new_item_allowance(self, now: datetime) -> Result[int, AppError]:
        """New items still allowed today: the goal minus items introduced today."""
        since = start_of_day(now, self._settings.day_timezone)
        match await self._with_retry(lambda: self._items.reviews_since(since)):
            case Err(error):
                return Err(error)
            case Ok(entries):
                introduced = {e.item_id for e in entries if e.first_review}
                return Ok(max(0, self._settings.new_items_per_day_goal - len(introduced)))

    async def _load_fresh(self, mode: StudyMode, generation: int) -> Result[SessionState, AppError]:
        now = self._clock()

        if mode is StudyMode.QUICK:
            review_cap = self._settings.quick_review_limit
            new_cap = 0
        else:
            review_cap = self._settings.reviews_per_day_goal
            match await self._new_item_allowance(now):
                case Err(error):
                    return self._fail_load(generation, error)
                case Ok(allowance):
                    new_cap = allowance

        due: list[ItemRecord] = []
        new: list[ItemRecord] = []
        match await self._with_retry(lambda: self._items.fetch_due(review_cap, now)):
            case Err(error):
                return self._fail_load(generation, error)
            case Ok(records):
                due = records
        if new_cap > 0:
            match await self._with_retry(lambda: self._items.fetch_new(new_cap)):
                case Err(error):
                    return self._fail_load(generation, error)
                case Ok(records):
                    new = records

        if self._is_stale(generation):
            return self._superseded(generation)

        queue = build_queue(due, new, new_cap, review_cap)
        self._cache.set_batch(due + new)

        if queue.is_empty:
            self._session = None
            log.info("nothing_to_study", mode=mode.value)
            self._transition_to(SessionState.IDLE)
            return Ok(self._state)

        self._session = StudySession(item_ids=queue.item_ids, started_at=now, mode=mode)
        log.info("session_started", mode=mode.value, due=queue.due_count, new=queue.new_count)
        self._transition_to(SessionState.STUDYING)
        await self._save_snapshot()
        return Ok(self._state)

    async def start(self, mode: StudyMode = StudyMode.NORMAL) -> Result[SessionState, AppError]:
        """Build a fresh queue, abandoning any current session."""
        generation = self._begin_load()
        return await self._load_fresh(mode, generation)

    async def resume(self) -> Result[RecoveryKind, AppError]:
        """Restore the saved session, or start fresh when there is none usable."""
        generation = self._begin_load()
        now = self._clock()

        match await self._with_retry(self._snapshots.load):
            case Err(error):
                return self._fail_load(generation, error)
            case Ok(blob):
                pass

        if self._is_stale(generation):
            return self._superseded(generation)

        if blob is None:
            kind = RecoveryKind.NO_SNAPSHOT
        else:
            ttl = self._settings.recovery_snapshot_ttl
            tz = self._settings.day_timezone
            match await self._with_retry(lambda: restore(blob, self._items, now, ttl, tz)):
                case Err(error):
                    return self._fail_load(generation, error)
                case Ok(Restored(session=session, records=records)):
                    if self._is_stale(generation):
                        return self._superseded(generation)
                    self._cache.set_batch(records)
                    self._session = session
                    log.info(
                        "session_restored",
                        cursor=session.current_index,
                        total=len(session.item_ids),
                    )
                    self._transition_to(SessionState.STUDYING)
                    return Ok(RecoveryKind.RESTORED)
                case Ok(RecoveryExpired()):
                    kind = RecoveryKind.EXPIRED
                case Ok(InvalidSnapshot()):
                    kind = RecoveryKind.INVALID
            if self._is_stale(generation):
                return self._superseded(generation)
            match await self._snapshots.clear():
                case Err(error):
                    log.warning("snapshot_clear_failed", error_code=error.code.name)
                case Ok(_):
                    pass

        match await self._load_fresh(StudyMode.NORMAL, generation):
            case Err(error):
                return Err(error)
            case Ok(_):
                return Ok(kind)

    def _require_studying(self, action: str) -> Result[StudySession, AppError]:
        if self._state is not SessionState.STUDYING or self._session is None:
            return state_conflict("StudySession", self._state.value, SessionState.STUDYING.value, origin=action)
        return Ok(self._session)

    async def _read_record(self, item_id: int) -> Result[ItemRecord, AppError]:
        cached = self._cache.get(item_id)
        if cached is not None:
            return Ok(cached)
        match await self._items.fetch_by_id(item_id):
            case Err(error):
                return Err(error)
            case Ok(None):
                return not_found("Item", item_id, origin="session.answer")
            case Ok(record):
                self._cache.set(record)
                return Ok(record)

    async def _save_snapshot(self) -> None:
        if self._session is None:
            return
        match await self._snapshots.save(capture(self._session, self._clock())):
            case Err(error):
                # The answer is already durable; only recovery is degraded
                log.warning("snapshot_save_failed", error_code=error.code.name)
            case Ok(_):
                log.debug("snapshot_saved", cursor=self._session.current_index)

    async def _advance(self, session: StudySession) -> None:
        self._session = session
        if session.is_complete:
            match await self._snapshots.clear():
                case Err(error):
                    log.warning("snapshot_clear_failed", error_code=error.code.name)
                case Ok(_):
                    pass
            log.info(
                "session_complete",
                correct=session.correct_count,
                incorrect=session.incorrect_count,
                skipped=session.skipped_count,
            )
            self._transition_to(SessionState.COMPLETE)
            self._observer.on_complete(session)
        else:
            await self._save_snapshot()

    async def answer(self, quality: int, time_spent: float = 0.0) -> Result[ReviewOutcome, AppError]:
        """Score the current item and move to the next one.

        A failed store write leaves the cursor where it was so the same
        answer can be retried.
        """
        match validate_quality(quality):
            case Err(error):
                return Err(error)
            case Ok(q):
                pass

        async with self._lock:
            match self._require_studying("session.answer"):
                case Err(error):
                    return Err(error)
                case Ok(session):
                    pass
            generation = self._generation
            item_id = session.current_item_id

            match await self._read_record(item_id):
                case Err(error):
                    return Err(error)
                case Ok(record):
                    pass

            outcome = apply_review(record, q, self._clock(), time_spent, session.mode)
            match await self._items.update(outcome.record, expected=record):
                case Err(error):
                    log.error("answer_write_failed", item_id=item_id, error_code=error.code.name)
                    return Err(error)
            self._cache.set(outcome.record)

            match await self._items.log_review(outcome.log_entry):
                case Err(error):
                    log.warning("review_log_failed", item_id=item_id, error_code=error.code.name)

            if self._is_stale(generation):
                return self._superseded(generation)

            advanced = session.answered(q, outcome.log_entry.correct)
            log.info(
                "answer_applied",
                item_id=item_id,
                quality=int(q),
                status=outcome.record.status.value,
                interval=outcome.record.interval_days,
                cursor=advanced.current_index,
            )
            self._observer.on_answer(advanced, outcome)
            await self._advance(advanced)
            return Ok(outcome)

    async def skip(self) -> Result[StudySession, AppError]:
        """Move past the current item without touching its record."""
        async with self._lock:
            match self._require_studying("session.skip"):
                case Err(error):
                    return Err(error)
                case Ok(session):
                    pass
            advanced = session.skipped()
            log.info("item_skipped", item_id=session.current_item_id, cursor=advanced.current_index)
            await self._advance(advanced)
            return Ok(advanced)

    async def suspend(self, reason: str = "suspended") -> Result[bool, AppError]:
        """Persist a snapshot on an external suspension signal.

        Returns Ok(False) when there is no session in progress.
        """
        if self._state is not SessionState.STUDYING or self._session is None:
            return Ok(False)
        match await self._snapshots.save(capture(self._session, self._clock())):
            case Err(error):
                log.error("snapshot_save_failed", reason=reason, error_code=error.code.name)
                return Err(error)
        log.info("session_suspended", reason=reason, cursor=self._session.current_index)
        return Ok(True)

    async def finish(self) -> Result[StudySession | None, AppError]:
        """End the session explicitly; its snapshot is cleared."""
        async with self._lock:
            match await self._snapshots.clear():
                case Err(error):
                    return Err(error)
            finished = self._session
            self._session = None
            self._generation += 1
            log.info("session_finished", had_session=finished is not None)
            self._transition_to(SessionState.IDLE)
            return Ok(finished)
