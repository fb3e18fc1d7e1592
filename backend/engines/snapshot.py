"""Progress Snapshot

Serializes an in-progress StudySession to JSON bytes and rebuilds it after
an interruption. Snapshots outlive their recovery window only on disk;
restore never hands back an expired one.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import AppError, Err, Ok, Result
from core.logging import session_logger
from engines.records import ItemRecord, StudyMode
from engines.statistics import local_midnight
from engines.stores import ItemStore
from engines.study_session import StudySession

log = session_logger()

SNAPSHOT_VERSION = 1


class SnapshotPayload(BaseModel):
    """Wire format of a saved session."""
    model_config = ConfigDict(frozen=True)

    version: int = SNAPSHOT_VERSION
    item_ids: list[int]
    current_index: int = Field(ge=0)
    correct_count: int = Field(default=0, ge=0)
    incorrect_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)
    ratings: list[tuple[int, int]] = Field(default_factory=list)
    mode: StudyMode = StudyMode.NORMAL
    started_at: datetime
    snapshot_at: datetime


@dataclass(frozen=True, slots=True)
class Restored:
    session: StudySession
    records: tuple[ItemRecord, ...]
    dropped_ids: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class RecoveryExpired:
    snapshot_at: datetime
    expired_at: datetime


@dataclass(frozen=True, slots=True)
class InvalidSnapshot:
    reason: str


RestoreOutcome = Restored | RecoveryExpired | InvalidSnapshot


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def capture(session: StudySession, now: datetime) -> bytes:
    payload = SnapshotPayload(
        item_ids=list(session.item_ids),
        current_index=session.current_index,
        correct_count=session.correct_count,
        incorrect_count=session.incorrect_count,
        skipped_count=session.skipped_count,
        ratings=list(session.ratings),
        mode=session.mode,
        started_at=session.started_at,
        snapshot_at=now,
    )
    return payload.model_dump_json().encode("utf-8")


def expires_at(snapshot_at: datetime, ttl: timedelta | None, tz: tzinfo | None = None) -> datetime:
    """End of the recovery window.

    Without a TTL the window closes at the midnight ending the snapshot's
    calendar day in `tz`, or in the timestamp's own timezone when `tz` is None.
    """
    if ttl is not None:
        return snapshot_at + ttl
    zone = tz if tz is not None else snapshot_at.tzinfo
    next_day = snapshot_at.astimezone(zone).date() + timedelta(days=1)
    return local_midnight(next_day, zone)


def _decode(blob: bytes) -> SnapshotPayload | InvalidSnapshot:
    try:
        payload = SnapshotPayload.model_validate_json(blob)
    except ValidationError as e:
        return InvalidSnapshot(f"undecodable snapshot: {e.error_count()} error(s)")

    if payload.version != SNAPSHOT_VERSION:
        return InvalidSnapshot(f"unsupported snapshot version {payload.version}")
    if payload.current_index > len(payload.item_ids):
        return InvalidSnapshot("cursor beyond end of queue")
    if payload.current_index == len(payload.item_ids):
        return InvalidSnapshot("session already complete")
    return payload


async def restore(
    blob: bytes,
    store: ItemStore,
    now: datetime,
    ttl: timedelta | None = None,
    tz: tzinfo | None = None,
) -> Result[RestoreOutcome, AppError]:
    """Rebuild a session from a snapshot.

    Ids no longer in the store are dropped in order; the cursor moves back
    by the number of dropped ids that preceded it.

    Returns:
        Ok(Restored) with the rebuilt session and the records read
        Ok(RecoveryExpired) when the recovery window has closed
        Ok(InvalidSnapshot) for undecodable, complete or emptied snapshots
        Err(AppError) when the store could not be read
    """
    decoded = _decode(blob)
    if isinstance(decoded, InvalidSnapshot):
        log.warning("snapshot_invalid", reason=decoded.reason)
        return Ok(decoded)
    payload = decoded

    snapshot_at = _as_utc(payload.snapshot_at)
    deadline = expires_at(snapshot_at, ttl, tz)
    if now >= deadline:
        log.info("snapshot_expired", snapshot_at=snapshot_at.isoformat(), expired_at=deadline.isoformat())
        return Ok(RecoveryExpired(snapshot_at=snapshot_at, expired_at=deadline))

    kept_ids: list[int] = []
    records: list[ItemRecord] = []
    dropped: list[int] = []
    cursor = payload.current_index
    for position, item_id in enumerate(payload.item_ids):
        match await store.fetch_by_id(item_id):
            case Err(error):
                return Err(error)
            case Ok(None):
                dropped.append(item_id)
                if position < payload.current_index:
                    cursor -= 1
            case Ok(record):
                kept_ids.append(item_id)
                records.append(record)

    if cursor >= len(kept_ids):
        log.warning("snapshot_invalid", reason="no remaining items", dropped=len(dropped))
        return Ok(InvalidSnapshot("no remaining items in store"))

    kept = set(kept_ids)
    session = StudySession(
        item_ids=tuple(kept_ids),
        started_at=_as_utc(payload.started_at),
        mode=payload.mode,
        current_index=cursor,
        correct_count=payload.correct_count,
        incorrect_count=payload.incorrect_count,
        skipped_count=payload.skipped_count,
        ratings=tuple((i, q) for i, q in payload.ratings if i in kept),
    )
    if dropped:
        log.info("snapshot_items_dropped", dropped_ids=dropped, cursor=cursor)
    return Ok(Restored(session=session, records=tuple(records), dropped_ids=tuple(dropped)))
