"""Study Queue Builder

Selects and orders the day's items: the review backlog is cleared before
anything new is introduced.
"""
from dataclasses import dataclass
from typing import Iterable

from core.logging import engine_logger
from engines.records import At, ItemRecord, Status, Unset

log = engine_logger()


@dataclass(frozen=True, slots=True)
class StudyQueue:
    item_ids: tuple[int, ...] = ()
    due_count: int = 0
    new_count: int = 0

    def __len__(self) -> int:
        return len(self.item_ids)

    @property
    def is_empty(self) -> bool:
        return not self.item_ids


def _due_key(record: ItemRecord) -> tuple:
    match record.next_due_at:
        case Unset():
            due = (0, 0.0)
        case At(timestamp):
            due = (1, timestamp.timestamp())
    return (due, record.difficulty, record.item_id)


def _new_key(record: ItemRecord) -> tuple:
    return (record.difficulty, record.item_id)


def build_queue(
    due_items: Iterable[ItemRecord],
    new_items: Iterable[ItemRecord],
    new_item_cap: int,
    review_cap: int,
) -> StudyQueue:
    """Build an ordered study queue.

    Args:
        due_items: Candidate review items
        new_items: Candidate new items; anything not NEW is ignored
        new_item_cap: Maximum number of new items
        review_cap: Maximum number of review items

    Returns:
        StudyQueue with due items (earliest due first) before new items
        (easiest first). Empty input gives an empty queue.
    """
    review_cap = max(0, review_cap)
    new_item_cap = max(0, new_item_cap)

    due_ids: list[int] = []
    seen: set[int] = set()
    for record in sorted(due_items, key=_due_key):
        if len(due_ids) >= review_cap:
            break
        if record.item_id in seen:
            continue
        seen.add(record.item_id)
        due_ids.append(record.item_id)

    new_ids: list[int] = []
    candidates = (r for r in new_items if r.status is Status.NEW)
    for record in sorted(candidates, key=_new_key):
        if len(new_ids) >= new_item_cap:
            break
        if record.item_id in seen:
            continue
        seen.add(record.item_id)
        new_ids.append(record.item_id)

    queue = StudyQueue(
        item_ids=tuple(due_ids + new_ids),
        due_count=len(due_ids),
        new_count=len(new_ids),
    )
    log.debug(
        "queue_built",
        due=queue.due_count,
        new=queue.new_count,
        review_cap=review_cap,
        new_item_cap=new_item_cap,
    )
    return queue
