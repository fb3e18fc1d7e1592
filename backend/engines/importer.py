"""Vocabulary Import

Validates word-list entries and introduces unseen items into the store
with default learning state. Items already present keep their progress;
only their content is refreshed.
"""
from dataclasses import dataclass
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import AppError, Err, Ok, Result, validation_error
from core.logging import engine_logger
from engines.records import ItemContent, ItemRecord
from engines.stores import ItemStore

log = engine_logger()


class VocabularyEntry(BaseModel):
    """One word-list entry."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: int = Field(ge=1)
    word: str = Field(min_length=1)
    translation: str = ""
    phonetic: str | None = None
    part_of_speech: str | None = None
    example: str | None = None
    chapter: str | None = None
    difficulty: int = Field(default=1, ge=1)

    def to_record(self) -> ItemRecord:
        return ItemRecord.new(self.id, self.difficulty)

    def to_content(self) -> ItemContent:
        extra = self.model_dump(
            include={"phonetic", "part_of_speech", "example", "chapter"},
            exclude_none=True,
        )
        return ItemContent(word=self.word, translation=self.translation, extra=extra)


@dataclass(frozen=True, slots=True)
class ImportSummary:
    total: int
    added: int
    skipped: int  # ids already present


def parse_entries(raw: Iterable[dict[str, Any]]) -> Result[list[VocabularyEntry], AppError]:
    """Validate raw dicts; the first invalid entry fails the whole batch."""
    entries: list[VocabularyEntry] = []
    for position, item in enumerate(raw):
        try:
            entries.append(VocabularyEntry.model_validate(item))
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first.get("loc", ()))
            return validation_error(
                f"Invalid vocabulary entry at position {position}: {field}: {first.get('msg')}",
                field=field,
                origin="importer",
                position=position,
            )
    return Ok(entries)


async def import_vocabulary(
    store: ItemStore, entries: Iterable[VocabularyEntry]
) -> Result[ImportSummary, AppError]:
    # Later duplicates of an id win
    by_id = {entry.id: entry for entry in entries}
    records = [entry.to_record() for entry in by_id.values()]
    contents = {item_id: entry.to_content() for item_id, entry in by_id.items()}

    match await store.add_items(records, contents):
        case Err(error):
            log.error("vocabulary_import_failed", error_code=error.code.name, total=len(records))
            return Err(error)
        case Ok(added):
            summary = ImportSummary(total=len(records), added=added, skipped=len(records) - added)
            log.info("vocabulary_imported", total=summary.total, added=summary.added, skipped=summary.skipped)
            return Ok(summary)
