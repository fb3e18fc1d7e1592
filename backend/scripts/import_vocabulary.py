#!/usr/bin/env python3
"""Import a vocabulary word list into the item store.

Accepts YAML or JSON (JSON is valid YAML): either a list of entries or a
mapping with a top-level `words` list. Items already in the store keep
their learning progress.

Run with: python3 -m scripts.import_vocabulary path/to/words.yaml
"""
import argparse
import asyncio
import sys
from pathlib import Path

import yaml

from core.config import get_settings
from core.errors import Err, Ok
from core.logging import configure_logging, engine_logger
from engines.importer import import_vocabulary, parse_entries
from engines.service import SchedulerService

log = engine_logger()


def load_word_list(path: Path) -> list[dict]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("words", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of entries or a 'words' list")
    return data


async def run(path: Path) -> int:
    settings = get_settings()
    scheduler = await SchedulerService.from_settings(settings)
    try:
        match parse_entries(load_word_list(path)):
            case Err(error):
                print(f"Invalid word list: {error.message}", file=sys.stderr)
                return 1
            case Ok(entries):
                pass

        match await import_vocabulary(scheduler.items, entries):
            case Err(error):
                print(f"Import failed: {error}", file=sys.stderr)
                return 1
            case Ok(summary):
                print(f"Imported {summary.added} new item(s), {summary.skipped} already present ({summary.total} total)")
                return 0
    finally:
        await scheduler.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a vocabulary word list")
    parser.add_argument("path", type=Path, help="YAML or JSON word list")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    if not args.path.exists():
        parser.error(f"{args.path} does not exist")
    sys.exit(asyncio.run(run(args.path)))


if __name__ == "__main__":
    main()
