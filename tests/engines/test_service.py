from datetime import date, timedelta

import pytest

from core.config import Settings
from core.errors import ErrorCode
from engines.importer import VocabularyEntry
from engines.records import ItemRecord, Status
from engines.service import SchedulerService
from engines.session import RecoveryKind, SessionState


@pytest.fixture
def service(settings, clock):
    return SchedulerService.in_memory([ItemRecord.new(i) for i in range(1, 4)], settings, clock)


@pytest.mark.asyncio
async def test_daily_progress(service):
    await service.machine.start()
    await service.machine.answer(4)

    progress = (await service.daily_progress()).unwrap()

    assert progress.new_items_introduced == 1
    assert progress.new_items_goal == 20
    assert progress.statistics.total_reviews == 1
    assert progress.due_now == 0


@pytest.mark.asyncio
async def test_daily_progress_counts_due_items(service, clock):
    await service.machine.start()
    await service.machine.answer(4)
    await service.machine.answer(0)
    clock.advance(hours=2)

    progress = (await service.daily_progress()).unwrap()

    assert progress.due_now == 1
    assert progress.new_items_introduced == 2


@pytest.mark.asyncio
async def test_review_history(service, clock):
    await service.machine.start()
    await service.machine.answer(4)
    clock.advance(days=1)
    await service.machine.answer(1)

    history = (await service.review_history(days=3)).unwrap()

    assert [d.day for d in history] == [date(2026, 3, 9), date(2026, 3, 10), date(2026, 3, 11)]
    assert [d.reviews for d in history] == [0, 1, 1]
    assert [d.correct_count for d in history] == [0, 1, 0]


@pytest.mark.asyncio
async def test_forecast_includes_overdue(service, clock):
    await service.machine.start()
    await service.machine.answer(2)
    clock.advance(days=3)

    forecast = (await service.forecast(days=2)).unwrap()

    assert [f.due_count for f in forecast] == [1, 0]


@pytest.mark.asyncio
async def test_item_detail(service):
    await service.import_entries([VocabularyEntry(id=9, word="nube", translation="cloud")])

    record, content = (await service.item_detail(9)).unwrap()

    assert record.status is Status.NEW
    assert content.word == "nube"
    assert (await service.item_detail(1)).unwrap()[1] is None
    assert (await service.item_detail(50)).error.code is ErrorCode.E4010_NOT_FOUND


@pytest.mark.asyncio
async def test_history_missing_item(service):
    assert (await service.history(50)).error.code is ErrorCode.E4010_NOT_FOUND


@pytest.mark.asyncio
async def test_reset_all_finishes_session(service):
    await service.machine.start()
    await service.machine.answer(5)

    assert (await service.reset_all()).unwrap() == 3

    assert service.machine.state is SessionState.IDLE
    assert len(service.cache) == 0
    assert (await service.items.fetch_by_id(1)).unwrap() == ItemRecord.new(1)
    assert (await service.snapshots.load()).unwrap() is None


@pytest.mark.asyncio
async def test_close_saves_snapshot(service):
    await service.machine.start()
    await service.snapshots.clear()

    await service.close()

    assert (await service.snapshots.load()).unwrap() is not None


@pytest.mark.asyncio
async def test_from_settings_uses_sqlite(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'recall.db'}",
        STORE_RETRY_BASE_DELAY_SECONDS=0.0,
        RECOVERY_SNAPSHOT_TTL_MINUTES=90,
    )
    service = await SchedulerService.from_settings(settings)
    try:
        assert service.settings.recovery_snapshot_ttl == timedelta(minutes=90)
        await service.import_entries([VocabularyEntry(id=1, word="sol"), VocabularyEntry(id=2, word="luna")])

        assert (await service.machine.start()).unwrap() is SessionState.STUDYING
        await service.machine.answer(4)
    finally:
        await service.close()

    reopened = await SchedulerService.from_settings(settings)
    try:
        assert (await reopened.machine.resume()).unwrap() is RecoveryKind.RESTORED
        assert reopened.machine.session.current_item_id == 2
    finally:
        await reopened.close()
