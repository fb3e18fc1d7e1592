import threading
from datetime import timedelta

from engines.cache import RecordCache
from engines.records import At, ItemRecord


def test_set_get_remove():
    cache = RecordCache()
    record = ItemRecord.new(1)
    cache.set(record)
    assert cache.get(1) == record
    cache.remove(1)
    assert cache.get(1) is None
    cache.remove(1)
    assert len(cache) == 0


def test_set_batch_and_clear():
    cache = RecordCache()
    cache.set_batch(ItemRecord.new(i) for i in range(5))
    assert len(cache) == 5
    assert {r.item_id for r in cache.all()} == set(range(5))
    cache.clear()
    assert cache.all() == []


def test_set_replaces_existing():
    cache = RecordCache()
    cache.set(ItemRecord.new(1))
    cache.set(ItemRecord(item_id=1, review_count=3))
    assert cache.get(1).review_count == 3
    assert len(cache) == 1


def test_due_records_sorted_and_filtered(now):
    cache = RecordCache()
    cache.set_batch([
        ItemRecord(item_id=1, next_due_at=At(now - timedelta(hours=1))),
        ItemRecord(item_id=2, next_due_at=At(now - timedelta(days=2))),
        ItemRecord(item_id=3, next_due_at=At(now + timedelta(hours=1))),
        ItemRecord.new(4),
    ])
    assert [r.item_id for r in cache.due_records(now)] == [2, 1]


def test_concurrent_writers():
    cache = RecordCache()

    def writer(offset):
        for i in range(200):
            cache.set(ItemRecord.new(offset * 1000 + i))

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) == 800
