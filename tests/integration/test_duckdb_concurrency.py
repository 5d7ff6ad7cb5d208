"""Concurrency tests against a real DuckDB file and real worker threads."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from eventlog import DuckDBEventStore, StatsQuery, ViewRecorder


@pytest.fixture
def store(tmp_path: Path):
    s = DuckDBEventStore(path=tmp_path / "analytics.duckdb", write_timeout=30.0, read_timeout=30.0)
    yield s
    s.close()


@pytest.mark.asyncio
async def test_concurrent_record_view_loses_nothing(store: DuckDBEventStore) -> None:
    recorder = ViewRecorder(store=store)
    n = 200

    events = await asyncio.gather(
        *(recorder.record_view(f"site{i % 4}.test", f"/page{i % 10}") for i in range(n))
    )

    report = await StatsQuery(store=store, max_limit=n).query_stats(limit=n)
    assert report.summary.total_events == n
    assert len({e.id for e in events}) == n
    assert {e.id for e in report.latest} == {e.id for e in events}
    # i % 4 and i % 10 give lcm(4, 10) = 20 distinct pairs.
    assert report.summary.unique_pages == 20
    assert recorder.degraded_status()["write_failures"] == 0


def test_readers_see_consistent_growing_snapshots(store: DuckDBEventStore) -> None:
    writers, per_writer, limit = 8, 50, 5
    done = threading.Event()
    observed: list[tuple[int, int, int]] = []
    observed_lock = threading.Lock()

    def write(worker: int) -> None:
        for i in range(per_writer):
            store.append(1_700_000_000 + i, f"w{worker}.test", "/same")

    def read() -> None:
        last_total = 0
        while True:
            finished = done.is_set()
            report = store.snapshot(None, limit)
            total = report.summary.total_events
            assert total >= last_total
            assert len(report.latest) == min(limit, total)
            assert report.summary.unique_pages <= writers
            ids = [e.id for e in report.latest]
            assert ids == sorted(ids, reverse=True)
            last_total = total
            with observed_lock:
                observed.append((total, report.summary.unique_pages, len(ids)))
            if finished:
                return

    with ThreadPoolExecutor(max_workers=writers + 2) as pool:
        readers = [pool.submit(read) for _ in range(2)]
        for f in [pool.submit(write, w) for w in range(writers)]:
            f.result()
        done.set()
        for f in readers:
            f.result()

    final = store.snapshot(None, limit)
    assert final.summary.total_events == writers * per_writer
    assert final.summary.unique_pages == writers
    assert observed


@pytest.mark.asyncio
async def test_completed_write_is_visible_after_reopen(tmp_path: Path) -> None:
    path = tmp_path / "analytics.duckdb"
    first = DuckDBEventStore(path=path)
    await ViewRecorder(store=first).record_view("example.com", "/home")
    first.close()

    second = DuckDBEventStore(path=path)
    try:
        report = await StatsQuery(store=second).query_stats(domain="example.com")
    finally:
        second.close()

    assert report.summary.total_events == 1
    assert report.latest[0].page == "/home"
