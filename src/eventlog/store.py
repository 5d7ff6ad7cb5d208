"""Event log stores (storage backends)."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Protocol

import duckdb

from .errors import EventLogError, QueryError, WriteError
from .models import DailyViews, StatsReport, StatsSummary, ViewEvent

logger = logging.getLogger(__name__)

_EPOCH = date(1970, 1, 1)
_SECONDS_PER_DAY = 86400


class EventStore(Protocol):
    """A synchronous, append-only store of view events.

    Stores are synchronous; the write and query paths push calls into a worker
    thread so the event loop stays unblocked.
    """

    def append(self, ts: int, domain: str, page: str) -> ViewEvent:
        """Durably persist one event and return it with its sequence id."""

    def snapshot(self, domain: str | None, limit: int) -> StatsReport:
        """Return counts and the `limit` newest events from one consistent read."""

    def daily(self, domain: str | None) -> list[DailyViews]:
        """Return per-day view counts grouped by (domain, page)."""

    def close(self) -> None:
        """Close any underlying resources."""


@contextmanager
def _hold(lock: Any, timeout: float, error: type[EventLogError], what: str) -> Iterator[None]:
    """Acquire `lock` within `timeout` seconds or raise `error`."""
    if not lock.acquire(timeout=timeout):
        raise error(f"timed out after {timeout:.1f}s waiting for {what}")
    try:
        yield
    finally:
        lock.release()


def _utc_day(epoch_day: int) -> date:
    return _EPOCH + timedelta(days=epoch_day)


def _sort_daily(rows: list[DailyViews]) -> list[DailyViews]:
    """Newest day first, then busiest page, then domain/page alphabetically."""
    rows.sort(key=lambda r: (r.domain, r.page))
    rows.sort(key=lambda r: (r.date, r.view_count), reverse=True)
    return rows


class InMemoryEventStore:
    """In-memory store for tests and local debugging."""

    def __init__(self, *, write_timeout: float = 5.0, read_timeout: float = 5.0) -> None:
        """Create an empty in-memory store."""
        self._lock = threading.Lock()
        self._events: list[ViewEvent] = []
        self._write_timeout = write_timeout
        self._read_timeout = read_timeout
        self._closed = False

    def append(self, ts: int, domain: str, page: str) -> ViewEvent:
        """Append an event to the in-memory list (thread-safe)."""
        with _hold(self._lock, self._write_timeout, WriteError, "the event log lock"):
            if self._closed:
                raise WriteError("event log is closed")
            event = ViewEvent(id=len(self._events) + 1, ts=ts, domain=domain, page=page)
            self._events.append(event)
        return event

    def _matching(self, domain: str | None) -> list[ViewEvent]:
        with _hold(self._lock, self._read_timeout, QueryError, "the event log lock"):
            if self._closed:
                raise QueryError("event log is closed")
            return [e for e in self._events if domain is None or e.domain == domain]

    def snapshot(self, domain: str | None, limit: int) -> StatsReport:
        events = self._matching(domain)
        summary = StatsSummary(
            total_events=len(events),
            unique_pages=len({(e.domain, e.page) for e in events}),
        )
        latest = tuple(reversed(events[-limit:])) if limit > 0 else ()
        return StatsReport(summary=summary, latest=latest)

    def daily(self, domain: str | None) -> list[DailyViews]:
        counts = Counter((e.domain, e.page, e.ts // _SECONDS_PER_DAY) for e in self._matching(domain))
        return _sort_daily(
            [
                DailyViews(domain=d, page=p, date=_utc_day(day), view_count=n)
                for (d, p, day), n in counts.items()
            ]
        )

    def close(self) -> None:  # noqa: D401 - keep interface consistent
        """Mark the store closed; later calls fail."""
        with self._lock:
            self._closed = True

    def events(self) -> Sequence[ViewEvent]:
        """Return a point-in-time copy of all recorded events."""
        with self._lock:
            return list(self._events)


@dataclass(frozen=True)
class DuckDBOptions:
    path: Path
    table: str = "view_events"
    write_timeout: float = 5.0
    read_timeout: float = 5.0
    max_concurrent_reads: int = 8


class DuckDBEventStore:
    """DuckDB store for durable local persistence.

    The store owns the database file. A single writer connection is guarded by
    a lock so appends are serialized; each read opens its own cursor and runs in
    a read transaction, so readers never wait on the writer.
    """

    def __init__(
        self,
        *,
        path: str | Path,
        table: str = "view_events",
        write_timeout: float = 5.0,
        read_timeout: float = 5.0,
        max_concurrent_reads: int = 8,
    ) -> None:
        """Create (or open) a DuckDB-backed store at the given path."""
        self._opts = DuckDBOptions(
            path=Path(path),
            table=table,
            write_timeout=write_timeout,
            read_timeout=read_timeout,
            max_concurrent_reads=max_concurrent_reads,
        )
        self._write_lock = threading.Lock()
        # Guards the root connection, which only hands out cursors.
        self._cursor_lock = threading.Lock()
        self._read_slots = threading.BoundedSemaphore(max_concurrent_reads)
        self._closed = False

        self._conn = duckdb.connect(str(self._opts.path))
        self._ensure_schema()
        self._writer = self._conn.cursor()
        logger.info("Opened event log %s (table %s)", self._opts.path, self._opts.table)

    def _ensure_schema(self) -> None:
        """Create the sequence and backing table if they do not exist yet."""
        table = self._opts.table
        self._conn.execute(f"create sequence if not exists {table}_id_seq start 1")
        self._conn.execute(
            f"""
            create table if not exists {table} (
              id bigint primary key default nextval('{table}_id_seq'),
              ts bigint not null,
              domain varchar not null,
              page varchar not null
            )
            """
        )

    def append(self, ts: int, domain: str, page: str) -> ViewEvent:
        """Insert a single event; returns once DuckDB has committed it."""
        insert_sql = f"insert into {self._opts.table} (ts, domain, page) values (?, ?, ?) returning id"
        with _hold(self._write_lock, self._opts.write_timeout, WriteError, "the event log write lock"):
            if self._closed:
                raise WriteError("event log is closed")
            try:
                row = self._writer.execute(insert_sql, [ts, domain, page]).fetchone()
            except duckdb.Error as exc:
                raise WriteError(f"failed to append view event: {exc}") from exc
        if row is None:
            raise WriteError("insert returned no row id")
        return ViewEvent(id=row[0], ts=ts, domain=domain, page=page)

    def _open_reader(self) -> duckdb.DuckDBPyConnection:
        with self._cursor_lock:
            if self._closed:
                raise QueryError("event log is closed")
            try:
                return self._conn.cursor()
            except duckdb.Error as exc:
                raise QueryError(f"failed to open a reader: {exc}") from exc

    @staticmethod
    def _domain_filter(domain: str | None) -> tuple[str, list[Any]]:
        if domain is None:
            return "", []
        return " where domain = ?", [domain]

    def snapshot(self, domain: str | None, limit: int) -> StatsReport:
        """Read counts and the newest events inside one read transaction."""
        table = self._opts.table
        where, params = self._domain_filter(domain)
        with _hold(self._read_slots, self._opts.read_timeout, QueryError, "a reader slot"):
            cur = self._open_reader()
            try:
                cur.execute("begin transaction")
                total = cur.execute(f"select count(*) from {table}{where}", params).fetchone()
                unique = cur.execute(
                    f"select count(*) from (select distinct domain, page from {table}{where})", params
                ).fetchone()
                rows = []
                if limit > 0:
                    rows = cur.execute(
                        f"select id, ts, domain, page from {table}{where} order by id desc limit ?",
                        [*params, limit],
                    ).fetchall()
                cur.execute("commit")
            except duckdb.Error as exc:
                raise QueryError(f"failed to read stats: {exc}") from exc
            finally:
                cur.close()

        summary = StatsSummary(total_events=total[0], unique_pages=unique[0])
        latest = tuple(ViewEvent(id=i, ts=ts, domain=d, page=p) for i, ts, d, p in rows)
        return StatsReport(summary=summary, latest=latest)

    def daily(self, domain: str | None) -> list[DailyViews]:
        """Group events by (domain, page, UTC day)."""
        where, params = self._domain_filter(domain)
        select_sql = f"""
        select domain, page, ts // {_SECONDS_PER_DAY} as epoch_day, count(*) as view_count
        from {self._opts.table}{where}
        group by domain, page, epoch_day
        """
        with _hold(self._read_slots, self._opts.read_timeout, QueryError, "a reader slot"):
            cur = self._open_reader()
            try:
                rows = cur.execute(select_sql, params).fetchall()
            except duckdb.Error as exc:
                raise QueryError(f"failed to read daily views: {exc}") from exc
            finally:
                cur.close()

        return _sort_daily(
            [DailyViews(domain=d, page=p, date=_utc_day(day), view_count=n) for d, p, day, n in rows]
        )

    def close(self) -> None:
        """Close the underlying DuckDB connections. Safe to call multiple times."""
        with self._write_lock, self._cursor_lock:
            if self._closed:
                return
            self._closed = True
            self._writer.close()
            self._conn.close()
        logger.info("Closed event log %s", self._opts.path)
