"""Query path: read-only statistics over the event log."""

from __future__ import annotations

import asyncio
import logging

from .errors import QueryError
from .models import DailyViews, StatsReport
from .store import EventStore

logger = logging.getLogger(__name__)


class StatsQuery:
    """Answers summary and detail queries against a store."""

    def __init__(self, *, store: EventStore, default_limit: int = 10, max_limit: int = 500) -> None:
        if default_limit < 0:
            raise ValueError(f"default_limit must be >= 0. Got: {default_limit}")
        if max_limit < default_limit:
            raise ValueError(f"max_limit must be >= default_limit. Got: {max_limit} < {default_limit}")

        self._store = store
        self.default_limit = default_limit
        self.max_limit = max_limit

    def resolve_limit(self, limit: int | None) -> int:
        """Apply the default and clamp to `max_limit`."""
        if limit is None:
            return self.default_limit
        if limit < 0:
            raise ValueError(f"limit must be >= 0. Got: {limit}")
        return min(limit, self.max_limit)

    async def query_stats(self, domain: str | None = None, limit: int | None = None) -> StatsReport:
        """Return totals and the newest events, optionally for one domain.

        `domain` is an exact, case-sensitive match. Raises `QueryError` when the
        log cannot be read; never returns partial results.
        """
        resolved = self.resolve_limit(limit)
        try:
            return await asyncio.to_thread(self._store.snapshot, domain, resolved)
        except QueryError as exc:
            logger.error("Stats query failed (domain=%r): %s", domain, exc)
            raise

    async def query_daily(self, domain: str | None = None) -> list[DailyViews]:
        """Return per-day view counts, newest day first."""
        try:
            return await asyncio.to_thread(self._store.daily, domain)
        except QueryError as exc:
            logger.error("Daily query failed (domain=%r): %s", domain, exc)
            raise
