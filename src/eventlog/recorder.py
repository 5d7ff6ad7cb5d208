"""Write path: records page views into the event log."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .errors import WriteError
from .models import ViewEvent, epoch_now
from .store import EventStore

logger = logging.getLogger(__name__)

# Recorded in place of an omitted `domain` or `page`.
DEFAULT_DOMAIN = ""
DEFAULT_PAGE = ""


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


class ViewRecorder:
    """Stamps views and appends them to a store, one row per call."""

    def __init__(self, *, store: EventStore, clock: Callable[[], float] | None = None) -> None:
        """Create a recorder backed by a synchronous store.

        Args:
            store: Event log that owns the storage file.
            clock: Wall-clock source in epoch seconds; defaults to `time.time`.
        """
        self._store = store
        self._clock = clock

        self._write_failures = 0
        self._first_failure_at: datetime | None = None
        self._last_failure_at: datetime | None = None

    def _now(self) -> int:
        if self._clock is None:
            return epoch_now()
        return int(self._clock())

    async def record_view(self, domain: str | None = None, page: str | None = None) -> ViewEvent:
        """Durably record one view.

        Returns after the store has committed the row. Raises `WriteError` when
        the store is unavailable or the write lock cannot be acquired in time;
        retrying is left to the caller.
        """
        domain = DEFAULT_DOMAIN if domain is None else domain
        page = DEFAULT_PAGE if page is None else page
        ts = self._now()

        try:
            event = await asyncio.to_thread(self._store.append, ts, domain, page)
        except WriteError as exc:
            now = utc_now()
            self._write_failures += 1
            self._first_failure_at = self._first_failure_at or now
            self._last_failure_at = now
            logger.warning("Failed to record view of %r on %r: %s", page, domain, exc)
            raise

        logger.debug("Recorded view #%d %s%s", event.id, domain, page)
        return event

    def degraded_status(self) -> dict[str, Any]:
        """Return a minimal degraded-status snapshot."""
        return {
            "write_failures": self._write_failures,
            "first_failure_at": self._first_failure_at,
            "last_failure_at": self._last_failure_at,
        }
