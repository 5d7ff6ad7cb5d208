"""View event models.

Events are:
- Append-only (the store assigns `id` and never rewrites a row).
- Stamped by the core, never by the caller.
- Frozen once built so readers can share them freely.
"""

from __future__ import annotations

import datetime
import time

from pydantic import BaseModel, ConfigDict, Field


def epoch_now() -> int:
    """Return the current wall-clock time as whole seconds since the epoch."""
    return int(time.time())


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ViewEvent(_Model):
    """A single recorded page view."""

    # Insertion sequence; defines recency order. Not part of the JSON shape.
    id: int = Field(exclude=True)

    ts: int
    domain: str
    page: str


class StatsSummary(_Model):
    """Aggregate counts over the (optionally domain-filtered) log."""

    total_events: int = 0
    unique_pages: int = 0


class StatsReport(_Model):
    """Summary plus the most recent events, newest first."""

    summary: StatsSummary
    latest: tuple[ViewEvent, ...] = ()


class DailyViews(_Model):
    """Views of one page on one UTC calendar day."""

    domain: str
    page: str
    date: datetime.date
    view_count: int
