"""Page-view event log.

This package is the core of the pixel service:
- Recording each view durably as an append-only row (`ViewRecorder`).
- Answering summary and recent-event queries (`StatsQuery`).
- Owning the single storage file (DuckDB by default) behind `EventStore`.

The HTTP layer talks to it only through the recorder and the query objects.
"""

from .errors import EventLogError, QueryError, WriteError
from .models import DailyViews, StatsReport, StatsSummary, ViewEvent
from .query import StatsQuery
from .recorder import DEFAULT_DOMAIN, DEFAULT_PAGE, ViewRecorder
from .store import DuckDBEventStore, EventStore, InMemoryEventStore

__all__ = [
    "DEFAULT_DOMAIN",
    "DEFAULT_PAGE",
    "DailyViews",
    "DuckDBEventStore",
    "EventLogError",
    "EventStore",
    "InMemoryEventStore",
    "QueryError",
    "StatsQuery",
    "StatsReport",
    "StatsSummary",
    "ViewEvent",
    "ViewRecorder",
    "WriteError",
]
