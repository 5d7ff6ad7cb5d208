"""Errors raised by the event log and the paths layered on it."""

from __future__ import annotations


class EventLogError(RuntimeError):
    """Base class for recoverable event log failures."""


class WriteError(EventLogError):
    """A view could not be durably recorded."""


class QueryError(EventLogError):
    """Statistics could not be read from the log."""
