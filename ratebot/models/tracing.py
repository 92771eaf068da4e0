"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single observability event exposed by the API."""

    id: str
    event_type: str  # e.g. "turn_handled", "poll_failed"
    actor: str  # who created this event
    data: dict
    timestamp: datetime
