"""
app/domain/ingestion.py

Domain models for submission poll cycles.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


class PollCycleOutcome:
    EMPTY = "empty"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    SOURCE_UNAVAILABLE = "source_unavailable"
    BUSY = "busy"


class PipelineState:
    IDLE = "idle"
    POLLING = "polling"
    VALIDATING = "validating"
    DOWNLOADING = "downloading"
    INSERTING = "inserting"
    CLEARING = "clearing"
    ABORTING = "aborting"
    ROLLED_BACK = "rolled_back"
    SLEEPING = "sleeping"


@dataclass(frozen=True)
class PollCycleSummary:
    """
    Outcome of one fetch -> process -> clear cycle.
    """

    outcome: str
    started_at: datetime
    finished_at: datetime
    rows_fetched: int = 0
    rows_inserted: int = 0
    rows_skipped: int = 0
    source_cleared: bool = False
    error: str | None = None
