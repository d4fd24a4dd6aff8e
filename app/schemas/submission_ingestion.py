"""
app/schemas/submission_ingestion.py

Response schemas for the submission pipeline trigger and status endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.domain.ingestion import PollCycleSummary


class PollCycleSummaryResponse(BaseModel):
    """
    API response model for one submission poll cycle.
    """

    outcome: str
    started_at: datetime
    finished_at: datetime
    rows_fetched: int = Field(..., ge=0)
    rows_inserted: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    source_cleared: bool
    error: str | None = None

    @classmethod
    def from_summary(cls, summary: PollCycleSummary) -> PollCycleSummaryResponse:
        return cls(
            outcome=summary.outcome,
            started_at=summary.started_at,
            finished_at=summary.finished_at,
            rows_fetched=summary.rows_fetched,
            rows_inserted=summary.rows_inserted,
            rows_skipped=summary.rows_skipped,
            source_cleared=summary.source_cleared,
            error=summary.error,
        )


class PipelineStatusResponse(BaseModel):
    state: str
    running: bool
    last_summary: PollCycleSummaryResponse | None = None
