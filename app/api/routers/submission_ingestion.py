"""
app/api/routers/submission_ingestion.py

On-demand trigger and status endpoints for the submission pipeline.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.domain.ingestion import PollCycleOutcome
from app.schemas.submission_ingestion import PipelineStatusResponse, PollCycleSummaryResponse
from app.services.ingestion_pipeline import IngestionPipeline, get_ingestion_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submission-ingestion"])


@router.post("/ingestion/submissions/run", response_model=PollCycleSummaryResponse)
def run_submission_ingestion(
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
) -> PollCycleSummaryResponse:
    """
    Run one poll cycle synchronously and return its summary.

    Rejected with 409 while another cycle holds the batch lock.
    """

    try:
        summary = pipeline.run_cycle(wait=False)
    except Exception as exc:
        logger.exception("Manual submission ingestion failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal error while running the submission ingestion pipeline.",
        ) from exc

    if summary.outcome == PollCycleOutcome.BUSY:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A submission ingestion cycle is already running.",
        )

    return PollCycleSummaryResponse.from_summary(summary)


@router.get("/ingestion/submissions/status", response_model=PipelineStatusResponse)
def get_submission_ingestion_status(
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
) -> PipelineStatusResponse:
    last_summary = pipeline.last_summary
    return PipelineStatusResponse(
        state=pipeline.state,
        running=pipeline.is_running,
        last_summary=PollCycleSummaryResponse.from_summary(last_summary) if last_summary else None,
    )
