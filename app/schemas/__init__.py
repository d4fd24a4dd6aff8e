"""
app/schemas package marker.
"""

from app.schemas.submission_ingestion import PipelineStatusResponse, PollCycleSummaryResponse

__all__ = [
    "PipelineStatusResponse",
    "PollCycleSummaryResponse",
]
