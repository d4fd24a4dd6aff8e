"""
app/domain package marker.
"""

from app.domain.ingestion import PipelineState, PollCycleOutcome, PollCycleSummary
from app.domain.submission import Submission, SubmissionRow, has_valid_email

__all__ = [
    "PipelineState",
    "PollCycleOutcome",
    "PollCycleSummary",
    "Submission",
    "SubmissionRow",
    "has_valid_email",
]
