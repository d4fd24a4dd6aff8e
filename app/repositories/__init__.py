"""
app/repositories package marker.
"""

from app.repositories.submission_repository import SubmissionRepository

__all__ = [
    "SubmissionRepository",
]
