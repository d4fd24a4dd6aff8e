"""
app/repositories/submission_repository.py

DB persistence for ingested form submissions.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.submission import Submission
from db.models.submission_record import SubmissionRecord


class SubmissionRepository:
    """
    Repository responsible for storing submissions with their attachments.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_record(
        self,
        submission: Submission,
        *,
        download_content: bytes | None,
        authorization_letter: bytes | None,
    ) -> int:
        """
        Add one submission row and flush it to obtain the generated id.
        """

        record = SubmissionRecord(
            email=submission.email,
            content_type=submission.content_type,
            title=submission.title,
            subject=submission.subject,
            description=submission.description,
            download_content=download_content,
            privacy=submission.privacy,
            audience=submission.audience,
            first_name=submission.first_name,
            paternal_surname=submission.paternal_surname,
            maternal_surname=submission.maternal_surname,
            nationality=submission.nationality,
            institution=submission.institution,
            authorization_letter=authorization_letter,
        )
        self._session.add(record)
        self._session.flush()
        return record.id

    def list_records(self, *, limit: int = 100) -> list[SubmissionRecord]:
        stmt = select(SubmissionRecord).order_by(SubmissionRecord.id.asc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())
