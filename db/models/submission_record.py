"""
db/models/submission_record.py

Durable row produced from one validated form submission plus its
downloaded attachments.
"""

from __future__ import annotations

from sqlalchemy import Index, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class SubmissionRecord(Base, CreatedAtMixin):
    __tablename__ = "submission_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    download_content: Mapped[bytes | None] = mapped_column(
        LargeBinary,
        nullable=True,
        comment="Attachment bytes fetched from the submitted download URL",
    )
    privacy: Mapped[str | None] = mapped_column(String(120), nullable=True)
    audience: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    paternal_surname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    maternal_surname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(120), nullable=True)
    institution: Mapped[str | None] = mapped_column(String(255), nullable=True)
    authorization_letter: Mapped[bytes | None] = mapped_column(
        LargeBinary,
        nullable=True,
        comment="Attachment bytes fetched from the authorization letter URL",
    )

    __table_args__ = (
        Index("ix_submission_records_email", "email"),
        Index("ix_submission_records_created_at", "created_at"),
    )
