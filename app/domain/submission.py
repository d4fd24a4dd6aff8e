"""
app/domain/submission.py

Submission row layout and the named record built from a validated row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

# Cell positions inside one row of the B2:P range.
EMAIL = 0
CONTENT_TYPE = 1
TITLE = 2
SUBJECT = 3
DESCRIPTION = 4
DOWNLOAD_URL = 5
PRIVACY = 6
AUDIENCE = 7
FIRST_NAME = 8
PATERNAL_SURNAME = 9
MATERNAL_SURNAME = 10
NATIONALITY = 11
INSTITUTION = 12
AUTHORIZATION_LETTER_URL = 13

ROW_WIDTH = 14

SubmissionRow = Sequence[Any]


def _cell(row: SubmissionRow, index: int) -> str | None:
    """
    Return a stripped string cell, or None for missing, blank or non-string cells.
    """

    if index >= len(row):
        return None
    value = row[index]
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def has_valid_email(row: SubmissionRow) -> bool:
    """
    True when the first cell is a non-empty string.
    """

    return bool(row) and _cell(row, EMAIL) is not None


@dataclass(frozen=True)
class Submission:
    """
    One validated form submission with named fields.
    """

    email: str
    content_type: str | None = None
    title: str | None = None
    subject: str | None = None
    description: str | None = None
    download_url: str | None = None
    privacy: str | None = None
    audience: str | None = None
    first_name: str | None = None
    paternal_surname: str | None = None
    maternal_surname: str | None = None
    nationality: str | None = None
    institution: str | None = None
    authorization_letter_url: str | None = None

    @classmethod
    def from_row(cls, row: SubmissionRow) -> Submission:
        """
        Build a submission from a raw row.

        Raises ValueError when the email cell is missing or blank.
        """

        email = _cell(row, EMAIL) if row else None
        if email is None:
            raise ValueError("Submission row has no email.")

        return cls(
            email=email,
            content_type=_cell(row, CONTENT_TYPE),
            title=_cell(row, TITLE),
            subject=_cell(row, SUBJECT),
            description=_cell(row, DESCRIPTION),
            download_url=_cell(row, DOWNLOAD_URL),
            privacy=_cell(row, PRIVACY),
            audience=_cell(row, AUDIENCE),
            first_name=_cell(row, FIRST_NAME),
            paternal_surname=_cell(row, PATERNAL_SURNAME),
            maternal_surname=_cell(row, MATERNAL_SURNAME),
            nationality=_cell(row, NATIONALITY),
            institution=_cell(row, INSTITUTION),
            authorization_letter_url=_cell(row, AUTHORIZATION_LETTER_URL),
        )
