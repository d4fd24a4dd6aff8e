"""create submission_records table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "submission_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "download_content",
            sa.LargeBinary(),
            nullable=True,
            comment="Attachment bytes fetched from the submitted download URL",
        ),
        sa.Column("privacy", sa.String(length=120), nullable=True),
        sa.Column("audience", sa.String(length=255), nullable=True),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("paternal_surname", sa.String(length=255), nullable=True),
        sa.Column("maternal_surname", sa.String(length=255), nullable=True),
        sa.Column("nationality", sa.String(length=120), nullable=True),
        sa.Column("institution", sa.String(length=255), nullable=True),
        sa.Column(
            "authorization_letter",
            sa.LargeBinary(),
            nullable=True,
            comment="Attachment bytes fetched from the authorization letter URL",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submission_records_email", "submission_records", ["email"], unique=False)
    op.create_index("ix_submission_records_created_at", "submission_records", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_submission_records_created_at", table_name="submission_records")
    op.drop_index("ix_submission_records_email", table_name="submission_records")
    op.drop_table("submission_records")
