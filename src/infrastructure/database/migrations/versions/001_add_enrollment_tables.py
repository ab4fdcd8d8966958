# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Add enrollment request and enrollment tables.

enrollment_requests holds every request a student made, including reviewed
ones kept as history. A partial unique index allows a single PENDING request
per student and course. enrollments has a composite primary key so a student
can be enrolled in a course at most once.

Revision ID: 001_add_enrollment_tables
Revises:
Create Date: 2025-10-08
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_add_enrollment_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PENDING_ONLY = sa.text("status = 'PENDING'")


def upgrade() -> None:
    """Create enrollment_requests and enrollments."""

    op.create_table(
        "enrollment_requests",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column("course_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        # 'PENDING', 'APPROVED', 'REJECTED'
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("admin_note", sa.Text, nullable=True),
        sa.Column("reviewed_by", sa.String(36), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(status = 'PENDING') = (reviewed_by IS NULL AND reviewed_at IS NULL)",
            name="ck_enrollment_requests_review_fields",
        ),
    )
    op.create_index(
        "ix_enrollment_requests_student_id", "enrollment_requests", ["student_id"]
    )
    op.create_index(
        "ix_enrollment_requests_course_id", "enrollment_requests", ["course_id"]
    )
    op.create_index("ix_enrollment_requests_status", "enrollment_requests", ["status"])
    op.create_index(
        "ix_enrollment_requests_created_at", "enrollment_requests", ["created_at"]
    )
    op.create_index(
        "uq_enrollment_requests_pending_pair",
        "enrollment_requests",
        ["student_id", "course_id"],
        unique=True,
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )

    op.create_table(
        "enrollments",
        sa.Column("student_id", sa.String(36), nullable=False),
        sa.Column("course_id", sa.String(36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("student_id", "course_id"),
    )


def downgrade() -> None:
    """Drop enrollment tables."""
    op.drop_table("enrollments")
    op.drop_index(
        "uq_enrollment_requests_pending_pair", table_name="enrollment_requests"
    )
    op.drop_index("ix_enrollment_requests_created_at", table_name="enrollment_requests")
    op.drop_index("ix_enrollment_requests_status", table_name="enrollment_requests")
    op.drop_index("ix_enrollment_requests_course_id", table_name="enrollment_requests")
    op.drop_index("ix_enrollment_requests_student_id", table_name="enrollment_requests")
    op.drop_table("enrollment_requests")
