# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests model definitions, constraints, and helper methods.
"""

from src.infrastructure.database.models import (
    ALLOWED_TRANSITIONS,
    Base,
    Enrollment,
    EnrollmentRequest,
    EnrollmentRequestStatus,
    TimestampMixin,
    can_transition,
)


class TestBase:
    """Test base model functionality."""

    def test_base_inherits_declarative_base(self):
        """Verify Base is a declarative base."""
        assert hasattr(Base, "metadata")
        assert hasattr(Base, "registry")

    def test_timestamp_mixin_has_timestamps(self):
        """Verify TimestampMixin has created_at and updated_at fields."""
        assert hasattr(TimestampMixin, "created_at")
        assert hasattr(TimestampMixin, "updated_at")

    def test_tables_registered(self):
        """Verify both enrollment tables are in the metadata."""
        assert {"enrollment_requests", "enrollments"} <= set(Base.metadata.tables)


class TestEnrollmentRequestStatus:
    """Test the request status enum."""

    def test_values(self):
        """Verify the three lifecycle states."""
        assert [s.value for s in EnrollmentRequestStatus] == ["PENDING", "APPROVED", "REJECTED"]

    def test_is_terminal(self):
        """Verify only reviewed states are terminal."""
        assert EnrollmentRequestStatus.PENDING.is_terminal is False
        assert EnrollmentRequestStatus.APPROVED.is_terminal is True
        assert EnrollmentRequestStatus.REJECTED.is_terminal is True

    def test_pending_can_be_reviewed(self):
        """Verify PENDING may move to either terminal status."""
        assert can_transition(EnrollmentRequestStatus.PENDING, EnrollmentRequestStatus.APPROVED)
        assert can_transition(EnrollmentRequestStatus.PENDING, EnrollmentRequestStatus.REJECTED)

    def test_terminal_statuses_are_final(self):
        """Verify APPROVED and REJECTED allow no transition."""
        for current in (EnrollmentRequestStatus.APPROVED, EnrollmentRequestStatus.REJECTED):
            assert ALLOWED_TRANSITIONS[current] == frozenset()
            for target in EnrollmentRequestStatus:
                assert not can_transition(current, target)

    def test_pending_to_pending_not_allowed(self):
        """Verify a request cannot transition to PENDING."""
        assert not can_transition(EnrollmentRequestStatus.PENDING, EnrollmentRequestStatus.PENDING)

    def test_every_status_has_transitions_entry(self):
        """Verify the transition table covers every status."""
        assert set(ALLOWED_TRANSITIONS) == set(EnrollmentRequestStatus)


class TestEnrollmentRequestModel:
    """Test the EnrollmentRequest model."""

    def test_table_columns(self):
        """Verify EnrollmentRequest has required columns."""
        columns = set(EnrollmentRequest.__table__.columns.keys())

        assert columns == {
            "id",
            "student_id",
            "course_id",
            "status",
            "message",
            "admin_note",
            "reviewed_by",
            "reviewed_at",
            "created_at",
            "updated_at",
        }

    def test_pending_pair_index_is_partial_unique(self):
        """Verify one pending request per student and course is enforced."""
        index = next(
            i for i in EnrollmentRequest.__table__.indexes
            if i.name == "uq_enrollment_requests_pending_pair"
        )

        assert index.unique is True
        assert [c.name for c in index.columns] == ["student_id", "course_id"]
        assert "PENDING" in str(index.dialect_options["postgresql"]["where"])

    def test_review_fields_constraint(self):
        """Verify the review-fields check constraint exists."""
        names = {c.name for c in EnrollmentRequest.__table__.constraints}

        assert "ck_enrollment_requests_review_fields" in names

    def test_is_pending_property(self):
        """Test EnrollmentRequest.is_pending property."""
        pending = EnrollmentRequest(
            student_id="s1",
            course_id="c1",
            status=EnrollmentRequestStatus.PENDING,
        )
        approved = EnrollmentRequest(
            student_id="s1",
            course_id="c1",
            status=EnrollmentRequestStatus.APPROVED,
        )

        assert pending.is_pending is True
        assert approved.is_pending is False

    def test_repr(self):
        """Test repr includes the identifying fields."""
        request = EnrollmentRequest(
            id="r1",
            student_id="s1",
            course_id="c1",
            status=EnrollmentRequestStatus.PENDING,
        )

        assert "r1" in repr(request)
        assert "c1" in repr(request)


class TestEnrollmentModel:
    """Test the Enrollment model."""

    def test_composite_primary_key(self):
        """Verify enrollments are keyed by student and course."""
        primary_key = [c.name for c in Enrollment.__table__.primary_key.columns]

        assert primary_key == ["student_id", "course_id"]
