import itertools
import logging

import pytest

from vendorhub.errors import ValidationError
from vendorhub.services.status_service import (
    DocumentStatus,
    SubmissionStatus,
    classify_status,
    derive_submission_status,
    normalize_status,
    normalize_submission_status,
    parse_status,
)


class TestNormalizeStatus:
    @pytest.mark.parametrize("raw,expected", [
        (None, DocumentStatus.PENDING),
        ("", DocumentStatus.PENDING),
        ("submitted", DocumentStatus.PENDING),
        ("Uploaded", DocumentStatus.PENDING),
        ("  review ", DocumentStatus.UNDER_REVIEW),
        ("IN_REVIEW", DocumentStatus.UNDER_REVIEW),
        ("accepted", DocumentStatus.APPROVED),
        ("Approve", DocumentStatus.APPROVED),
        ("denied", DocumentStatus.REJECTED),
        ("re-submit", DocumentStatus.RESUBMITTED),
        ("resubmission", DocumentStatus.RESUBMITTED),
    ])
    def test_synonyms(self, raw, expected):
        assert normalize_status(raw) == expected

    def test_canonical_values_map_to_themselves(self):
        for status in DocumentStatus:
            assert normalize_status(status.value) == status

    def test_unknown_falls_back_to_pending_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert normalize_status("archived") == DocumentStatus.PENDING
        assert "archived" in caplog.text

    def test_classify_reports_recognition(self):
        assert classify_status("approved").recognized
        match = classify_status("archived")
        assert not match.recognized
        assert match.status == DocumentStatus.PENDING

    def test_parse_is_strict(self):
        assert parse_status("Accepted") == DocumentStatus.APPROVED
        with pytest.raises(ValidationError):
            parse_status("archived")
        with pytest.raises(ValidationError):
            parse_status("  ")

    def test_legacy_submission_labels(self):
        assert normalize_submission_status("draft") == SubmissionStatus.IN_PROGRESS
        assert normalize_submission_status("complete") == SubmissionStatus.FULLY_APPROVED
        assert normalize_submission_status("rejected") == SubmissionStatus.REQUIRES_RESUBMISSION
        assert normalize_submission_status("bogus") == SubmissionStatus.IN_PROGRESS


class TestDeriveSubmissionStatus:
    def test_no_documents(self):
        assert derive_submission_status([]) == SubmissionStatus.IN_PROGRESS

    def test_all_approved(self):
        assert derive_submission_status(["approved", "approved"]) == SubmissionStatus.FULLY_APPROVED

    def test_some_approved_some_pending(self):
        assert derive_submission_status(["approved", "pending"]) == SubmissionStatus.PARTIALLY_APPROVED

    def test_rejected_with_nothing_awaiting(self):
        assert derive_submission_status(["approved", "rejected"]) == SubmissionStatus.REQUIRES_RESUBMISSION
        assert derive_submission_status(["rejected"]) == SubmissionStatus.REQUIRES_RESUBMISSION

    def test_rejected_while_others_await_review(self):
        assert derive_submission_status(["rejected", "under_review"]) == SubmissionStatus.IN_PROGRESS
        assert derive_submission_status(["rejected", "resubmitted", "approved"]) == (
            SubmissionStatus.PARTIALLY_APPROVED
        )

    def test_nothing_decided(self):
        assert derive_submission_status(["pending", "under_review"]) == SubmissionStatus.IN_PROGRESS

    def test_accepts_enum_members_and_synonyms(self):
        assert derive_submission_status([DocumentStatus.APPROVED, "accepted"]) == SubmissionStatus.FULLY_APPROVED

    def test_order_independent(self):
        statuses = ["approved", "rejected", "pending", "resubmitted"]
        results = {derive_submission_status(p) for p in itertools.permutations(statuses)}
        assert len(results) == 1
