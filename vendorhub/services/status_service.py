"""
Canonical document and submission statuses.

Upstream data (older schema fields, free-text entry, synonyms) carries many
spellings of the same status. Everything inside the service works on the
canonical values below; raw strings are mapped here and nowhere else.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from vendorhub.errors import ValidationError

logger = logging.getLogger(__name__)


class DocumentStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESUBMITTED = "resubmitted"


class SubmissionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    PARTIALLY_APPROVED = "partially_approved"
    FULLY_APPROVED = "fully_approved"
    REQUIRES_RESUBMISSION = "requires_resubmission"


# Documents still waiting on a consultant decision.
AWAITING_REVIEW = frozenset({
    DocumentStatus.PENDING,
    DocumentStatus.UNDER_REVIEW,
    DocumentStatus.RESUBMITTED,
})

_SYNONYMS: dict[str, DocumentStatus] = {
    "": DocumentStatus.PENDING,
    "pending": DocumentStatus.PENDING,
    "submitted": DocumentStatus.PENDING,
    "new": DocumentStatus.PENDING,
    "upload": DocumentStatus.PENDING,
    "uploaded": DocumentStatus.PENDING,
    "review": DocumentStatus.UNDER_REVIEW,
    "in_review": DocumentStatus.UNDER_REVIEW,
    "under_review": DocumentStatus.UNDER_REVIEW,
    "approve": DocumentStatus.APPROVED,
    "approved": DocumentStatus.APPROVED,
    "accept": DocumentStatus.APPROVED,
    "accepted": DocumentStatus.APPROVED,
    "reject": DocumentStatus.REJECTED,
    "rejected": DocumentStatus.REJECTED,
    "deny": DocumentStatus.REJECTED,
    "denied": DocumentStatus.REJECTED,
    "resubmit": DocumentStatus.RESUBMITTED,
    "re-submit": DocumentStatus.RESUBMITTED,
    "resubmission": DocumentStatus.RESUBMITTED,
    "resubmitted": DocumentStatus.RESUBMITTED,
}

_SUBMISSION_SYNONYMS: dict[str, SubmissionStatus] = {
    "": SubmissionStatus.IN_PROGRESS,
    "draft": SubmissionStatus.IN_PROGRESS,
    "pending": SubmissionStatus.IN_PROGRESS,
    "submitted": SubmissionStatus.IN_PROGRESS,
    "in_progress": SubmissionStatus.IN_PROGRESS,
    "under_review": SubmissionStatus.IN_PROGRESS,
    "partially_approved": SubmissionStatus.PARTIALLY_APPROVED,
    "partial": SubmissionStatus.PARTIALLY_APPROVED,
    "approved": SubmissionStatus.FULLY_APPROVED,
    "complete": SubmissionStatus.FULLY_APPROVED,
    "completed": SubmissionStatus.FULLY_APPROVED,
    "fully_approved": SubmissionStatus.FULLY_APPROVED,
    "rejected": SubmissionStatus.REQUIRES_RESUBMISSION,
    "requires_resubmission": SubmissionStatus.REQUIRES_RESUBMISSION,
}

STATUS_LABELS = {
    DocumentStatus.PENDING: "Pending",
    DocumentStatus.UNDER_REVIEW: "Under Review",
    DocumentStatus.APPROVED: "Approved",
    DocumentStatus.REJECTED: "Rejected",
    DocumentStatus.RESUBMITTED: "Resubmitted",
}


@dataclass(frozen=True)
class StatusMatch:
    status: DocumentStatus
    recognized: bool


def _clean(raw: str | None) -> str:
    return (raw or "").strip().lower()


def classify_status(raw: str | None) -> StatusMatch:
    """Map a raw string, reporting whether it was actually recognized."""
    status = _SYNONYMS.get(_clean(raw))
    if status is None:
        return StatusMatch(DocumentStatus.PENDING, recognized=False)
    return StatusMatch(status, recognized=True)


def normalize_status(raw: str | None) -> DocumentStatus:
    """Total mapping to the canonical enum. Unknown values fall back to pending."""
    match = classify_status(raw)
    if not match.recognized:
        logger.warning("Unrecognized document status %r treated as pending", raw)
    return match.status


def parse_status(raw: str | None) -> DocumentStatus:
    """Strict mapping for caller input: unknown values are rejected."""
    match = classify_status(raw)
    if not match.recognized or not _clean(raw):
        raise ValidationError(
            f"Invalid status {raw!r}. Must be one of: {[s.value for s in DocumentStatus]}"
        )
    return match.status


def normalize_submission_status(raw: str | None) -> SubmissionStatus:
    status = _SUBMISSION_SYNONYMS.get(_clean(raw))
    if status is None:
        logger.warning("Unrecognized submission status %r treated as in_progress", raw)
        return SubmissionStatus.IN_PROGRESS
    return status


def derive_submission_status(statuses: Iterable[str | DocumentStatus]) -> SubmissionStatus:
    """
    Project a submission's status from its documents' statuses.

    Depends only on the multiset of statuses, never on their order.
    """
    counts = Counter(normalize_status(s.value if isinstance(s, DocumentStatus) else s) for s in statuses)
    total = sum(counts.values())
    if total == 0:
        return SubmissionStatus.IN_PROGRESS

    approved = counts[DocumentStatus.APPROVED]
    rejected = counts[DocumentStatus.REJECTED]
    awaiting = sum(counts[s] for s in AWAITING_REVIEW)

    if approved == total:
        return SubmissionStatus.FULLY_APPROVED
    if awaiting == 0 and rejected > 0:
        return SubmissionStatus.REQUIRES_RESUBMISSION
    if approved > 0:
        return SubmissionStatus.PARTIALLY_APPROVED
    return SubmissionStatus.IN_PROGRESS
