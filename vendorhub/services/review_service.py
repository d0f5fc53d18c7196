"""
Per-document review decisions.

Every transition validates and authorizes first, then mutates the document,
appends a remark, records activity and stages notifications in one unit of
work. Notifications reach the transports only once that unit has committed.
"""
import logging
import uuid

from sqlalchemy.orm import Session

from vendorhub.database import commit
from vendorhub.errors import AuthorizationError, ConflictError, ValidationError, VendorHubError
from vendorhub.models.document import DocumentRemark, SubmissionDocument
from vendorhub.models.submission import Submission
from vendorhub.models.user import User
from vendorhub.services.activity_service import record_activity
from vendorhub.services.document_service import discard_file
from vendorhub.services.notification_service import NotificationEvent, dispatcher
from vendorhub.services.status_service import DocumentStatus, STATUS_LABELS, parse_status
from vendorhub.services.submission_service import add_file, get_document
from vendorhub.services.user_service import can_review_for
from vendorhub.utils.dates import utc_now

logger = logging.getLogger(__name__)

DECISIONS = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)
REVIEWABLE = {DocumentStatus.PENDING.value, DocumentStatus.RESUBMITTED.value}


def _check_reviewer(actor: User, submission: Submission):
    if not can_review_for(actor, submission.vendor):
        raise AuthorizationError("Not authorized to review this vendor's documents")


def _check_version(doc: SubmissionDocument, expected_version: int | None):
    if expected_version is not None and expected_version != doc.version:
        raise ConflictError(
            f"Document changed since it was loaded (version {doc.version}, expected {expected_version})"
        )


def _add_remark(doc: SubmissionDocument, author: User, status: str, text: str, now: str):
    doc.remarks.append(DocumentRemark(
        id=str(uuid.uuid4()),
        author_id=author.id,
        status=status,
        text=text,
        created_at=now,
        sequence=len(doc.remarks),
    ))


def _finish(db: Session, doc: SubmissionDocument, events: list[NotificationEvent]) -> SubmissionDocument:
    for event in events:
        dispatcher.stage(db, event)
    commit(db)
    db.refresh(doc)
    dispatcher.deliver(events)
    return doc


def decide(
    db: Session,
    actor: User,
    submission_id: str,
    document_id: str,
    decision: DocumentStatus,
    remarks: str,
    expected_version: int | None = None,
) -> SubmissionDocument:
    if decision not in DECISIONS:
        raise ValidationError("Decision must be approved or rejected")

    submission, doc = get_document(db, submission_id, document_id)
    _check_reviewer(actor, submission)

    text = (remarks or "").strip()
    if not text:
        raise ValidationError("Remarks are required when approving or rejecting a document")
    if decision == DocumentStatus.APPROVED and not doc.files:
        raise ValidationError("Cannot approve a document with no files")

    # A retried identical decision is a no-op even though its version is stale
    if doc.status == decision.value and doc.review_notes == text:
        return doc
    _check_version(doc, expected_version)

    now = utc_now()
    previous = doc.status
    doc.status = decision.value
    doc.review_notes = text
    doc.reviewer_id = actor.id
    doc.review_date = now
    doc.updated_at = now
    submission.updated_at = now
    _add_remark(doc, actor, decision.value, text, now)
    record_activity(db, actor=actor, action=f"document_{decision.value}", entity_type="document",
                    entity_id=doc.id, details={"submission_id": submission.id, "previous_status": previous})

    label = STATUS_LABELS[decision]
    event = NotificationEvent(
        type="document_status",
        recipient_id=submission.vendor_id,
        sender_id=actor.id,
        title=f"Document {label}",
        message=f'Your document "{doc.title}" has been {decision.value}. Remarks: {text}',
        submission_id=submission.id,
        document_id=doc.id,
        priority="high" if decision == DocumentStatus.REJECTED else "medium",
        timestamp=now,
    )
    logger.info("Document %s %s by %s", doc.id, decision.value, actor.id)
    return _finish(db, doc, [event])


def approve_document(db, actor, submission_id, document_id, remarks, expected_version=None):
    return decide(db, actor, submission_id, document_id, DocumentStatus.APPROVED, remarks, expected_version)


def reject_document(db, actor, submission_id, document_id, remarks, expected_version=None):
    return decide(db, actor, submission_id, document_id, DocumentStatus.REJECTED, remarks, expected_version)


def start_review(
    db: Session, actor: User, submission_id: str, document_id: str, expected_version: int | None = None
) -> SubmissionDocument:
    submission, doc = get_document(db, submission_id, document_id)
    _check_reviewer(actor, submission)
    if doc.status == DocumentStatus.UNDER_REVIEW.value:
        return doc
    _check_version(doc, expected_version)
    if doc.status not in REVIEWABLE:
        raise ValidationError(f"Cannot start review of a document that is {doc.status}")

    now = utc_now()
    doc.status = DocumentStatus.UNDER_REVIEW.value
    doc.reviewer_id = actor.id
    doc.updated_at = now
    record_activity(db, actor=actor, action="document_review_started", entity_type="document",
                    entity_id=doc.id, details={"submission_id": submission.id})
    event = NotificationEvent(
        type="document_review",
        recipient_id=submission.vendor_id,
        sender_id=actor.id,
        title="Document Under Review",
        message=f'Your document "{doc.title}" is now under review.',
        submission_id=submission.id,
        document_id=doc.id,
        priority="low",
        timestamp=now,
    )
    return _finish(db, doc, [event])


def review(
    db: Session,
    actor: User,
    submission_id: str,
    document_id: str,
    status: str,
    remarks: str = "",
    expected_version: int | None = None,
) -> SubmissionDocument:
    """Apply a reviewer decision given as a raw status string."""
    target = parse_status(status)
    if target == DocumentStatus.UNDER_REVIEW:
        return start_review(db, actor, submission_id, document_id, expected_version)
    if target not in DECISIONS:
        raise ValidationError("Status must be approved, rejected or under_review")
    return decide(db, actor, submission_id, document_id, target, remarks, expected_version)


def resubmit_document(
    db: Session,
    actor: User,
    submission_id: str,
    document_id: str,
    filename: str,
    content: bytes,
    mime_type: str | None = None,
    remarks: str = "",
) -> SubmissionDocument:
    submission, doc = get_document(db, submission_id, document_id)
    if actor.role != "vendor" or submission.vendor_id != actor.id:
        raise AuthorizationError("Only the submitting vendor can resubmit this document")
    if doc.status != DocumentStatus.REJECTED.value:
        raise ValidationError("Only rejected documents can be resubmitted")

    row = add_file(db, doc, filename, content, mime_type)
    now = utc_now()
    doc.status = DocumentStatus.RESUBMITTED.value
    doc.updated_at = now
    submission.updated_at = now
    note = (remarks or "").strip()
    if note:
        _add_remark(doc, actor, DocumentStatus.RESUBMITTED.value, note, now)
    record_activity(db, actor=actor, action="document_resubmitted", entity_type="document",
                    entity_id=doc.id, details={"submission_id": submission.id, "filename": filename})

    events = [NotificationEvent(
        type="document_status",
        recipient_id=submission.vendor_id,
        sender_id=actor.id,
        title="Document Resubmitted",
        message=f'Your document "{doc.title}" was resubmitted and is awaiting review.',
        submission_id=submission.id,
        document_id=doc.id,
        priority="low",
        timestamp=now,
    )]
    if actor.assigned_consultant_id:
        events.append(NotificationEvent(
            type="document_resubmission",
            recipient_id=actor.assigned_consultant_id,
            sender_id=actor.id,
            title="Document Resubmitted",
            message=f'{actor.name} resubmitted "{doc.title}" for {submission.period}',
            submission_id=submission.id,
            document_id=doc.id,
            timestamp=now,
        ))
    try:
        return _finish(db, doc, events)
    except VendorHubError:
        discard_file(row.stored_path)
        raise
