import logging
import uuid
from pathlib import Path

from sqlalchemy.orm import Session

from vendorhub.database import commit
from vendorhub.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError, VendorHubError
from vendorhub.models.document import DocumentFile, DocumentRemark, SubmissionDocument
from vendorhub.models.submission import Submission
from vendorhub.models.user import User
from vendorhub.services.activity_service import record_activity
from vendorhub.services.document_service import (
    content_hash,
    discard_file,
    get_file_full_path,
    hash_stored_file,
    store_file,
)
from vendorhub.services.notification_service import NotificationEvent, dispatcher
from vendorhub.services.status_service import DocumentStatus, normalize_submission_status
from vendorhub.services.user_service import can_view_submission
from vendorhub.utils.dates import utc_now

logger = logging.getLogger(__name__)

# New files may only be attached while a document is still open; a rejected
# document takes new files through the resubmission flow instead.
ATTACHABLE_STATUSES = {DocumentStatus.PENDING.value, DocumentStatus.UNDER_REVIEW.value}


def period_label(period: str | None, month: str | None, year: int | None) -> str:
    if month and year:
        return f"{month} {year}"
    if period and period.strip():
        return period.strip()
    raise ValidationError("Either a period or a month and year is required")


def _require_vendor(actor: User):
    if actor.role != "vendor":
        raise AuthorizationError("Only vendors can submit documents")


def _new_documents(submission: Submission, documents: list[dict], now: str) -> list[SubmissionDocument]:
    if not documents:
        raise ValidationError("At least one document is required")
    position = len(submission.documents)
    created = []
    for item in documents:
        title = (item.get("title") or "").strip()
        document_type = (item.get("document_type") or "").strip()
        if not title or not document_type:
            raise ValidationError("Each document needs a title and a document type")
        doc = SubmissionDocument(
            id=str(uuid.uuid4()),
            title=title,
            document_type=document_type,
            status=DocumentStatus.PENDING.value,
            position=position,
            created_at=now,
            updated_at=now,
        )
        submission.documents.append(doc)
        created.append(doc)
        position += 1
    return created


def _submission_event(actor: User, submission: Submission, count: int) -> NotificationEvent | None:
    if not actor.assigned_consultant_id:
        return None
    return NotificationEvent(
        type="document_submission",
        recipient_id=actor.assigned_consultant_id,
        sender_id=actor.id,
        title="New Document Submission",
        message=f"{actor.name} submitted {count} document(s) for {submission.period}",
        submission_id=submission.id,
    )


def create_submission(
    db: Session,
    actor: User,
    *,
    documents: list[dict],
    period: str | None = None,
    month: str | None = None,
    year: int | None = None,
) -> Submission:
    """
    Record a vendor's documents for a period.

    A second submission for a period the vendor already has appends to the
    existing submission rather than opening a parallel one.
    """
    _require_vendor(actor)
    label = period_label(period, month, year)
    now = utc_now()

    submission = (
        db.query(Submission)
        .filter(Submission.vendor_id == actor.id, Submission.period == label)
        .first()
    )
    if submission is None:
        submission = Submission(
            id=str(uuid.uuid4()),
            vendor_id=actor.id,
            period=label,
            month=month,
            year=year,
            created_at=now,
            updated_at=now,
        )
        db.add(submission)
    else:
        submission.updated_at = now

    created = _new_documents(submission, documents, now)
    record_activity(db, actor=actor, action="submission_created", entity_type="submission",
                    entity_id=submission.id, details={"period": label, "documents": len(created)})
    event = _submission_event(actor, submission, len(created))
    if event:
        dispatcher.stage(db, event)
    commit(db)
    db.refresh(submission)
    if event:
        dispatcher.deliver([event])
    logger.info("Vendor %s submitted %d document(s) for %s", actor.id, len(created), label)
    return submission


def add_documents(db: Session, actor: User, submission_id: str, documents: list[dict]) -> Submission:
    _require_vendor(actor)
    submission = get_submission(db, submission_id)
    if submission.vendor_id != actor.id:
        raise AuthorizationError("Not authorized to modify this submission")

    now = utc_now()
    created = _new_documents(submission, documents, now)
    submission.updated_at = now
    record_activity(db, actor=actor, action="documents_added", entity_type="submission",
                    entity_id=submission.id, details={"documents": len(created)})
    event = _submission_event(actor, submission, len(created))
    if event:
        dispatcher.stage(db, event)
    commit(db)
    db.refresh(submission)
    if event:
        dispatcher.deliver([event])
    return submission


def get_submission(db: Session, submission_id: str) -> Submission:
    submission = db.query(Submission).filter(Submission.id == submission_id).first()
    if not submission:
        raise NotFoundError("Submission not found")
    return submission


def get_submission_for(db: Session, actor: User, submission_id: str) -> Submission:
    submission = get_submission(db, submission_id)
    if not can_view_submission(actor, submission):
        raise AuthorizationError("Not authorized to view this submission")
    return submission


def get_document(db: Session, submission_id: str, document_id: str) -> tuple[Submission, SubmissionDocument]:
    submission = get_submission(db, submission_id)
    doc = (
        db.query(SubmissionDocument)
        .filter(SubmissionDocument.id == document_id, SubmissionDocument.submission_id == submission.id)
        .first()
    )
    if not doc:
        raise NotFoundError("Document not found in submission")
    return submission, doc


def list_submissions(
    db: Session,
    actor: User,
    *,
    vendor_id: str | None = None,
    status: str | None = None,
    period: str | None = None,
    page: int = 1,
    per_page: int = 10,
) -> tuple[list[Submission], int]:
    query = db.query(Submission)
    if actor.role == "vendor":
        query = query.filter(Submission.vendor_id == actor.id)
    elif actor.role == "consultant":
        query = query.join(User, Submission.vendor_id == User.id).filter(
            User.assigned_consultant_id == actor.id
        )
    if vendor_id:
        query = query.filter(Submission.vendor_id == vendor_id)
    if period:
        query = query.filter(Submission.period == period)
    query = query.order_by(Submission.created_at.desc(), Submission.id)

    if not status:
        total = query.count()
        items = query.offset((page - 1) * per_page).limit(per_page).all()
        return items, total

    # Status is derived from the documents, so it is filtered after loading.
    wanted = normalize_submission_status(status).value
    matching = [s for s in query.all() if s.status == wanted]
    start = (page - 1) * per_page
    return matching[start:start + per_page], len(matching)


# --- Files ---

def attach_file(
    db: Session,
    actor: User,
    submission_id: str,
    document_id: str,
    filename: str,
    content: bytes,
    mime_type: str | None = None,
) -> DocumentFile:
    submission, doc = get_document(db, submission_id, document_id)
    if actor.role != "vendor" or submission.vendor_id != actor.id:
        raise AuthorizationError("Only the submitting vendor can upload files")
    if doc.status not in ATTACHABLE_STATUSES:
        raise ValidationError(f"Cannot attach files to a document that is {doc.status}")

    row = add_file(db, doc, filename, content, mime_type)
    doc.updated_at = row.uploaded_at
    record_activity(db, actor=actor, action="file_uploaded", entity_type="document", entity_id=doc.id,
                    details={"filename": row.original_filename, "size": row.file_size_bytes})
    try:
        commit(db)
    except VendorHubError:
        discard_file(row.stored_path)
        raise
    db.refresh(row)
    return row


def add_file(
    db: Session,
    doc: SubmissionDocument,
    filename: str,
    content: bytes,
    mime_type: str | None = None,
) -> DocumentFile:
    """Store the bytes and stage a DocumentFile row (no commit)."""
    if not content:
        raise ValidationError("Empty file")

    # Check for duplicate before anything touches the disk
    existing = db.query(DocumentFile).filter(
        DocumentFile.document_id == doc.id,
        DocumentFile.file_hash == content_hash(content),
    ).first()
    if existing:
        raise ConflictError("File with identical content already attached to this document")

    stored_path, file_hash, file_size = store_file(doc.submission_id, doc.id, filename, content)

    row = DocumentFile(
        id=str(uuid.uuid4()),
        original_filename=filename or "document.bin",
        stored_path=stored_path,
        file_hash=file_hash,
        file_size_bytes=file_size,
        mime_type=mime_type,
        uploaded_at=utc_now(),
        sequence=len(doc.files),
    )
    doc.files.append(row)
    return row


def get_file_for(
    db: Session, actor: User, submission_id: str, document_id: str, file_id: str
) -> tuple[DocumentFile, Path]:
    submission, doc = get_document(db, submission_id, document_id)
    if not can_view_submission(actor, submission):
        raise AuthorizationError("Not authorized to view this submission")
    row = next((f for f in doc.files if f.id == file_id), None)
    if row is None:
        raise NotFoundError("File not found")
    full_path = get_file_full_path(row.stored_path)
    if not full_path.exists():
        raise NotFoundError("File missing from storage")
    return row, full_path


def verify_file(db: Session, actor: User, submission_id: str, document_id: str, file_id: str) -> dict:
    """Re-hash the stored file and compare against the recorded SHA-256."""
    row, full_path = get_file_for(db, actor, submission_id, document_id, file_id)
    actual = hash_stored_file(full_path)
    if actual != row.file_hash:
        logger.error("Integrity mismatch for file %s (%s)", row.id, row.stored_path)
    return {
        "file_id": row.id,
        "stored_hash": row.file_hash,
        "actual_hash": actual,
        "intact": actual == row.file_hash,
    }


def list_remarks(db: Session, actor: User, submission_id: str, document_id: str) -> list[DocumentRemark]:
    submission, doc = get_document(db, submission_id, document_id)
    if not can_view_submission(actor, submission):
        raise AuthorizationError("Not authorized to view this submission")
    return list(doc.remarks)
