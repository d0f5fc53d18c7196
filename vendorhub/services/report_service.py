import json
import logging
import uuid
from collections import Counter
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from vendorhub.config import settings
from vendorhub.database import commit
from vendorhub.errors import AuthorizationError, NotFoundError, ValidationError
from vendorhub.models.document import SubmissionDocument
from vendorhub.models.report import Report
from vendorhub.models.submission import Submission
from vendorhub.models.user import User
from vendorhub.services.activity_service import record_activity
from vendorhub.services.notification_service import NotificationEvent, dispatcher
from vendorhub.services.status_service import DocumentStatus, normalize_status, parse_status
from vendorhub.utils.dates import format_timestamp, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

AGING_BUCKETS = ("less_than_7_days", "7_to_14_days", "15_to_30_days", "more_than_30_days")
REPORT_TYPES = ("document_status", "aging", "vendor_analytics", "consultant_analytics", "dashboard")


def aging_bucket(age_days: int) -> str:
    age_days = max(age_days, 0)
    if age_days < 7:
        return "less_than_7_days"
    if age_days <= 14:
        return "7_to_14_days"
    if age_days <= 30:
        return "15_to_30_days"
    return "more_than_30_days"


def _vendor_ref(vendor: User) -> dict:
    return {"id": vendor.id, "name": vendor.name, "company": vendor.company, "email": vendor.email}


def _empty_counts() -> dict[str, int]:
    counts = {s.value: 0 for s in DocumentStatus}
    counts["total"] = 0
    return counts


def _all_documents(db: Session, actor: User | None = None):
    query = (
        db.query(SubmissionDocument, Submission, User)
        .join(Submission, SubmissionDocument.submission_id == Submission.id)
        .join(User, Submission.vendor_id == User.id)
    )
    # Consultants only see the vendors assigned to them
    if actor is not None and actor.role == "consultant":
        query = query.filter(User.assigned_consultant_id == actor.id)
    return query.order_by(SubmissionDocument.created_at).all()


def _check_vendor_scope(db: Session, actor: User | None, vendor_ids: set[str]):
    if actor is None or actor.role != "consultant" or not vendor_ids:
        return
    assigned = {
        row.id for row in db.query(User.id).filter(User.assigned_consultant_id == actor.id)
    }
    if vendor_ids - assigned:
        raise AuthorizationError("Not authorized to report on vendors not assigned to you")


# --- Aging ---

def generate_aging_report(db: Session, now: datetime | None = None, actor: User | None = None) -> dict:
    now = now or datetime.now(timezone.utc)

    by_status = {s.value: 0 for s in DocumentStatus}
    by_aging = {b: _empty_counts() for b in AGING_BUCKETS}
    vendor_counts: dict[str, dict[str, dict]] = {b: {} for b in AGING_BUCKETS}
    documents_by_aging = {b: {s.value: [] for s in DocumentStatus} for b in AGING_BUCKETS}
    total = 0

    for doc, submission, vendor in _all_documents(db, actor):
        status = normalize_status(doc.status).value
        created = parse_timestamp(doc.created_at)
        bucket = aging_bucket((now - created).days)

        total += 1
        by_status[status] += 1
        by_aging[bucket][status] += 1
        by_aging[bucket]["total"] += 1

        entry = vendor_counts[bucket].setdefault(
            vendor.id, {"vendor": _vendor_ref(vendor), "counts": _empty_counts()}
        )
        entry["counts"][status] += 1
        entry["counts"]["total"] += 1

        documents_by_aging[bucket][status].append({
            "id": doc.id,
            "title": doc.title,
            "document_type": doc.document_type,
            "status": status,
            "submission_id": submission.id,
            "vendor_id": vendor.id,
            "created_at": doc.created_at,
        })

    return {
        "generated_at": format_timestamp(now),
        "summary": {"total_documents": total, "by_status": by_status, "by_aging": by_aging},
        "vendors_by_aging": {
            b: sorted(vendor_counts[b].values(), key=lambda e: e["vendor"]["name"]) for b in AGING_BUCKETS
        },
        "documents_by_aging": documents_by_aging,
    }


# --- Document status ---

def _parse_bound(value: str | None, end: bool = False) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parse_timestamp(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc
    if end and len(value.strip()) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59)
    return parsed


def generate_document_status_report(
    db: Session,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    vendors: list[str] | None = None,
    document_types: list[str] | None = None,
    statuses: list[str] | None = None,
    actor: User | None = None,
) -> dict:
    start = _parse_bound(start_date)
    end = _parse_bound(end_date, end=True)
    if start and end and start > end:
        raise ValidationError("start_date must not be after end_date")
    wanted_statuses = {parse_status(s).value for s in statuses or []}
    wanted_vendors = set(vendors or [])
    wanted_types = set(document_types or [])
    _check_vendor_scope(db, actor, wanted_vendors)

    rows = []
    by_status: Counter = Counter()
    by_type: Counter = Counter()
    by_vendor: dict[str, dict] = {}

    for doc, submission, vendor in _all_documents(db, actor):
        status = normalize_status(doc.status).value
        created = parse_timestamp(doc.created_at)
        if start and created < start:
            continue
        if end and created > end:
            continue
        if wanted_vendors and vendor.id not in wanted_vendors:
            continue
        if wanted_types and doc.document_type not in wanted_types:
            continue
        if wanted_statuses and status not in wanted_statuses:
            continue

        by_status[status] += 1
        by_type[doc.document_type] += 1
        rollup = by_vendor.setdefault(vendor.id, {
            "vendor_id": vendor.id,
            "name": vendor.name,
            "company": vendor.company,
            "email": vendor.email,
            "total_documents": 0,
            "counts": {},
        })
        rollup["total_documents"] += 1
        rollup["counts"][status] = rollup["counts"].get(status, 0) + 1

        rows.append({
            "id": doc.id,
            "title": doc.title,
            "status": status,
            "document_type": doc.document_type,
            "submission_id": submission.id,
            "period": submission.period,
            "vendor": _vendor_ref(vendor),
            "reviewer": {"id": doc.reviewer.id, "name": doc.reviewer.name} if doc.reviewer else None,
            "created_at": doc.created_at,
            "updated_at": doc.updated_at,
            "review_date": doc.review_date,
        })

    rows.sort(key=lambda r: r["created_at"], reverse=True)
    return {
        "generated_at": utc_now(),
        "filters": {
            "start_date": start_date,
            "end_date": end_date,
            "vendors": sorted(wanted_vendors),
            "document_types": sorted(wanted_types),
            "statuses": sorted(wanted_statuses),
        },
        "summary": {
            "total": len(rows),
            "by_status": dict(by_status),
            "by_type": dict(by_type),
            "by_vendor": sorted(by_vendor.values(), key=lambda v: v["name"]),
        },
        "documents": rows,
    }


# --- Reminders ---

def send_vendor_reminders(db: Session, actor: User) -> dict:
    """Notify every active vendor that still has documents needing attention."""
    open_statuses = {normalize_status(s).value for s in settings.reminder_statuses}
    vendors = db.query(User).filter(User.role == "vendor", User.is_active.is_(True)).order_by(User.name).all()

    events = []
    details = []
    for vendor in vendors:
        docs = (
            db.query(SubmissionDocument)
            .join(Submission, SubmissionDocument.submission_id == Submission.id)
            .filter(Submission.vendor_id == vendor.id, SubmissionDocument.status.in_(open_statuses))
            .all()
        )
        if not docs:
            details.append({"vendor_id": vendor.id, "name": vendor.name, "sent": False,
                            "reason": "No pending documents found"})
            continue
        counts = Counter(d.status for d in docs)
        summary = ", ".join(f"{counts[s]} {s.replace('_', ' ')}" for s in sorted(counts))
        event = NotificationEvent(
            type="document_reminder",
            recipient_id=vendor.id,
            sender_id=actor.id,
            title="Pending Documents Reminder",
            message=f"You have {len(docs)} document(s) that require your attention ({summary})",
            priority="medium",
        )
        dispatcher.stage(db, event)
        events.append(event)
        details.append({"vendor_id": vendor.id, "name": vendor.name, "sent": True,
                        "documents_count": len(docs), "counts": dict(counts)})

    record_activity(db, actor=actor, action="reminders_sent", entity_type="user",
                    details={"vendors": len(vendors), "sent": len(events)})
    commit(db)
    dispatcher.deliver(events)
    logger.info("Sent %d reminder(s) to %d active vendor(s)", len(events), len(vendors))
    return {
        "total_vendors": len(vendors),
        "reminders_sent": len(events),
        "skipped": len(vendors) - len(events),
        "details": details,
    }


# --- Saved reports ---

def decode_report(report: Report) -> dict:
    return {
        "id": report.id,
        "name": report.name,
        "description": report.description,
        "type": report.type,
        "parameters": json.loads(report.parameters or "{}"),
        "filters": json.loads(report.filters or "{}"),
        "created_by": report.created_by,
        "is_public": report.is_public,
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }


def _validate_type(report_type: str):
    if report_type not in REPORT_TYPES:
        raise ValidationError(f"Invalid report type. Must be one of: {list(REPORT_TYPES)}")


def _get_report(db: Session, report_id: str) -> Report:
    report = db.query(Report).filter(Report.id == report_id).first()
    if not report:
        raise NotFoundError("Report not found")
    return report


def _check_owner(actor: User, report: Report):
    if actor.role != "admin" and report.created_by != actor.id:
        raise AuthorizationError("Not authorized to modify this report")


def list_reports(
    db: Session, actor: User, *, report_type: str | None = None, page: int = 1, per_page: int = 10
) -> tuple[list[Report], int]:
    query = db.query(Report)
    if actor.role != "admin":
        query = query.filter((Report.is_public.is_(True)) | (Report.created_by == actor.id))
    if report_type:
        query = query.filter(Report.type == report_type)
    total = query.count()
    reports = (
        query.order_by(Report.created_at.desc(), Report.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return reports, total


def get_report_for(db: Session, actor: User, report_id: str) -> Report:
    report = _get_report(db, report_id)
    if actor.role != "admin" and not report.is_public and report.created_by != actor.id:
        raise AuthorizationError("Not authorized to access this report")
    return report


def create_report(
    db: Session,
    actor: User,
    *,
    name: str,
    report_type: str,
    description: str | None = None,
    parameters: dict | None = None,
    filters: dict | None = None,
    is_public: bool = False,
) -> Report:
    if not name or not name.strip():
        raise ValidationError("Report name is required")
    _validate_type(report_type)
    now = utc_now()
    report = Report(
        id=str(uuid.uuid4()),
        name=name.strip(),
        description=description,
        type=report_type,
        parameters=json.dumps(parameters or {}, sort_keys=True),
        filters=json.dumps(filters or {}, sort_keys=True),
        created_by=actor.id,
        is_public=is_public,
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    record_activity(db, actor=actor, action="report_saved", entity_type="report", entity_id=report.id,
                    details={"type": report_type})
    commit(db)
    db.refresh(report)
    return report


def update_report(db: Session, actor: User, report_id: str, changes: dict) -> Report:
    report = _get_report(db, report_id)
    _check_owner(actor, report)
    if changes.get("type") is not None:
        _validate_type(changes["type"])
        report.type = changes["type"]
    if changes.get("name") is not None:
        if not changes["name"].strip():
            raise ValidationError("Report name is required")
        report.name = changes["name"].strip()
    if changes.get("description") is not None:
        report.description = changes["description"]
    if changes.get("parameters") is not None:
        report.parameters = json.dumps(changes["parameters"], sort_keys=True)
    if changes.get("filters") is not None:
        report.filters = json.dumps(changes["filters"], sort_keys=True)
    if changes.get("is_public") is not None:
        report.is_public = changes["is_public"]
    report.updated_at = utc_now()
    commit(db)
    db.refresh(report)
    return report


def delete_report(db: Session, actor: User, report_id: str):
    report = _get_report(db, report_id)
    _check_owner(actor, report)
    record_activity(db, actor=actor, action="report_deleted", entity_type="report", entity_id=report.id)
    db.delete(report)
    commit(db)
