"""
Dashboard and per-role analytics.

All functions are read-only. Rates are whole percentages rounded half up,
and every time series is zero-filled so charts get a fixed number of points.
"""
import math
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from vendorhub.models.document import SubmissionDocument
from vendorhub.models.submission import Submission
from vendorhub.models.user import User
from vendorhub.services.status_service import (
    AWAITING_REVIEW,
    STATUS_LABELS,
    DocumentStatus,
    normalize_status,
)
from vendorhub.utils.dates import parse_timestamp

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
MONTHS_IN_SERIES = 6
DAYS_IN_SERIES = 7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(part / total * 100)


def average_response_hours(pairs: list[tuple[str, str]]) -> int:
    """Mean hours between submission and review over (created_at, review_date) pairs."""
    hours = []
    for created_at, reviewed_at in pairs:
        start, end = parse_timestamp(created_at), parse_timestamp(reviewed_at)
        if start and end:
            hours.append((end - start).total_seconds() / 3600)
    if not hours:
        return 0
    return round_half_up(sum(hours) / len(hours))


def _month_keys(today: date, count: int) -> list[tuple[int, int]]:
    year, month = today.year, today.month
    keys = []
    for _ in range(count):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def get_dashboard_analytics(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    today = now.date()

    role_counts = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    active_users = db.query(User).filter(User.is_active.is_(True)).count()
    pending_approvals = (
        db.query(User)
        .filter(User.role == "vendor", User.requires_login_approval.is_(True))
        .count()
    )

    docs = db.query(SubmissionDocument.status, SubmissionDocument.created_at).all()
    by_status = Counter(normalize_status(d.status) for d in docs)

    months = _month_keys(today, MONTHS_IN_SERIES)
    per_month = Counter()
    for d in docs:
        created = parse_timestamp(d.created_at)
        if created:
            per_month[(created.year, created.month)] += 1

    first_day = today - timedelta(days=DAYS_IN_SERIES - 1)
    days = {(first_day + timedelta(days=i)).isoformat(): Counter() for i in range(DAYS_IN_SERIES)}
    for user in db.query(User.role, User.created_at).filter(User.created_at >= first_day.isoformat()):
        day = user.created_at[:10]
        if day in days:
            days[day][user.role] += 1

    return {
        "total_vendors": role_counts.get("vendor", 0),
        "total_consultants": role_counts.get("consultant", 0),
        "total_documents": len(docs),
        "active_users": active_users,
        "pending_approvals": pending_approvals,
        "compliance_rate": percentage(by_status[DocumentStatus.APPROVED], len(docs)),
        "documents_by_status": [
            {"name": STATUS_LABELS[s], "value": by_status[s]} for s in DocumentStatus
        ],
        "documents_by_month": [
            {"month": f"{MONTH_ABBR[m - 1]} {y}", "count": per_month[(y, m)]} for y, m in months
        ],
        "user_activity": [
            {
                "date": day,
                "vendors": counts["vendor"],
                "consultants": counts["consultant"],
                "admins": counts["admin"],
            }
            for day, counts in days.items()
        ],
    }


def _documents_by_vendor(db: Session) -> dict[str, list[SubmissionDocument]]:
    rows = (
        db.query(Submission.vendor_id, SubmissionDocument)
        .join(SubmissionDocument, SubmissionDocument.submission_id == Submission.id)
        .all()
    )
    grouped = defaultdict(list)
    for vendor_id, doc in rows:
        grouped[vendor_id].append(doc)
    return grouped


def vendor_metrics(vendor: User, docs: list[SubmissionDocument]) -> dict:
    statuses = Counter(normalize_status(d.status) for d in docs)
    total = len(docs)
    last_activity = max((d.updated_at for d in docs), default=vendor.updated_at)
    return {
        "total_documents": total,
        "approved_documents": statuses[DocumentStatus.APPROVED],
        "pending_documents": sum(statuses[s] for s in AWAITING_REVIEW),
        "rejected_documents": statuses[DocumentStatus.REJECTED],
        "compliance_rate": percentage(statuses[DocumentStatus.APPROVED], total),
        "last_activity": last_activity,
    }


def get_vendor_analytics(db: Session) -> list[tuple[User, dict]]:
    by_vendor = _documents_by_vendor(db)
    vendors = db.query(User).filter(User.role == "vendor").order_by(User.name).all()
    return [(v, vendor_metrics(v, by_vendor.get(v.id, []))) for v in vendors]


def consultant_metrics(db: Session, consultant: User) -> dict:
    assigned = (
        db.query(User)
        .filter(User.role == "vendor", User.assigned_consultant_id == consultant.id)
        .count()
    )
    reviewed = (
        db.query(SubmissionDocument)
        .filter(
            SubmissionDocument.reviewer_id == consultant.id,
            SubmissionDocument.review_date.isnot(None),
        )
        .all()
    )
    statuses = Counter(normalize_status(d.status) for d in reviewed)
    approved = statuses[DocumentStatus.APPROVED]
    return {
        "assigned_vendors": assigned,
        "processed_documents": len(reviewed),
        "approved_documents": approved,
        "rejected_documents": statuses[DocumentStatus.REJECTED],
        "approval_rate": percentage(approved, len(reviewed)),
        "avg_response_time": average_response_hours([(d.created_at, d.review_date) for d in reviewed]),
    }


def get_consultant_analytics(db: Session) -> list[tuple[User, dict]]:
    consultants = db.query(User).filter(User.role == "consultant").order_by(User.name).all()
    return [(c, consultant_metrics(db, c)) for c in consultants]
