import json
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.orm import Session

from vendorhub.models.activity import ActivityLog
from vendorhub.models.user import User
from vendorhub.utils.dates import format_timestamp, utc_now


def record_activity(
    db: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> ActivityLog:
    """
    Append an activity entry to the caller's unit of work (no commit).
    """
    entry = ActivityLog(
        id=str(uuid.uuid4()),
        actor_id=actor.id if actor else None,
        actor_role=actor.role if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=json.dumps(details, sort_keys=True) if details else None,
        created_at=utc_now(),
    )
    db.add(entry)
    return entry


def list_activity(
    db: Session,
    *,
    action: str | None = None,
    actor_id: str | None = None,
    entity_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[ActivityLog], int]:
    query = db.query(ActivityLog)
    if action:
        query = query.filter(ActivityLog.action == action)
    if actor_id:
        query = query.filter(ActivityLog.actor_id == actor_id)
    if entity_type:
        query = query.filter(ActivityLog.entity_type == entity_type)
    # Stored timestamps are fixed-width ISO strings, so string order is time order.
    if start_date:
        query = query.filter(ActivityLog.created_at >= start_date)
    if end_date:
        query = query.filter(ActivityLog.created_at <= _end_of_day(end_date))

    total = query.count()
    logs = (
        query.order_by(ActivityLog.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return logs, total


def activity_stats(db: Session, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    cutoff = format_timestamp(now - timedelta(hours=24))
    rows = db.query(ActivityLog.action, ActivityLog.actor_role, ActivityLog.created_at).all()
    return {
        "total": len(rows),
        "last_24_hours": sum(1 for r in rows if r.created_at >= cutoff),
        "by_action": dict(Counter(r.action for r in rows)),
        "by_role": dict(Counter(r.actor_role or "system" for r in rows)),
    }


def decode_details(entry: ActivityLog) -> dict | None:
    return json.loads(entry.details) if entry.details else None


def _end_of_day(value: str) -> str:
    return value + "T23:59:59Z" if len(value) == 10 else value
