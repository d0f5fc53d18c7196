"""
Notification dispatcher.

Events are persisted as Notification rows inside the caller's transaction and
handed to the registered transports only after that transaction commits, so a
recipient is never told about a decision that was rolled back. Delivery
guarantees (retry, fan-out, sockets) belong to the transports.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from vendorhub.database import commit
from vendorhub.errors import NotFoundError
from vendorhub.models.notification import Notification
from vendorhub.models.user import User
from vendorhub.utils.dates import utc_now

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high", "urgent")


@dataclass(frozen=True)
class NotificationEvent:
    type: str
    recipient_id: str
    title: str
    message: str
    submission_id: str | None = None
    document_id: str | None = None
    priority: str = "medium"
    sender_id: str | None = None
    timestamp: str = field(default_factory=utc_now)

    @property
    def related_document_ref(self) -> dict | None:
        if self.submission_id is None and self.document_id is None:
            return None
        return {"submissionId": self.submission_id, "documentId": self.document_id}


Transport = Callable[[NotificationEvent], None]


def log_transport(event: NotificationEvent) -> None:
    logger.info(
        "notification type=%s recipient=%s priority=%s ref=%s",
        event.type, event.recipient_id, event.priority, event.related_document_ref,
    )


class NotificationDispatcher:
    def __init__(self):
        self._transports: list[Transport] = [log_transport]

    def add_transport(self, transport: Transport):
        self._transports.append(transport)

    def remove_transport(self, transport: Transport):
        if transport in self._transports:
            self._transports.remove(transport)

    def stage(self, db: Session, event: NotificationEvent) -> Notification:
        """Persist the event in the current unit of work (no commit)."""
        row = Notification(
            id=str(uuid.uuid4()),
            recipient_id=event.recipient_id,
            sender_id=event.sender_id,
            type=event.type,
            title=event.title,
            message=event.message,
            related_submission_id=event.submission_id,
            related_document_id=event.document_id,
            priority=event.priority,
            is_read=False,
            created_at=event.timestamp,
        )
        db.add(row)
        return row

    def deliver(self, events: list[NotificationEvent]):
        """Hand committed events to every transport; one failing transport does not stop the rest."""
        for event in events:
            for transport in list(self._transports):
                try:
                    transport(event)
                except Exception:
                    logger.exception("Notification transport %r failed for %s", transport, event.type)


dispatcher = NotificationDispatcher()


# --- Inbox ---

def list_notifications(
    db: Session, user: User, *, unread_only: bool = False, page: int = 1, per_page: int = 20
) -> tuple[list[Notification], int, int]:
    base = db.query(Notification).filter(Notification.recipient_id == user.id)
    unread = base.filter(Notification.is_read.is_(False)).count()
    query = base.filter(Notification.is_read.is_(False)) if unread_only else base
    total = query.count()
    items = (
        query.order_by(Notification.created_at.desc(), Notification.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total, unread


def _own_notification(db: Session, user: User, notification_id: str) -> Notification:
    row = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.recipient_id == user.id)
        .first()
    )
    if not row:
        raise NotFoundError("Notification not found")
    return row


def mark_read(db: Session, user: User, notification_id: str) -> Notification:
    row = _own_notification(db, user, notification_id)
    row.is_read = True
    commit(db)
    return row


def mark_all_read(db: Session, user: User) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == user.id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    commit(db)
    return updated


def delete_notification(db: Session, user: User, notification_id: str):
    db.delete(_own_notification(db, user, notification_id))
    commit(db)
