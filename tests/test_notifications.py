import pytest

from conftest import make_user
from vendorhub.errors import NotFoundError
from vendorhub.services import notification_service
from vendorhub.services.notification_service import NotificationDispatcher, NotificationEvent, dispatcher


def _event(recipient, title="Hello", **kwargs):
    return NotificationEvent(type="info", recipient_id=recipient.id, title=title, message="msg", **kwargs)


class TestDispatcher:
    def test_staged_rows_wait_for_commit(self, db, test_db, people):
        vendor = people["vendor"]
        dispatcher.stage(db, _event(vendor))
        other = test_db()
        try:
            items, total, unread = notification_service.list_notifications(other, vendor)
            assert total == 0
            db.commit()
            items, total, unread = notification_service.list_notifications(other, vendor)
            assert total == 1
            assert unread == 1
        finally:
            other.close()

    def test_failing_transport_does_not_stop_others(self, people):
        local = NotificationDispatcher()
        seen = []

        def broken(event):
            raise RuntimeError("socket closed")

        local.add_transport(broken)
        local.add_transport(seen.append)
        local.deliver([_event(people["vendor"])])
        assert len(seen) == 1

    def test_related_document_ref(self, people):
        assert _event(people["vendor"]).related_document_ref is None
        ref = _event(people["vendor"], submission_id="s1", document_id="d1").related_document_ref
        assert ref == {"submissionId": "s1", "documentId": "d1"}


class TestInbox:
    def _seed(self, db, user, count=3):
        for i in range(count):
            dispatcher.stage(db, _event(user, title=f"N{i}"))
        db.commit()

    def test_mark_read_and_unread_filter(self, db, people):
        vendor = people["vendor"]
        self._seed(db, vendor)
        items, total, unread = notification_service.list_notifications(db, vendor)
        assert (total, unread) == (3, 3)

        notification_service.mark_read(db, vendor, items[0].id)
        items, total, unread = notification_service.list_notifications(db, vendor, unread_only=True)
        assert (total, unread) == (2, 2)

        assert notification_service.mark_all_read(db, vendor) == 2
        _, _, unread = notification_service.list_notifications(db, vendor)
        assert unread == 0

    def test_cannot_touch_someone_elses_notification(self, db, people):
        vendor = people["vendor"]
        self._seed(db, vendor, count=1)
        [row], _, _ = notification_service.list_notifications(db, vendor)
        intruder = make_user(db, "vendor", "Intruder")
        with pytest.raises(NotFoundError):
            notification_service.mark_read(db, intruder, row.id)
        with pytest.raises(NotFoundError):
            notification_service.delete_notification(db, intruder, row.id)

    def test_delete(self, db, people):
        vendor = people["vendor"]
        self._seed(db, vendor, count=2)
        items, _, _ = notification_service.list_notifications(db, vendor)
        notification_service.delete_notification(db, vendor, items[0].id)
        _, total, _ = notification_service.list_notifications(db, vendor)
        assert total == 1
