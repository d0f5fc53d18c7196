import pytest

from conftest import make_user
from vendorhub.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from vendorhub.models.activity import ActivityLog
from vendorhub.services import activity_service, user_service
from vendorhub.utils.security import verify_password


class TestUserDirectory:
    def test_setup_first_admin_once(self, db):
        assert not user_service.is_initialized(db)
        admin = user_service.setup_first_admin(db, "Root", "ROOT@example.com", "long-password")
        assert admin.email == "root@example.com"
        assert user_service.is_initialized(db)
        with pytest.raises(ConflictError):
            user_service.setup_first_admin(db, "Again", "again@example.com", "long-password")

    def test_setup_requires_long_password(self, db):
        with pytest.raises(ValidationError):
            user_service.setup_first_admin(db, "Root", "root@example.com", "short")

    def test_create_user_generates_password(self, db, people):
        user, generated = user_service.create_user(
            db, people["admin"], name="New Vendor", email="nv@example.com", role="vendor"
        )
        assert len(generated) == 16
        assert verify_password(user.password_hash, generated)

    def test_create_user_with_password_returns_none(self, db, people):
        _, generated = user_service.create_user(
            db, people["admin"], name="C", email="c@example.com", role="consultant", password="password-123"
        )
        assert generated is None

    def test_duplicate_email_conflicts(self, db, people):
        user_service.create_user(db, people["admin"], name="A", email="dup@example.com", role="vendor")
        with pytest.raises(ConflictError):
            user_service.create_user(db, people["admin"], name="B", email="DUP@example.com", role="vendor")

    def test_invalid_role(self, db, people):
        with pytest.raises(ValidationError):
            user_service.create_user(db, people["admin"], name="A", email="a@example.com", role="owner")

    def test_assign_consultant_checks_role(self, db, people):
        admin, vendor = people["admin"], people["vendor"]
        other_vendor = make_user(db, "vendor", "Other")
        with pytest.raises(ValidationError):
            user_service.assign_consultant(db, admin, vendor.id, other_vendor.id)
        with pytest.raises(NotFoundError):
            user_service.assign_consultant(db, admin, vendor.id, "missing")
        with pytest.raises(NotFoundError):
            user_service.assign_consultant(db, admin, people["consultant"].id, people["consultant"].id)

    def test_assign_consultant(self, db, people):
        admin, vendor = people["admin"], people["vendor"]
        new_consultant = make_user(db, "consultant", "New Consultant")
        updated = user_service.assign_consultant(db, admin, vendor.id, new_consultant.id)
        assert updated.assigned_consultant_id == new_consultant.id
        assert user_service.consultant_of_vendor(db, vendor, vendor.id).id == new_consultant.id

        entry = db.query(ActivityLog).filter(ActivityLog.action == "consultant_assigned").one()
        details = activity_service.decode_details(entry)
        assert details["previous_consultant_id"] == people["consultant"].id

    def test_role_change_drops_assignments(self, db, people):
        consultant, vendor = people["consultant"], people["vendor"]
        user_service.update_user(db, people["admin"], consultant.id, {"role": "vendor"})
        db.refresh(vendor)
        assert vendor.assigned_consultant_id is None

    def test_consultant_sees_only_own_vendors(self, db, people):
        consultant = people["consultant"]
        make_user(db, "vendor", "Unassigned Vendor")
        vendors = user_service.list_vendors(db, consultant)
        assert [v.id for v in vendors] == [people["vendor"].id]
        assert len(user_service.list_vendors(db, people["admin"])) == 2

    def test_vendors_of_other_consultant_forbidden(self, db, people):
        other = make_user(db, "consultant", "Other")
        with pytest.raises(AuthorizationError):
            user_service.vendors_of_consultant(db, other, people["consultant"].id)

    def test_get_user_permissions(self, db, people):
        vendor, consultant = people["vendor"], people["consultant"]
        assert user_service.get_user_for(db, consultant, vendor.id).id == vendor.id
        assert user_service.get_user_for(db, vendor, consultant.id).id == consultant.id
        with pytest.raises(AuthorizationError):
            user_service.get_user_for(db, vendor, people["admin"].id)

    def test_list_users_search_and_paging(self, db, people):
        users, total = user_service.list_users(db, search="acme")
        assert total == 1
        assert users[0].id == people["vendor"].id
        page, total = user_service.list_users(db, page=2, per_page=2)
        assert total == 3
        assert len(page) == 1

    def test_cannot_delete_self(self, db, people):
        with pytest.raises(ValidationError):
            user_service.delete_user(db, people["admin"], people["admin"].id)

    def test_export_csv(self, db, people):
        content = user_service.export_users_csv(db, "vendor")
        lines = content.strip().splitlines()
        assert lines[0].startswith("id,name,email,role")
        assert len(lines) == 2
        assert "Vic Vendor" in lines[1]
        with pytest.raises(ValidationError):
            user_service.export_users_csv(db, "admin")


class TestActivityLog:
    def test_stats_and_filters(self, db, people):
        admin = people["admin"]
        user_service.set_active(db, admin, people["vendor"].id, False)
        user_service.set_active(db, admin, people["vendor"].id, True)

        stats = activity_service.activity_stats(db)
        assert stats["total"] == 2
        assert stats["last_24_hours"] == 2
        assert stats["by_action"] == {"user_deactivated": 1, "user_activated": 1}
        assert stats["by_role"] == {"admin": 2}

        logs, total = activity_service.list_activity(db, action="user_activated")
        assert total == 1
        assert logs[0].entity_id == people["vendor"].id
