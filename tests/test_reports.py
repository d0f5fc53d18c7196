from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_user
from vendorhub.errors import AuthorizationError, ValidationError
from vendorhub.models.notification import Notification
from vendorhub.services import analytics_service, report_service, review_service, submission_service
from vendorhub.utils.dates import format_timestamp

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def _submit(db, vendor, titles, period="October 2026", document_type="compliance"):
    return submission_service.create_submission(
        db, vendor, documents=[{"title": t, "document_type": document_type} for t in titles], period=period
    )


def _age(db, doc, days):
    doc.created_at = format_timestamp(NOW - timedelta(days=days))
    db.commit()


class TestNumerics:
    @pytest.mark.parametrize("part,total,expected", [
        (0, 0, 0),
        (5, 0, 0),
        (3, 4, 75),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds up
        (4, 4, 100),
    ])
    def test_percentage(self, part, total, expected):
        assert analytics_service.percentage(part, total) == expected

    def test_average_response_hours(self):
        pairs = [
            ("2026-10-01T00:00:00Z", "2026-10-01T10:00:00Z"),
            ("2026-10-01T00:00:00Z", "2026-10-01T15:00:00Z"),
        ]
        assert analytics_service.average_response_hours(pairs) == 13  # 12.5 rounds up
        assert analytics_service.average_response_hours([]) == 0

    @pytest.mark.parametrize("days,bucket", [
        (-2, "less_than_7_days"),
        (0, "less_than_7_days"),
        (6, "less_than_7_days"),
        (7, "7_to_14_days"),
        (14, "7_to_14_days"),
        (15, "15_to_30_days"),
        (30, "15_to_30_days"),
        (31, "more_than_30_days"),
    ])
    def test_aging_bucket_boundaries(self, days, bucket):
        assert report_service.aging_bucket(days) == bucket


class TestAgingReport:
    def test_empty(self, db):
        report = report_service.generate_aging_report(db, now=NOW)
        assert report["summary"]["total_documents"] == 0
        assert set(report["summary"]["by_status"].values()) == {0}
        assert all(b["total"] == 0 for b in report["summary"]["by_aging"].values())
        assert all(v == [] for v in report["vendors_by_aging"].values())

    def test_buckets_sum_to_total(self, db, people):
        vendor = people["vendor"]
        submission = _submit(db, vendor, ["A", "B", "C", "D"])
        for doc, days in zip(submission.documents, (1, 10, 20, 45)):
            _age(db, doc, days)

        report = report_service.generate_aging_report(db, now=NOW)
        summary = report["summary"]
        assert summary["total_documents"] == 4
        assert sum(b["total"] for b in summary["by_aging"].values()) == 4
        assert summary["by_status"]["pending"] == 4
        for bucket in report_service.AGING_BUCKETS:
            assert summary["by_aging"][bucket]["total"] == 1
            [entry] = report["vendors_by_aging"][bucket]
            assert entry["vendor"]["id"] == vendor.id
            assert len(report["documents_by_aging"][bucket]["pending"]) == 1


class TestDocumentStatusReport:
    def test_vendor_without_documents(self, db, people):
        result = report_service.generate_document_status_report(db, vendors=[people["vendor"].id])
        assert result["summary"] == {"total": 0, "by_status": {}, "by_type": {}, "by_vendor": []}
        assert result["documents"] == []

    def test_filters_combine(self, db, people):
        vendor, consultant = people["vendor"], people["consultant"]
        other = make_user(db, "vendor", "Other Vendor", consultant=consultant)
        sub = _submit(db, vendor, ["Permit", "Insurance"])
        _submit(db, other, ["Permit"], document_type="license")
        permit = sub.documents[0]
        submission_service.attach_file(db, vendor, sub.id, permit.id, "p.pdf", b"p")
        review_service.approve_document(db, consultant, sub.id, permit.id, "ok")

        result = report_service.generate_document_status_report(db, statuses=["accepted"])
        assert result["summary"]["total"] == 1
        assert result["summary"]["by_status"] == {"approved": 1}
        [rollup] = result["summary"]["by_vendor"]
        assert rollup["vendor_id"] == vendor.id
        assert result["documents"][0]["reviewer"]["id"] == consultant.id

        by_type = report_service.generate_document_status_report(db, document_types=["license"])
        assert by_type["summary"]["by_type"] == {"license": 1}

        both = report_service.generate_document_status_report(db, vendors=[vendor.id], statuses=["pending"])
        assert both["summary"]["total"] == 1

    def test_date_range_is_inclusive(self, db, people):
        sub = _submit(db, people["vendor"], ["Old", "New"])
        old, new = sub.documents
        old.created_at = "2026-09-01T08:00:00Z"
        new.created_at = "2026-10-05T23:30:00Z"
        db.commit()

        result = report_service.generate_document_status_report(
            db, start_date="2026-10-01", end_date="2026-10-05"
        )
        assert [d["title"] for d in result["documents"]] == ["New"]

    def test_invalid_inputs(self, db):
        with pytest.raises(ValidationError):
            report_service.generate_document_status_report(db, statuses=["archived"])
        with pytest.raises(ValidationError):
            report_service.generate_document_status_report(db, start_date="not-a-date")
        with pytest.raises(ValidationError):
            report_service.generate_document_status_report(db, start_date="2026-10-05", end_date="2026-10-01")


class TestAnalytics:
    def test_dashboard_series_are_zero_filled(self, db, people):
        _submit(db, people["vendor"], ["A", "B"])
        data = analytics_service.get_dashboard_analytics(db, now=datetime.now(timezone.utc))

        assert data["total_vendors"] == 1
        assert data["total_consultants"] == 1
        assert data["total_documents"] == 2
        assert data["compliance_rate"] == 0
        assert len(data["documents_by_month"]) == 6
        assert data["documents_by_month"][-1]["count"] == 2
        assert len(data["user_activity"]) == 7
        assert data["user_activity"][-1] == {
            "date": datetime.now(timezone.utc).date().isoformat(), "vendors": 1, "consultants": 1, "admins": 1,
        }
        by_name = {s["name"]: s["value"] for s in data["documents_by_status"]}
        assert by_name == {"Pending": 2, "Under Review": 0, "Approved": 0, "Rejected": 0, "Resubmitted": 0}

    def test_month_labels_cross_year(self, db):
        data = analytics_service.get_dashboard_analytics(db, now=datetime(2026, 2, 10, tzinfo=timezone.utc))
        assert [m["month"] for m in data["documents_by_month"]] == [
            "Sep 2025", "Oct 2025", "Nov 2025", "Dec 2025", "Jan 2026", "Feb 2026",
        ]

    def test_vendor_and_consultant_metrics(self, db, people):
        vendor, consultant = people["vendor"], people["consultant"]
        sub = _submit(db, vendor, ["A", "B", "C", "D"])
        for i, doc in enumerate(sub.documents[:3]):
            submission_service.attach_file(db, vendor, sub.id, doc.id, f"{i}.pdf", f"{i}".encode())
        a, b, c, _ = sub.documents
        review_service.approve_document(db, consultant, sub.id, a.id, "ok")
        review_service.approve_document(db, consultant, sub.id, b.id, "ok")
        review_service.approve_document(db, consultant, sub.id, c.id, "ok")

        [(v, metrics)] = analytics_service.get_vendor_analytics(db)
        assert v.id == vendor.id
        assert metrics["total_documents"] == 4
        assert metrics["approved_documents"] == 3
        assert metrics["pending_documents"] == 1
        assert metrics["compliance_rate"] == 75

        [(c_user, c_metrics)] = analytics_service.get_consultant_analytics(db)
        assert c_user.id == consultant.id
        assert c_metrics["assigned_vendors"] == 1
        assert c_metrics["processed_documents"] == 3
        assert c_metrics["approval_rate"] == 100
        assert c_metrics["avg_response_time"] >= 0


class TestReminders:
    def test_only_vendors_with_open_documents(self, db, people):
        vendor = people["vendor"]
        idle = make_user(db, "vendor", "Idle Vendor")
        make_user(db, "vendor", "Inactive Vendor", is_active=False)
        _submit(db, vendor, ["A", "B"])

        result = report_service.send_vendor_reminders(db, people["admin"])
        assert result["total_vendors"] == 2
        assert result["reminders_sent"] == 1
        assert result["skipped"] == 1

        reminders = db.query(Notification).filter(Notification.type == "document_reminder").all()
        assert [n.recipient_id for n in reminders] == [vendor.id]
        assert not db.query(Notification).filter(Notification.recipient_id == idle.id).count()


class TestSavedReports:
    def test_visibility_and_ownership(self, db, people):
        admin, consultant = people["admin"], people["consultant"]
        private = report_service.create_report(db, admin, name="Private", report_type="aging")
        public = report_service.create_report(db, admin, name="Public", report_type="aging", is_public=True)

        visible, total = report_service.list_reports(db, consultant)
        assert total == 1
        assert visible[0].id == public.id
        with pytest.raises(AuthorizationError):
            report_service.get_report_for(db, consultant, private.id)
        with pytest.raises(AuthorizationError):
            report_service.update_report(db, consultant, public.id, {"name": "Hijacked"})

    def test_update_round_trips_json(self, db, people):
        report = report_service.create_report(
            db, people["consultant"], name="Mine", report_type="document_status", filters={"statuses": ["approved"]}
        )
        updated = report_service.update_report(
            db, people["consultant"], report.id, {"filters": {"vendors": ["v1"]}, "is_public": True}
        )
        decoded = report_service.decode_report(updated)
        assert decoded["filters"] == {"vendors": ["v1"]}
        assert decoded["is_public"] is True

    def test_invalid_type(self, db, people):
        with pytest.raises(ValidationError):
            report_service.create_report(db, people["admin"], name="X", report_type="pdf_export")
