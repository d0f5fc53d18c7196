from typing import Any

from vendorhub.schemas.common import APIModel
from vendorhub.schemas.user import UserResponse


class VendorRef(APIModel):
    id: str
    name: str
    company: str | None = None
    email: str | None = None


class UserRef(APIModel):
    id: str
    name: str


class DocumentRef(APIModel):
    id: str
    title: str
    document_type: str
    status: str
    submission_id: str
    vendor_id: str
    created_at: str


# --- Aging report ---

class AgingVendorEntry(APIModel):
    vendor: VendorRef
    counts: dict[str, int]


class AgingSummary(APIModel):
    total_documents: int
    by_status: dict[str, int]
    by_aging: dict[str, dict[str, int]]


class AgingReport(APIModel):
    generated_at: str
    summary: AgingSummary
    vendors_by_aging: dict[str, list[AgingVendorEntry]]
    documents_by_aging: dict[str, dict[str, list[DocumentRef]]]


# --- Document status report ---

class DocumentStatusReportRequest(APIModel):
    start_date: str | None = None
    end_date: str | None = None
    vendors: list[str] = []
    document_types: list[str] = []
    statuses: list[str] = []
    save_report: bool = False
    report_name: str | None = None
    description: str | None = None
    is_public: bool = False


class VendorStatusRollup(APIModel):
    vendor_id: str
    name: str
    company: str | None = None
    email: str | None = None
    total_documents: int
    counts: dict[str, int]


class StatusReportSummary(APIModel):
    total: int
    by_status: dict[str, int]
    by_type: dict[str, int]
    by_vendor: list[VendorStatusRollup]


class StatusReportRow(APIModel):
    id: str
    title: str
    status: str
    document_type: str
    submission_id: str
    period: str
    vendor: VendorRef
    reviewer: UserRef | None = None
    created_at: str
    updated_at: str
    review_date: str | None = None


class DocumentStatusReport(APIModel):
    generated_at: str
    filters: dict[str, Any]
    summary: StatusReportSummary
    documents: list[StatusReportRow]
    report_id: str | None = None


# --- Dashboard and per-role analytics ---

class StatusSlice(APIModel):
    name: str
    value: int


class MonthCount(APIModel):
    month: str
    count: int


class DayActivity(APIModel):
    date: str
    vendors: int = 0
    consultants: int = 0
    admins: int = 0


class DashboardAnalytics(APIModel):
    total_vendors: int
    total_consultants: int
    total_documents: int
    active_users: int
    pending_approvals: int
    compliance_rate: int
    documents_by_status: list[StatusSlice]
    documents_by_month: list[MonthCount]
    user_activity: list[DayActivity]


class VendorMetrics(APIModel):
    total_documents: int
    approved_documents: int
    pending_documents: int
    rejected_documents: int
    compliance_rate: int
    last_activity: str


class VendorAnalyticsEntry(APIModel):
    vendor: UserResponse
    analytics: VendorMetrics


class ConsultantMetrics(APIModel):
    assigned_vendors: int
    processed_documents: int
    approved_documents: int
    rejected_documents: int
    approval_rate: int
    avg_response_time: int


class ConsultantAnalyticsEntry(APIModel):
    consultant: UserResponse
    metrics: ConsultantMetrics


# --- Saved reports ---

class ReportCreate(APIModel):
    name: str
    description: str | None = None
    type: str
    parameters: dict[str, Any] = {}
    filters: dict[str, Any] = {}
    is_public: bool = False


class ReportUpdate(APIModel):
    name: str | None = None
    description: str | None = None
    type: str | None = None
    parameters: dict[str, Any] | None = None
    filters: dict[str, Any] | None = None
    is_public: bool | None = None


class ReportResponse(APIModel):
    id: str
    name: str
    description: str | None
    type: str
    parameters: dict[str, Any]
    filters: dict[str, Any]
    created_by: str | None
    is_public: bool
    created_at: str
    updated_at: str


class ReportListResponse(APIModel):
    reports: list[ReportResponse]
    total: int
    page: int
    per_page: int


class ReminderResult(APIModel):
    total_vendors: int
    reminders_sent: int
    skipped: int
    details: list[dict[str, Any]]
