from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.dependencies import get_current_user, require_admin, require_roles
from vendorhub.models.user import User
from vendorhub.schemas.common import ApiResponse, MessageResponse
from vendorhub.schemas.report import (
    AgingReport,
    DocumentStatusReport,
    DocumentStatusReportRequest,
    ReminderResult,
    ReportCreate,
    ReportListResponse,
    ReportResponse,
    ReportUpdate,
)
from vendorhub.services import report_service
from vendorhub.utils.dates import utc_now

router = APIRouter(prefix="/reports", tags=["reports"])

require_staff = require_roles("admin", "consultant")


def _report_to_response(report) -> ReportResponse:
    return ReportResponse(**report_service.decode_report(report))


@router.get("/aging-report", response_model=ApiResponse[AgingReport])
async def aging_report(db: Session = Depends(get_db), user: User = Depends(require_staff)):
    return ApiResponse(data=AgingReport.model_validate(report_service.generate_aging_report(db, actor=user)))


@router.post("/document-status", response_model=ApiResponse[DocumentStatusReport])
async def document_status_report(
    req: DocumentStatusReportRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    result = report_service.generate_document_status_report(
        db,
        start_date=req.start_date,
        end_date=req.end_date,
        vendors=req.vendors,
        document_types=req.document_types,
        statuses=req.statuses,
        actor=user,
    )
    if req.save_report:
        saved = report_service.create_report(
            db,
            user,
            name=req.report_name or f"Document Status Report {utc_now()[:10]}",
            report_type="document_status",
            description=req.description,
            filters=result["filters"],
            is_public=req.is_public,
        )
        result["report_id"] = saved.id
    return ApiResponse(data=DocumentStatusReport.model_validate(result))


@router.post("/send-reminders", response_model=ApiResponse[ReminderResult])
async def send_reminders(db: Session = Depends(get_db), user: User = Depends(require_admin)):
    result = report_service.send_vendor_reminders(db, user)
    return ApiResponse(
        data=ReminderResult(**result),
        message=f"Sent reminders to {result['reminders_sent']} vendor(s)",
    )


@router.get("", response_model=ApiResponse[ReportListResponse])
async def list_reports(
    type: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    reports, total = report_service.list_reports(db, user, report_type=type, page=page, per_page=per_page)
    return ApiResponse(data=ReportListResponse(
        reports=[_report_to_response(r) for r in reports],
        total=total,
        page=page,
        per_page=per_page,
    ))


@router.post("", response_model=ApiResponse[ReportResponse], status_code=201)
async def create_report(req: ReportCreate, db: Session = Depends(get_db), user: User = Depends(require_staff)):
    report = report_service.create_report(
        db,
        user,
        name=req.name,
        report_type=req.type,
        description=req.description,
        parameters=req.parameters,
        filters=req.filters,
        is_public=req.is_public,
    )
    return ApiResponse(data=_report_to_response(report), message="Report saved")


@router.get("/{report_id}", response_model=ApiResponse[ReportResponse])
async def get_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ApiResponse(data=_report_to_response(report_service.get_report_for(db, user, report_id)))


@router.put("/{report_id}", response_model=ApiResponse[ReportResponse])
async def update_report(
    report_id: str,
    req: ReportUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    report = report_service.update_report(db, user, report_id, req.model_dump(exclude_unset=True))
    return ApiResponse(data=_report_to_response(report))


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(report_id: str, db: Session = Depends(get_db), user: User = Depends(require_staff)):
    report_service.delete_report(db, user, report_id)
    return MessageResponse(message="Report deleted")
