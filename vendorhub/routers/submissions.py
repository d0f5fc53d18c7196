from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from vendorhub.config import settings
from vendorhub.database import get_db
from vendorhub.dependencies import get_current_user, require_roles
from vendorhub.models.submission import Submission
from vendorhub.models.user import User
from vendorhub.schemas.common import ApiResponse
from vendorhub.schemas.submission import (
    DocumentCreate,
    DocumentFileResponse,
    DocumentResponse,
    FileIntegrityResponse,
    RemarkResponse,
    ReviewRequest,
    ReviewResponse,
    SubmissionCreate,
    SubmissionListResponse,
    SubmissionResponse,
)
from vendorhub.services import review_service, submission_service

router = APIRouter(prefix="/submissions", tags=["submissions"])

require_vendor = require_roles("vendor")
require_reviewer = require_roles("admin", "consultant")


def _submission_to_response(submission: Submission, with_documents: bool = True) -> SubmissionResponse:
    return SubmissionResponse(
        id=submission.id,
        vendor_id=submission.vendor_id,
        vendor_name=submission.vendor.name if submission.vendor else None,
        period=submission.period,
        month=submission.month,
        year=submission.year,
        status=submission.status,
        created_at=submission.created_at,
        updated_at=submission.updated_at,
        document_count=len(submission.documents),
        documents=[DocumentResponse.model_validate(d) for d in submission.documents] if with_documents else [],
    )


async def _read_upload(file: UploadFile) -> bytes:
    # Security: enforce upload size limit to prevent memory/disk DoS.
    max_bytes = settings.max_upload_bytes
    size = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("", response_model=ApiResponse[SubmissionResponse], status_code=201)
async def create_submission(
    req: SubmissionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    submission = submission_service.create_submission(
        db,
        user,
        documents=[d.model_dump() for d in req.documents],
        period=req.period,
        month=req.month,
        year=req.year,
    )
    return ApiResponse(data=_submission_to_response(submission), message="Documents submitted")


@router.get("", response_model=ApiResponse[SubmissionListResponse])
async def list_submissions(
    vendor_id: str | None = Query(None, alias="vendorId"),
    status: str | None = None,
    period: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = submission_service.list_submissions(
        db, user, vendor_id=vendor_id, status=status, period=period, page=page, per_page=per_page
    )
    return ApiResponse(data=SubmissionListResponse(
        submissions=[_submission_to_response(s, with_documents=False) for s in items],
        total=total,
        page=page,
        per_page=per_page,
    ))


@router.post("/review", response_model=ApiResponse[ReviewResponse])
async def review_document(
    req: ReviewRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_reviewer),
):
    doc = review_service.review(
        db, user, req.submission_id, req.document_id, req.status, req.remarks, req.expected_version
    )
    submission = doc.submission
    return ApiResponse(
        data=ReviewResponse(
            document=DocumentResponse.model_validate(doc),
            submission_status=submission.status,
            submission=_submission_to_response(submission),
        ),
        message=f"Document status updated to {doc.status}",
    )


@router.get("/{submission_id}", response_model=ApiResponse[SubmissionResponse])
async def get_submission(submission_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    submission = submission_service.get_submission_for(db, user, submission_id)
    return ApiResponse(data=_submission_to_response(submission))


@router.post("/{submission_id}/documents", response_model=ApiResponse[SubmissionResponse], status_code=201)
async def add_documents(
    submission_id: str,
    documents: list[DocumentCreate],
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    submission = submission_service.add_documents(db, user, submission_id, [d.model_dump() for d in documents])
    return ApiResponse(data=_submission_to_response(submission))


@router.post(
    "/{submission_id}/documents/{document_id}/files",
    response_model=ApiResponse[DocumentFileResponse],
    status_code=201,
)
async def upload_file(
    submission_id: str,
    document_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    content = await _read_upload(file)
    row = submission_service.attach_file(
        db, user, submission_id, document_id, file.filename, content, file.content_type
    )
    return ApiResponse(data=DocumentFileResponse.model_validate(row), message="File uploaded")


@router.get("/{submission_id}/documents/{document_id}/files/{file_id}/download")
async def download_file(
    submission_id: str,
    document_id: str,
    file_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    row, full_path = submission_service.get_file_for(db, user, submission_id, document_id, file_id)
    return FileResponse(
        path=str(full_path),
        filename=row.original_filename,
        media_type=row.mime_type or "application/octet-stream",
    )


@router.get(
    "/{submission_id}/documents/{document_id}/files/{file_id}/verify",
    response_model=ApiResponse[FileIntegrityResponse],
)
async def verify_file(
    submission_id: str,
    document_id: str,
    file_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    result = submission_service.verify_file(db, user, submission_id, document_id, file_id)
    return ApiResponse(data=FileIntegrityResponse(**result))


@router.post("/{submission_id}/documents/{document_id}/resubmit", response_model=ApiResponse[DocumentResponse])
async def resubmit_document(
    submission_id: str,
    document_id: str,
    file: UploadFile = File(...),
    remarks: str = Form(""),
    db: Session = Depends(get_db),
    user: User = Depends(require_vendor),
):
    content = await _read_upload(file)
    doc = review_service.resubmit_document(
        db, user, submission_id, document_id, file.filename, content, file.content_type, remarks
    )
    return ApiResponse(data=DocumentResponse.model_validate(doc), message="Document resubmitted")


@router.put("/{submission_id}/documents/{document_id}/start-review", response_model=ApiResponse[DocumentResponse])
async def start_review(
    submission_id: str,
    document_id: str,
    expected_version: int | None = Query(None, alias="expectedVersion"),
    db: Session = Depends(get_db),
    user: User = Depends(require_reviewer),
):
    doc = review_service.start_review(db, user, submission_id, document_id, expected_version)
    return ApiResponse(data=DocumentResponse.model_validate(doc))


@router.get("/{submission_id}/documents/{document_id}/remarks", response_model=ApiResponse[list[RemarkResponse]])
async def list_remarks(
    submission_id: str,
    document_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    remarks = submission_service.list_remarks(db, user, submission_id, document_id)
    return ApiResponse(data=[RemarkResponse.model_validate(r) for r in remarks])
