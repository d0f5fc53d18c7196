from pydantic import Field

from vendorhub.schemas.common import APIModel


class DocumentCreate(APIModel):
    title: str = Field(min_length=1)
    document_type: str = Field(min_length=1)


class SubmissionCreate(APIModel):
    period: str | None = None
    month: str | None = None
    year: int | None = None
    documents: list[DocumentCreate] = []


class DocumentFileResponse(APIModel):
    id: str
    document_id: str
    original_filename: str
    stored_path: str
    file_hash: str
    file_size_bytes: int
    mime_type: str | None
    uploaded_at: str


class RemarkResponse(APIModel):
    id: str
    document_id: str
    author_id: str | None
    status: str
    text: str
    created_at: str


class DocumentResponse(APIModel):
    id: str
    submission_id: str
    title: str
    document_type: str
    status: str
    review_notes: str | None
    reviewer_id: str | None
    review_date: str | None
    version: int
    created_at: str
    updated_at: str
    files: list[DocumentFileResponse] = []


class SubmissionResponse(APIModel):
    id: str
    vendor_id: str
    vendor_name: str | None = None
    period: str
    month: str | None
    year: int | None
    status: str
    created_at: str
    updated_at: str
    document_count: int = 0
    documents: list[DocumentResponse] = []


class SubmissionListResponse(APIModel):
    submissions: list[SubmissionResponse]
    total: int
    page: int
    per_page: int


class ReviewRequest(APIModel):
    submission_id: str
    document_id: str
    status: str
    remarks: str = ""
    expected_version: int | None = None


class ReviewResponse(APIModel):
    document: DocumentResponse
    submission_status: str
    submission: SubmissionResponse


class FileIntegrityResponse(APIModel):
    file_id: str
    stored_hash: str
    actual_hash: str
    intact: bool
