from vendorhub.schemas.common import APIModel


class NotificationResponse(APIModel):
    id: str
    recipient_id: str
    sender_id: str | None
    type: str
    title: str
    message: str
    related_submission_id: str | None
    related_document_id: str | None
    priority: str
    is_read: bool
    created_at: str


class NotificationListResponse(APIModel):
    notifications: list[NotificationResponse]
    total: int
    unread: int
    page: int
    per_page: int
