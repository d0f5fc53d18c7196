from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.dependencies import get_current_user
from vendorhub.models.user import User
from vendorhub.schemas.common import ApiResponse, MessageResponse
from vendorhub.schemas.notification import NotificationListResponse, NotificationResponse
from vendorhub.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse[NotificationListResponse])
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100, alias="perPage"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total, unread = notification_service.list_notifications(
        db, user, unread_only=unread_only, page=page, per_page=per_page
    )
    return ApiResponse(data=NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread=unread,
        page=page,
        per_page=per_page,
    ))


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    count = notification_service.mark_all_read(db, user)
    return MessageResponse(message=f"Marked {count} notification(s) as read")


@router.put("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
async def mark_read(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    row = notification_service.mark_read(db, user, notification_id)
    return ApiResponse(data=NotificationResponse.model_validate(row))


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification_service.delete_notification(db, user, notification_id)
    return MessageResponse(message="Notification deleted")
