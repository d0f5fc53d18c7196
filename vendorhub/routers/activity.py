from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.dependencies import require_admin
from vendorhub.schemas.activity import ActivityLogListResponse, ActivityLogResponse, ActivityStats
from vendorhub.schemas.common import ApiResponse
from vendorhub.services import activity_service

router = APIRouter(
    prefix="/activity-logs",
    tags=["activity"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=ApiResponse[ActivityLogListResponse])
async def list_activity(
    action: str | None = None,
    actor_id: str | None = Query(None, alias="actorId"),
    entity_type: str | None = Query(None, alias="entityType"),
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100, alias="perPage"),
    db: Session = Depends(get_db),
):
    logs, total = activity_service.list_activity(
        db,
        action=action,
        actor_id=actor_id,
        entity_type=entity_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        per_page=per_page,
    )
    items = [
        ActivityLogResponse(
            id=entry.id,
            actor_id=entry.actor_id,
            actor_role=entry.actor_role,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            details=activity_service.decode_details(entry),
            created_at=entry.created_at,
        )
        for entry in logs
    ]
    return ApiResponse(data=ActivityLogListResponse(logs=items, total=total, page=page, per_page=per_page))


@router.get("/stats", response_model=ApiResponse[ActivityStats])
async def activity_stats(db: Session = Depends(get_db)):
    return ApiResponse(data=ActivityStats(**activity_service.activity_stats(db)))
