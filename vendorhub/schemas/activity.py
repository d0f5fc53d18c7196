from typing import Any

from vendorhub.schemas.common import APIModel


class ActivityLogResponse(APIModel):
    id: str
    actor_id: str | None
    actor_role: str | None
    action: str
    entity_type: str | None
    entity_id: str | None
    details: dict[str, Any] | None
    created_at: str


class ActivityLogListResponse(APIModel):
    logs: list[ActivityLogResponse]
    total: int
    page: int
    per_page: int


class ActivityStats(APIModel):
    total: int
    last_24_hours: int
    by_action: dict[str, int]
    by_role: dict[str, int]
