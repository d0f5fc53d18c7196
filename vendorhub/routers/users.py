from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.dependencies import get_current_user, require_admin, require_roles
from vendorhub.models.user import User
from vendorhub.schemas.common import ApiResponse, MessageResponse
from vendorhub.schemas.report import (
    ConsultantAnalyticsEntry,
    ConsultantMetrics,
    DashboardAnalytics,
    VendorAnalyticsEntry,
    VendorMetrics,
)
from vendorhub.schemas.user import (
    AssignConsultantRequest,
    LoginApprovalUpdate,
    UserCreate,
    UserCreatedResponse,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from vendorhub.services import analytics_service, user_service

router = APIRouter(prefix="/users", tags=["users"])

require_staff = require_roles("admin", "consultant")


def _users(users: list[User]) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in users]


# Static paths first so they are not captured by /{user_id}.

@router.get("/analytics/dashboard", response_model=ApiResponse[DashboardAnalytics])
async def dashboard_analytics(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return ApiResponse(data=DashboardAnalytics(**analytics_service.get_dashboard_analytics(db)))


@router.get("/analytics/vendors", response_model=ApiResponse[list[VendorAnalyticsEntry]])
async def vendor_analytics(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    entries = [
        VendorAnalyticsEntry(vendor=UserResponse.model_validate(v), analytics=VendorMetrics(**m))
        for v, m in analytics_service.get_vendor_analytics(db)
    ]
    return ApiResponse(data=entries)


@router.get("/analytics/consultants", response_model=ApiResponse[list[ConsultantAnalyticsEntry]])
async def consultant_analytics(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    entries = [
        ConsultantAnalyticsEntry(consultant=UserResponse.model_validate(c), metrics=ConsultantMetrics(**m))
        for c, m in analytics_service.get_consultant_analytics(db)
    ]
    return ApiResponse(data=entries)


@router.get("/export/csv")
async def export_users(
    role: str | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    content = user_service.export_users_csv(db, role)
    filename = f"{role or 'all'}-users.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/vendors", response_model=ApiResponse[list[UserResponse]])
async def list_vendors(
    consultant_id: str | None = Query(None, alias="consultantId"),
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    return ApiResponse(data=_users(user_service.list_vendors(db, user, consultant_id)))


@router.get("/consultants", response_model=ApiResponse[list[UserResponse]])
async def list_consultants(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return ApiResponse(data=_users(user_service.list_consultants(db)))


@router.post("/vendors/{vendor_id}/assign-consultant", response_model=ApiResponse[UserResponse])
async def assign_consultant(
    vendor_id: str,
    req: AssignConsultantRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    vendor = user_service.assign_consultant(db, user, vendor_id, req.consultant_id)
    return ApiResponse(data=UserResponse.model_validate(vendor), message="Consultant assigned to vendor")


@router.get("/consultants/{consultant_id}/vendors", response_model=ApiResponse[list[UserResponse]])
async def vendors_of_consultant(
    consultant_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    return ApiResponse(data=_users(user_service.vendors_of_consultant(db, user, consultant_id)))


@router.get("/vendors/{vendor_id}/consultant", response_model=ApiResponse[UserResponse | None])
async def consultant_of_vendor(
    vendor_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    consultant = user_service.consultant_of_vendor(db, user, vendor_id)
    if consultant is None:
        return ApiResponse(data=None, message="No consultant assigned")
    return ApiResponse(data=UserResponse.model_validate(consultant))


@router.put("/vendors/{vendor_id}/login-approval", response_model=ApiResponse[UserResponse])
async def login_approval(
    vendor_id: str,
    req: LoginApprovalUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    vendor = user_service.set_login_approval(db, user, vendor_id, req.requires_login_approval)
    return ApiResponse(data=UserResponse.model_validate(vendor))


# --- Directory CRUD ---

@router.get("", response_model=ApiResponse[UserListResponse])
async def list_users(
    role: str | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100, alias="perPage"),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    users, total = user_service.list_users(db, role=role, search=search, page=page, per_page=per_page)
    return ApiResponse(data=UserListResponse(users=_users(users), total=total, page=page, per_page=per_page))


@router.post("", response_model=ApiResponse[UserCreatedResponse], status_code=201)
async def create_user(req: UserCreate, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    created, generated = user_service.create_user(
        db,
        user,
        name=req.name,
        email=req.email,
        role=req.role,
        company=req.company,
        phone=req.phone,
        address=req.address,
        password=req.password,
        requires_login_approval=req.requires_login_approval,
    )
    data = UserCreatedResponse.model_validate(created)
    data.generated_password = generated
    return ApiResponse(data=data, message="User created")


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ApiResponse(data=UserResponse.model_validate(user_service.get_user_for(db, user, user_id)))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: str,
    req: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    updated = user_service.update_user(db, user, user_id, req.model_dump(exclude_unset=True))
    return ApiResponse(data=UserResponse.model_validate(updated))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    user_service.delete_user(db, user, user_id)
    return MessageResponse(message="User deleted")


@router.put("/{user_id}/activate", response_model=ApiResponse[UserResponse])
async def activate_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    return ApiResponse(data=UserResponse.model_validate(user_service.set_active(db, user, user_id, True)))


@router.put("/{user_id}/deactivate", response_model=ApiResponse[UserResponse])
async def deactivate_user(user_id: str, db: Session = Depends(get_db), user: User = Depends(require_admin)):
    return ApiResponse(data=UserResponse.model_validate(user_service.set_active(db, user, user_id, False)))
