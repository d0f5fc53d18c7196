from pydantic import Field

from vendorhub.schemas.common import APIModel


class UserCreate(APIModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: str
    company: str | None = None
    phone: str | None = None
    address: str | None = None
    password: str | None = None
    requires_login_approval: bool = False


class UserUpdate(APIModel):
    name: str | None = None
    email: str | None = None
    role: str | None = None
    company: str | None = None
    phone: str | None = None
    address: str | None = None
    is_active: bool | None = None


class UserResponse(APIModel):
    id: str
    name: str
    email: str
    role: str
    company: str | None
    phone: str | None
    address: str | None
    is_active: bool
    requires_login_approval: bool
    assigned_consultant_id: str | None
    created_at: str
    updated_at: str


class UserCreatedResponse(UserResponse):
    # Only returned once, when the password was generated server-side.
    generated_password: str | None = None


class UserListResponse(APIModel):
    users: list[UserResponse]
    total: int
    page: int
    per_page: int


class AssignConsultantRequest(APIModel):
    consultant_id: str


class LoginApprovalUpdate(APIModel):
    requires_login_approval: bool


class SetupRequest(APIModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str


class SetupStatusResponse(APIModel):
    initialized: bool
