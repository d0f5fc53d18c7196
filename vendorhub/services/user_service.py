import csv
import io
import logging
import uuid

from sqlalchemy.orm import Session

from vendorhub.database import commit
from vendorhub.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from vendorhub.models.user import ROLES, User
from vendorhub.models.submission import Submission
from vendorhub.services.activity_service import record_activity
from vendorhub.utils.dates import utc_now
from vendorhub.utils.security import generate_password, hash_password

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _validate_role(role: str) -> str:
    if role not in ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {list(ROLES)}")
    return role


def _ensure_email_free(db: Session, email: str, exclude_id: str | None = None):
    query = db.query(User).filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError("Email already registered")


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def get_vendor(db: Session, vendor_id: str) -> User:
    vendor = db.query(User).filter(User.id == vendor_id).first()
    if not vendor or vendor.role != "vendor":
        raise NotFoundError("Vendor not found")
    return vendor


def get_consultant(db: Session, consultant_id: str) -> User:
    consultant = db.query(User).filter(User.id == consultant_id).first()
    if not consultant:
        raise NotFoundError("Consultant not found")
    if consultant.role != "consultant":
        raise ValidationError("Assigned user must have the consultant role")
    return consultant


# --- Setup ---

def is_initialized(db: Session) -> bool:
    return db.query(User).filter(User.role == "admin").first() is not None


def setup_first_admin(db: Session, name: str, email: str, password: str) -> User:
    if is_initialized(db):
        raise ConflictError("Portal already initialized")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    now = utc_now()
    admin = User(
        id=str(uuid.uuid4()),
        name=name.strip(),
        email=_normalize_email(email),
        role="admin",
        password_hash=hash_password(password),
        is_active=True,
        requires_login_approval=False,
        created_at=now,
        updated_at=now,
    )
    db.add(admin)
    record_activity(db, actor=admin, action="portal_initialized", entity_type="user", entity_id=admin.id)
    commit(db)
    db.refresh(admin)
    logger.info("Portal initialized with admin %s", admin.email)
    return admin


# --- CRUD ---

def create_user(
    db: Session,
    actor: User,
    *,
    name: str,
    email: str,
    role: str,
    company: str | None = None,
    phone: str | None = None,
    address: str | None = None,
    password: str | None = None,
    requires_login_approval: bool = False,
) -> tuple[User, str | None]:
    """Create a user. Returns the user and the generated password, if one was generated."""
    _validate_role(role)
    email = _normalize_email(email)
    _ensure_email_free(db, email)

    generated = None
    if not password:
        generated = password = generate_password()
    elif len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    now = utc_now()
    user = User(
        id=str(uuid.uuid4()),
        name=name.strip(),
        email=email,
        role=role,
        company=company,
        phone=phone,
        address=address,
        password_hash=hash_password(password),
        is_active=True,
        requires_login_approval=requires_login_approval if role == "vendor" else False,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    record_activity(db, actor=actor, action="user_created", entity_type="user", entity_id=user.id,
                    details={"role": role, "email": email})
    commit(db)
    db.refresh(user)
    return user, generated


def update_user(db: Session, actor: User, user_id: str, changes: dict) -> User:
    user = get_user(db, user_id)

    if "email" in changes and changes["email"]:
        changes["email"] = _normalize_email(changes["email"])
        _ensure_email_free(db, changes["email"], exclude_id=user.id)
    if "role" in changes and changes["role"]:
        _validate_role(changes["role"])

    old_role = user.role
    for key in ("name", "email", "role", "company", "phone", "address", "is_active"):
        if changes.get(key) is not None:
            setattr(user, key, changes[key])

    if user.role != old_role:
        _drop_assignments_for_role_change(db, user, old_role)
    user.updated_at = utc_now()

    record_activity(db, actor=actor, action="user_updated", entity_type="user", entity_id=user.id,
                    details={k: v for k, v in changes.items() if v is not None})
    commit(db)
    db.refresh(user)
    return user


def _drop_assignments_for_role_change(db: Session, user: User, old_role: str):
    # Vendors may only point at consultants, and only vendors carry an assignment.
    if old_role == "consultant":
        db.query(User).filter(User.assigned_consultant_id == user.id).update(
            {User.assigned_consultant_id: None}, synchronize_session=False
        )
    if user.role != "vendor":
        user.assigned_consultant_id = None


def delete_user(db: Session, actor: User, user_id: str):
    user = get_user(db, user_id)
    if user.id == actor.id:
        raise ValidationError("You cannot delete your own account")
    record_activity(db, actor=actor, action="user_deleted", entity_type="user", entity_id=user.id,
                    details={"email": user.email, "role": user.role})
    db.delete(user)
    commit(db)


def set_active(db: Session, actor: User, user_id: str, active: bool) -> User:
    user = get_user(db, user_id)
    user.is_active = active
    user.updated_at = utc_now()
    record_activity(db, actor=actor, action="user_activated" if active else "user_deactivated",
                    entity_type="user", entity_id=user.id)
    commit(db)
    db.refresh(user)
    return user


def set_login_approval(db: Session, actor: User, vendor_id: str, required: bool) -> User:
    vendor = get_vendor(db, vendor_id)
    vendor.requires_login_approval = required
    vendor.updated_at = utc_now()
    record_activity(db, actor=actor, action="login_approval_changed", entity_type="user",
                    entity_id=vendor.id, details={"required": required})
    commit(db)
    db.refresh(vendor)
    return vendor


# --- Listing ---

def list_users(
    db: Session,
    *,
    role: str | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 10,
) -> tuple[list[User], int]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if search:
        like = f"%{search}%"
        query = query.filter(User.name.ilike(like) | User.email.ilike(like) | User.company.ilike(like))
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return users, total


def list_vendors(db: Session, actor: User, consultant_id: str | None = None) -> list[User]:
    query = db.query(User).filter(User.role == "vendor")
    if actor.role == "consultant":
        # Consultants only ever see their own vendors.
        query = query.filter(User.assigned_consultant_id == actor.id)
    elif consultant_id:
        query = query.filter(User.assigned_consultant_id == consultant_id)
    return query.order_by(User.created_at.desc(), User.name).all()


def list_consultants(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(User.role == "consultant")
        .order_by(User.created_at.desc(), User.name)
        .all()
    )


def get_user_for(db: Session, actor: User, user_id: str) -> User:
    user = get_user(db, user_id)
    if actor.role == "admin" or actor.id == user.id:
        return user
    if actor.role == "consultant" and user.role == "vendor" and user.assigned_consultant_id == actor.id:
        return user
    if actor.role == "vendor" and user.role == "consultant" and actor.assigned_consultant_id == user.id:
        return user
    raise AuthorizationError("Not authorized to access this user data")


# --- Assignment ---

def assign_consultant(db: Session, actor: User, vendor_id: str, consultant_id: str) -> User:
    vendor = get_vendor(db, vendor_id)
    consultant = get_consultant(db, consultant_id)
    previous = vendor.assigned_consultant_id

    vendor.assigned_consultant_id = consultant.id
    vendor.updated_at = utc_now()
    record_activity(db, actor=actor, action="consultant_assigned", entity_type="user", entity_id=vendor.id,
                    details={"consultant_id": consultant.id, "previous_consultant_id": previous})
    commit(db)
    db.refresh(vendor)
    logger.info("Assigned consultant %s to vendor %s", consultant.id, vendor.id)
    return vendor


def vendors_of_consultant(db: Session, actor: User, consultant_id: str) -> list[User]:
    if actor.role != "admin" and actor.id != consultant_id:
        raise AuthorizationError("Not authorized to view these vendors")
    return (
        db.query(User)
        .filter(User.role == "vendor", User.assigned_consultant_id == consultant_id)
        .order_by(User.name)
        .all()
    )


def consultant_of_vendor(db: Session, actor: User, vendor_id: str) -> User | None:
    vendor = get_vendor(db, vendor_id)
    if actor.role != "admin" and actor.id not in (vendor.id, vendor.assigned_consultant_id):
        raise AuthorizationError("Not authorized to view this information")
    return vendor.assigned_consultant


def can_review_for(actor: User, vendor: User) -> bool:
    if actor.role == "admin":
        return True
    return actor.role == "consultant" and vendor.assigned_consultant_id == actor.id


def can_view_submission(actor: User, submission: Submission) -> bool:
    if actor.role == "vendor":
        return submission.vendor_id == actor.id
    return can_review_for(actor, submission.vendor)


# --- Export ---

def export_users_csv(db: Session, role: str | None = None) -> str:
    if role and role not in ("vendor", "consultant"):
        raise ValidationError("Invalid role specified")
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["id", "name", "email", "role", "company", "is_active", "assigned_consultant_id", "created_at"])
    for user in query.order_by(User.created_at.desc(), User.name):
        writer.writerow([
            user.id, user.name, user.email, user.role, user.company or "",
            user.is_active, user.assigned_consultant_id or "", user.created_at,
        ])
    return output.getvalue()
