from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.models.user import User


async def get_current_user(
    x_user_id: str | None = Header(None),
    db: Session = Depends(get_db),
) -> User:
    # Identity is asserted by the upstream gateway; we only resolve it.
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


def require_roles(*roles: str):
    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"User role {user.role} is not authorized to access this route",
            )
        return user

    return checker


require_admin = require_roles("admin")
