from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vendorhub.database import get_db
from vendorhub.schemas.common import ApiResponse
from vendorhub.schemas.user import SetupRequest, SetupStatusResponse, UserResponse
from vendorhub.services import user_service

router = APIRouter(prefix="/setup", tags=["setup"])


@router.get("/status", response_model=ApiResponse[SetupStatusResponse])
async def setup_status(db: Session = Depends(get_db)):
    return ApiResponse(data=SetupStatusResponse(initialized=user_service.is_initialized(db)))


@router.post("", response_model=ApiResponse[UserResponse], status_code=201)
async def setup(req: SetupRequest, db: Session = Depends(get_db)):
    admin = user_service.setup_first_admin(db, req.name, req.email, req.password)
    return ApiResponse(data=UserResponse.model_validate(admin), message="Portal initialized")
