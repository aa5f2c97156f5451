"""
Verification request endpoints (user side). Review lives in routes/admin.py.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_owner_or_admin
from domain.responses import success_response
from models import VerificationRequestOut, dump, dump_all
from services import verification_service

router = APIRouter(prefix="/api", tags=["verification"])


class VerificationCreateRequest(BaseModel):
    request_type: str = Field(..., alias="requestType")
    reason: Optional[str] = Field(default=None, max_length=2000)
    documents: List[str] = Field(default_factory=list, max_length=10)
    store_id: Optional[int] = Field(default=None, alias="storeId")


@router.post("/verification-requests")
async def create_request(
    request: VerificationCreateRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    vr = await verification_service.create_request(
        db,
        user,
        request_type=request.request_type,
        reason=request.reason,
        documents=request.documents,
        store_id=request.store_id,
    )
    await db.commit()
    return success_response(data=dump(VerificationRequestOut, vr))


@router.get("/user/verification-requests")
async def my_requests(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    requests = await verification_service.list_user_requests(db, user_id=user.id)
    return success_response(data=dump_all(VerificationRequestOut, requests))


@router.get("/verification-requests/{request_id}")
async def get_request(
    request_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    vr = await verification_service.get_request(db, request_id)
    require_owner_or_admin(user, vr.user_id)
    return success_response(data=dump(VerificationRequestOut, vr))
