"""
Voice/video call signalling endpoints. Gated by the ``voice_calls`` flag.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.responses import success_response
from models import CallOut, dump, dump_all
from services import call_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/calls",
    tags=["calls"],
    dependencies=[Depends(require_feature("voice_calls"))],
)


class StartCallRequest(BaseModel):
    receiver_id: int = Field(..., alias="receiverId")
    call_type: str = Field("voice", alias="callType")


class EndCallRequest(BaseModel):
    duration: Optional[int] = Field(default=None, ge=0)


@router.post("/start")
async def start_call(
    request: StartCallRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    call = await call_service.start_call(db, user, receiver_id=request.receiver_id, call_type=request.call_type)
    await db.commit()
    return success_response(data=dump(CallOut, call))


@router.get("/active")
async def active_calls(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump_all(CallOut, await call_service.active_calls(db, user_id=user.id)))


@router.get("/history")
async def call_history(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=dump_all(CallOut, await call_service.call_history(db, user_id=user.id)))


@router.post("/{call_id}/accept")
async def accept_call(
    call_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    call = await call_service.accept_call(db, call_id=call_id, user=user)
    await db.commit()
    return success_response(data=dump(CallOut, call))


@router.post("/{call_id}/reject")
async def reject_call(
    call_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    call = await call_service.reject_call(db, call_id=call_id, user=user)
    await db.commit()
    return success_response(data=dump(CallOut, call))


@router.post("/{call_id}/end")
async def end_call(
    call_id: int,
    request: Optional[EndCallRequest] = None,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    duration = request.duration if request else None
    call = await call_service.end_call(db, call_id=call_id, user=user, duration=duration)
    await db.commit()
    return success_response(data=dump(CallOut, call))
