"""
Call signalling state.

    ringing --accept (receiver)--> accepted --end--> ended
    ringing --reject (either)----> rejected
    accepted --reject------------> rejected
    ringing --end----------------> ended

Media itself flows peer-to-peer; the server only tracks state so both sides
can poll for it.
"""
import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import Call, User, utcnow
from domain.enums import CallStatus, CallType
from domain.errors import InvalidTransitionError, NotFoundError, PermissionDeniedError, ValidationError
from services.chat_service import is_blocked_between

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (CallStatus.RINGING.value, CallStatus.ACCEPTED.value)


async def start_call(db: AsyncSession, caller: User, *, receiver_id: int, call_type: str = "voice") -> Call:
    if receiver_id == caller.id:
        raise ValidationError("Cannot call yourself", field="receiverId")
    try:
        call_type = CallType(call_type).value
    except ValueError:
        raise ValidationError(f"Unknown call type: {call_type}", field="callType")

    receiver = await db.get(User, receiver_id)
    if receiver is None:
        raise NotFoundError("User", receiver_id)
    if await is_blocked_between(db, caller.id, receiver_id):
        raise PermissionDeniedError("Calling is blocked between these users")

    call = Call(
        caller_id=caller.id,
        receiver_id=receiver_id,
        call_type=call_type,
        status=CallStatus.RINGING.value,
        started_at=utcnow(),
    )
    db.add(call)
    await db.flush()
    logger.info(f"Call {call.id} ({call_type}) {caller.id} -> {receiver_id}")
    return call


async def _get_participant_call(db: AsyncSession, call_id: int, user: User) -> Call:
    call = await db.get(Call, call_id)
    if call is None:
        raise NotFoundError("Call", call_id)
    if user.id not in (call.caller_id, call.receiver_id):
        raise PermissionDeniedError("You are not a participant in this call")
    return call


async def accept_call(db: AsyncSession, *, call_id: int, user: User) -> Call:
    call = await _get_participant_call(db, call_id, user)
    if call.receiver_id != user.id:
        raise PermissionDeniedError("Only the receiver can accept a call")
    if call.status != CallStatus.RINGING.value:
        raise InvalidTransitionError("Call", call.status, CallStatus.ACCEPTED.value)
    call.status = CallStatus.ACCEPTED.value
    call.answered_at = utcnow()
    await db.flush()
    return call


async def reject_call(db: AsyncSession, *, call_id: int, user: User) -> Call:
    call = await _get_participant_call(db, call_id, user)
    if call.status not in ACTIVE_STATUSES:
        raise InvalidTransitionError("Call", call.status, CallStatus.REJECTED.value)
    call.status = CallStatus.REJECTED.value
    call.ended_at = utcnow()
    await db.flush()
    return call


async def end_call(db: AsyncSession, *, call_id: int, user: User, duration: int | None = None) -> Call:
    """
    End an active call. Without an explicit duration it is derived from
    answered_at (0 for a call that never connected).
    """
    call = await _get_participant_call(db, call_id, user)
    if call.status not in ACTIVE_STATUSES:
        raise InvalidTransitionError("Call", call.status, CallStatus.ENDED.value)

    now = utcnow()
    if duration is None:
        duration = int((now - call.answered_at).total_seconds()) if call.answered_at else 0
    if duration < 0:
        raise ValidationError("Duration cannot be negative", field="duration")

    call.status = CallStatus.ENDED.value
    call.ended_at = now
    call.duration = duration
    await db.flush()
    return call


async def active_calls(db: AsyncSession, *, user_id: int) -> list[Call]:
    res = await db.execute(
        select(Call)
        .where(
            or_(Call.caller_id == user_id, Call.receiver_id == user_id),
            Call.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Call.started_at.desc())
    )
    return res.scalars().all()


async def call_history(db: AsyncSession, *, user_id: int, limit: int = 50) -> list[Call]:
    res = await db.execute(
        select(Call)
        .where(or_(Call.caller_id == user_id, Call.receiver_id == user_id))
        .order_by(Call.started_at.desc(), Call.id.desc())
        .limit(limit)
    )
    return res.scalars().all()
