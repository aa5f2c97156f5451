"""
Chat and message endpoints, including the notification polling pair
(unread-count and recent-messages).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from db_models import User
from deps import require_auth, require_feature
from domain.enums import MessageType
from domain.responses import success_response
from models import MessageOut, dump, dump_all
from services import chat_service

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api",
    tags=["chats"],
    dependencies=[Depends(require_feature("messaging"))],
)


class StartChatRequest(BaseModel):
    other_user_id: Optional[int] = Field(default=None, alias="otherUserId")
    vendor_id: Optional[int] = Field(default=None, alias="vendorId")


class SendMessageRequest(BaseModel):
    content: Optional[str] = Field(default=None, max_length=5000)
    message_type: MessageType = Field(MessageType.TEXT, alias="messageType")
    media_url: Optional[str] = Field(default=None, alias="mediaUrl")
    reply_to_id: Optional[int] = Field(default=None, alias="replyToId")


class EditMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


# Static paths are declared before /chats/{chat_id}.

@router.get("/chats/unread-count")
async def unread_count(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data={"unreadCount": await chat_service.unread_count(db, user_id=user.id)})


@router.get("/chats/recent-messages")
async def recent_messages(
    exclude_chat_id: Optional[int] = Query(None, alias="excludeChatId"),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.recent_unread_messages(db, user_id=user.id, exclude_chat_id=exclude_chat_id)
    return success_response(data=messages, meta={"total": len(messages)})


@router.get("/chats")
async def list_chats(
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    chats = await chat_service.list_chats(db, user)
    return success_response(data=chats, meta={"total": len(chats)})


@router.post("/chats/start")
async def start_chat(
    request: StartChatRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    chat, created = await chat_service.start_chat(
        db, user, other_user_id=request.other_user_id, vendor_id=request.vendor_id
    )
    await db.commit()
    return success_response(data={"chatId": chat.id, "created": created})


@router.get("/chats/{chat_id}/messages")
async def get_messages(
    chat_id: int,
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.get_messages(db, chat_id=chat_id, user=user, limit=limit)
    await db.commit()
    return success_response(data=dump_all(MessageOut, messages))


@router.post("/chats/{chat_id}/messages")
async def send_message(
    chat_id: int,
    request: SendMessageRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    message = await chat_service.send_message(
        db,
        chat_id=chat_id,
        user=user,
        content=request.content,
        message_type=request.message_type,
        media_url=request.media_url,
        reply_to_id=request.reply_to_id,
    )
    await db.commit()
    return success_response(data=dump(MessageOut, message))


@router.get("/chats/{chat_id}/messages/search")
async def search_messages(
    chat_id: int,
    q: str = Query(..., min_length=1, max_length=100),
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.search_messages(db, chat_id=chat_id, user=user, query=q)
    return success_response(data=dump_all(MessageOut, messages))


@router.delete("/chats/{chat_id}")
async def leave_chat(
    chat_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await chat_service.leave_chat(db, chat_id=chat_id, user=user)
    await db.commit()
    return success_response(data={"deleted": True})


@router.patch("/messages/{message_id}/read")
async def mark_read(
    message_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    message = await chat_service.mark_message_read(db, message_id=message_id, user=user)
    await db.commit()
    return success_response(data=dump(MessageOut, message))


@router.patch("/messages/{message_id}")
async def edit_message(
    message_id: int,
    request: EditMessageRequest,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    message = await chat_service.edit_message(db, message_id=message_id, user=user, content=request.content)
    await db.commit()
    return success_response(data=dump(MessageOut, message))


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: int,
    user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    await chat_service.delete_message(db, message_id=message_id, user=user)
    await db.commit()
    return success_response(data={"deleted": True})
