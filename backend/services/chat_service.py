"""
Chats and messages, plus the two polling queries clients use for
notifications: the unread counter and the recent-unread preview list.
"""
import logging

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import BlockedUser, Chat, ChatMember, Message, User, Vendor, utcnow
from domain.constants import (
    DEFAULT_MESSAGE_PLACEHOLDER,
    MESSAGE_PLACEHOLDERS,
    RECENT_MESSAGES_LIMIT,
    RECENT_UNREAD_PER_CHAT,
)
from domain.enums import MessageType
from domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from models import MessageOut, UserSummary, dump

logger = logging.getLogger(__name__)


def preview_text(message: Message) -> str:
    """Notification preview: text content, or a placeholder for media messages."""
    if message.message_type == MessageType.TEXT.value and message.content:
        return message.content
    return MESSAGE_PLACEHOLDERS.get(message.message_type, DEFAULT_MESSAGE_PLACEHOLDER)


async def is_blocked_between(db: AsyncSession, user_a: int, user_b: int) -> bool:
    res = await db.execute(
        select(BlockedUser.id).where(
            or_(
                and_(BlockedUser.blocker_id == user_a, BlockedUser.blocked_id == user_b),
                and_(BlockedUser.blocker_id == user_b, BlockedUser.blocked_id == user_a),
            )
        ).limit(1)
    )
    return res.scalar_one_or_none() is not None


async def _member_chat_ids(db: AsyncSession, user_id: int) -> list[int]:
    res = await db.execute(select(ChatMember.chat_id).where(ChatMember.user_id == user_id))
    return res.scalars().all()


async def require_member(db: AsyncSession, chat_id: int, user_id: int) -> Chat:
    chat = await db.get(Chat, chat_id)
    if chat is None:
        raise NotFoundError("Chat", chat_id)
    res = await db.execute(
        select(ChatMember.id).where(ChatMember.chat_id == chat_id, ChatMember.user_id == user_id)
    )
    if res.scalar_one_or_none() is None:
        raise PermissionDeniedError("You are not a member of this chat")
    return chat


async def find_direct_chat(db: AsyncSession, user_a: int, user_b: int) -> Chat | None:
    a = select(ChatMember.chat_id).where(ChatMember.user_id == user_a)
    b = select(ChatMember.chat_id).where(ChatMember.user_id == user_b)
    res = await db.execute(
        select(Chat)
        .where(Chat.is_group == False, Chat.id.in_(a), Chat.id.in_(b))  # noqa: E712
        .limit(1)
    )
    return res.scalar_one_or_none()


async def start_chat(
    db: AsyncSession,
    user: User,
    *,
    other_user_id: int | None = None,
    vendor_id: int | None = None,
) -> tuple[Chat, bool]:
    """
    Open (or reuse) the 1:1 chat between ``user`` and another user.

    A vendor id may be given instead of a user id; the chat is then opened
    with the vendor's owner. Returns (chat, created).
    """
    if vendor_id is not None:
        vendor = await db.get(Vendor, vendor_id)
        if vendor is None:
            raise NotFoundError("Store", vendor_id)
        other_user_id = vendor.user_id
    if other_user_id is None:
        raise ValidationError("otherUserId or vendorId is required", field="otherUserId")
    if other_user_id == user.id:
        raise ValidationError("Cannot start a chat with yourself", field="otherUserId")

    other = await db.get(User, other_user_id)
    if other is None:
        raise NotFoundError("User", other_user_id)
    if await is_blocked_between(db, user.id, other.id):
        raise PermissionDeniedError("Messaging is blocked between these users")

    existing = await find_direct_chat(db, user.id, other.id)
    if existing is not None:
        return existing, False

    chat = Chat(is_group=False, created_by=user.id)
    db.add(chat)
    await db.flush()
    db.add_all([
        ChatMember(chat_id=chat.id, user_id=user.id),
        ChatMember(chat_id=chat.id, user_id=other.id),
    ])
    await db.flush()
    logger.info(f"Chat {chat.id} created between {user.id} and {other.id}")
    return chat, True


async def list_chats(db: AsyncSession, user: User) -> list[dict]:
    chat_ids = await _member_chat_ids(db, user.id)
    if not chat_ids:
        return []

    res = await db.execute(select(Chat).where(Chat.id.in_(chat_ids)).order_by(Chat.updated_at.desc()))
    chats = res.scalars().all()

    out = []
    for chat in chats:
        last_res = await db.execute(
            select(Message)
            .where(Message.chat_id == chat.id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
        )
        last = last_res.scalar_one_or_none()

        unread_res = await db.execute(
            select(func.count(Message.id)).where(
                Message.chat_id == chat.id,
                Message.sender_id != user.id,
                Message.is_read == False,  # noqa: E712
            )
        )

        other = None
        if not chat.is_group:
            other_res = await db.execute(
                select(User)
                .join(ChatMember, ChatMember.user_id == User.id)
                .where(ChatMember.chat_id == chat.id, User.id != user.id)
                .limit(1)
            )
            other_user = other_res.scalar_one_or_none()
            other = dump(UserSummary, other_user) if other_user else None

        out.append({
            "id": chat.id,
            "name": chat.name,
            "isGroup": chat.is_group,
            "avatar": chat.avatar,
            "otherParticipant": other,
            "lastMessage": dump(MessageOut, last) if last else None,
            "unreadCount": unread_res.scalar_one(),
            "updatedAt": chat.updated_at.isoformat() if chat.updated_at else None,
        })
    return out


async def get_messages(db: AsyncSession, *, chat_id: int, user: User, limit: int = 100) -> list[Message]:
    """Latest messages, oldest first. Incoming messages are marked read."""
    await require_member(db, chat_id, user.id)
    res = await db.execute(
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    messages = list(reversed(res.scalars().all()))

    await db.execute(
        update(Message)
        .where(
            Message.chat_id == chat_id,
            Message.sender_id != user.id,
            Message.is_read == False,  # noqa: E712
        )
        .values(is_read=True, is_delivered=True)
    )
    for m in messages:
        if m.sender_id != user.id:
            m.is_read = True
            m.is_delivered = True
    await db.flush()
    return messages


async def send_message(
    db: AsyncSession,
    *,
    chat_id: int,
    user: User,
    content: str | None,
    message_type: MessageType = MessageType.TEXT,
    media_url: str | None = None,
    reply_to_id: int | None = None,
) -> Message:
    chat = await require_member(db, chat_id, user.id)

    if message_type == MessageType.TEXT and not (content or "").strip():
        raise ValidationError("Message content is required", field="content")
    if message_type != MessageType.TEXT and not media_url:
        raise ValidationError(f"mediaUrl is required for {message_type.value} messages", field="mediaUrl")

    if not chat.is_group:
        other_res = await db.execute(
            select(ChatMember.user_id).where(ChatMember.chat_id == chat_id, ChatMember.user_id != user.id)
        )
        other_id = other_res.scalar_one_or_none()
        if other_id is not None and await is_blocked_between(db, user.id, other_id):
            raise PermissionDeniedError("Messaging is blocked between these users")

    message = Message(
        chat_id=chat_id,
        sender_id=user.id,
        content=content,
        message_type=message_type.value,
        media_url=media_url,
        reply_to_id=reply_to_id,
    )
    db.add(message)
    chat.updated_at = utcnow()
    await db.flush()
    return message


async def _get_message(db: AsyncSession, message_id: int) -> Message:
    message = await db.get(Message, message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    return message


async def mark_message_read(db: AsyncSession, *, message_id: int, user: User) -> Message:
    message = await _get_message(db, message_id)
    await require_member(db, message.chat_id, user.id)
    if message.sender_id != user.id:
        message.is_read = True
        message.is_delivered = True
        await db.flush()
    return message


async def edit_message(db: AsyncSession, *, message_id: int, user: User, content: str) -> Message:
    message = await _get_message(db, message_id)
    if message.sender_id != user.id:
        raise PermissionDeniedError("You can only edit your own messages")
    if message.message_type != MessageType.TEXT.value:
        raise ValidationError("Only text messages can be edited")
    if not content.strip():
        raise ValidationError("Message content is required", field="content")
    message.content = content
    message.is_edited = True
    message.edited_at = utcnow()
    await db.flush()
    return message


async def delete_message(db: AsyncSession, *, message_id: int, user: User) -> None:
    message = await _get_message(db, message_id)
    if message.sender_id != user.id:
        raise PermissionDeniedError("You can only delete your own messages")
    await db.delete(message)
    await db.flush()


async def leave_chat(db: AsyncSession, *, chat_id: int, user: User) -> None:
    """Remove the user from the chat; the chat itself goes once nobody is left."""
    chat = await require_member(db, chat_id, user.id)
    res = await db.execute(
        select(ChatMember).where(ChatMember.chat_id == chat_id, ChatMember.user_id == user.id)
    )
    await db.delete(res.scalar_one())
    await db.flush()

    remaining = await db.execute(select(func.count(ChatMember.id)).where(ChatMember.chat_id == chat_id))
    if remaining.scalar_one() == 0:
        msgs = await db.execute(select(Message).where(Message.chat_id == chat_id))
        for m in msgs.scalars().all():
            await db.delete(m)
        await db.delete(chat)
        await db.flush()


async def search_messages(db: AsyncSession, *, chat_id: int, user: User, query: str) -> list[Message]:
    await require_member(db, chat_id, user.id)
    if not query.strip():
        return []
    res = await db.execute(
        select(Message)
        .where(Message.chat_id == chat_id, Message.content.ilike(f"%{query.strip()}%"))
        .order_by(Message.created_at.desc())
        .limit(50)
    )
    return res.scalars().all()


async def unread_count(db: AsyncSession, *, user_id: int) -> int:
    chat_ids = select(ChatMember.chat_id).where(ChatMember.user_id == user_id)
    res = await db.execute(
        select(func.count(Message.id)).where(
            Message.chat_id.in_(chat_ids),
            Message.sender_id != user_id,
            Message.is_read == False,  # noqa: E712
        )
    )
    return res.scalar_one()


async def recent_unread_messages(
    db: AsyncSession,
    *,
    user_id: int,
    exclude_chat_id: int | None = None,
) -> list[dict]:
    """
    Previews for the notification poller.

    Takes the newest unread messages from other people, at most
    RECENT_UNREAD_PER_CHAT per chat, then the newest RECENT_MESSAGES_LIMIT
    overall. The chat the client currently has open can be excluded.
    """
    chat_ids = [cid for cid in await _member_chat_ids(db, user_id) if cid != exclude_chat_id]

    collected: list[tuple[Message, User]] = []
    for chat_id in chat_ids:
        res = await db.execute(
            select(Message, User)
            .join(User, User.id == Message.sender_id)
            .where(
                Message.chat_id == chat_id,
                Message.sender_id != user_id,
                Message.is_read == False,  # noqa: E712
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(RECENT_UNREAD_PER_CHAT)
        )
        collected.extend(res.all())

    collected.sort(key=lambda row: (row[0].created_at, row[0].id), reverse=True)
    return [
        {
            "id": message.id,
            "chatId": message.chat_id,
            "senderId": sender.id,
            "senderName": sender.name,
            "senderAvatar": sender.avatar,
            "content": preview_text(message),
            "messageType": message.message_type,
            "createdAt": message.created_at.isoformat(),
        }
        for message, sender in collected[:RECENT_MESSAGES_LIMIT]
    ]
