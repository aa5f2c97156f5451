"""
User profile operations.
"""
import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import (
    BlockedUser, Call, CartItem, Chat, ChatMember, Follow, Message, Order, OrderItem, Post,
    PostLike, PostSave, PrivacyPolicy, Product, Report, Session, SocialNotification, Story,
    StoryView, TermsOfService, User, Vendor, VerificationRequest, utcnow,
)
from domain.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    *,
    name: str,
    location: str,
    avatar: str | None = None,
    bio: str | None = None,
) -> User:
    if not name.strip():
        raise ValidationError("Name is required", field="name")
    if not location.strip():
        raise ValidationError("Location is required", field="location")

    user.name = name.strip()
    user.location = location.strip()
    if avatar is not None:
        user.avatar = avatar
    if bio is not None:
        user.bio = bio
    user.updated_at = utcnow()
    await db.flush()
    return user


async def search_users(db: AsyncSession, *, query: str, exclude_user_id: int, limit: int = 20) -> list[User]:
    pattern = f"%{query.strip()}%"
    res = await db.execute(
        select(User)
        .where(
            User.id != exclude_user_id,
            User.is_admin == False,  # noqa: E712
            or_(User.name.ilike(pattern), User.phone_number.ilike(pattern), User.email.ilike(pattern)),
        )
        .order_by(User.name)
        .limit(limit)
    )
    return res.scalars().all()


async def delete_account(db: AsyncSession, user: User) -> None:
    """
    Remove the user together with everything that references them.

    Mirrors the ON DELETE rules declared on the models so SQLite, which
    does not enforce foreign keys by default, ends in the same state as
    Postgres: owned rows are deleted and nullable references are cleared.
    """
    uid = user.id

    vendor_ids = select(Vendor.id).where(Vendor.user_id == uid).scalar_subquery()
    product_ids = select(Product.id).where(Product.vendor_id.in_(vendor_ids)).scalar_subquery()
    await db.execute(delete(CartItem).where(or_(CartItem.user_id == uid, CartItem.product_id.in_(product_ids))))
    await db.execute(update(OrderItem).where(OrderItem.product_id.in_(product_ids)).values(product_id=None))
    await db.execute(update(Order).where(Order.vendor_id.in_(vendor_ids)).values(vendor_id=None))
    await db.execute(delete(VerificationRequest).where(or_(
        VerificationRequest.user_id == uid, VerificationRequest.vendor_id.in_(vendor_ids),
    )))
    await db.execute(delete(Product).where(Product.vendor_id.in_(vendor_ids)))
    await db.execute(delete(Vendor).where(Vendor.user_id == uid))

    order_ids = select(Order.id).where(or_(Order.buyer_id == uid, Order.seller_id == uid)).scalar_subquery()
    await db.execute(delete(OrderItem).where(OrderItem.order_id.in_(order_ids)))
    await db.execute(delete(Order).where(or_(Order.buyer_id == uid, Order.seller_id == uid)))

    post_ids = select(Post.id).where(Post.user_id == uid).scalar_subquery()
    await db.execute(delete(PostLike).where(or_(PostLike.user_id == uid, PostLike.post_id.in_(post_ids))))
    await db.execute(delete(PostSave).where(or_(PostSave.user_id == uid, PostSave.post_id.in_(post_ids))))
    await db.execute(delete(SocialNotification).where(or_(
        SocialNotification.user_id == uid, SocialNotification.post_id.in_(post_ids),
    )))
    await db.execute(delete(Report).where(or_(
        Report.reporter_id == uid, Report.reported_user_id == uid, Report.post_id.in_(post_ids),
    )))
    await db.execute(delete(Post).where(Post.user_id == uid))

    story_ids = select(Story.id).where(Story.user_id == uid).scalar_subquery()
    await db.execute(delete(StoryView).where(or_(StoryView.viewer_id == uid, StoryView.story_id.in_(story_ids))))
    await db.execute(delete(Story).where(Story.user_id == uid))

    message_ids = select(Message.id).where(Message.sender_id == uid).scalar_subquery()
    await db.execute(update(Message).where(Message.reply_to_id.in_(message_ids)).values(reply_to_id=None))
    await db.execute(delete(Message).where(Message.sender_id == uid))
    await db.execute(delete(Call).where(or_(Call.caller_id == uid, Call.receiver_id == uid)))

    await db.execute(delete(Session).where(Session.user_id == uid))
    await db.execute(delete(ChatMember).where(ChatMember.user_id == uid))
    await db.execute(delete(Follow).where(or_(Follow.follower_id == uid, Follow.following_id == uid)))
    await db.execute(delete(BlockedUser).where(or_(BlockedUser.blocker_id == uid, BlockedUser.blocked_id == uid)))

    await db.execute(update(Chat).where(Chat.created_by == uid).values(created_by=None))
    await db.execute(update(SocialNotification).where(SocialNotification.actor_id == uid).values(actor_id=None))
    await db.execute(update(VerificationRequest).where(VerificationRequest.reviewed_by == uid).values(reviewed_by=None))
    await db.execute(update(PrivacyPolicy).where(PrivacyPolicy.updated_by == uid).values(updated_by=None))
    await db.execute(update(TermsOfService).where(TermsOfService.updated_by == uid).values(updated_by=None))

    await db.delete(user)
    await db.flush()
    logger.info(f"Deleted account {uid}")
