"""
Social feed: posts, likes/saves, follows, reports and blocking.
"""

import logging
import re

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db_models import BlockedUser, Follow, Post, PostLike, PostSave, Report, User
from domain.enums import NotificationType
from domain.errors import ConflictError, NotFoundError, ValidationError
from models import PostOut, UserSummary, dump
from services import notification_service

logger = logging.getLogger(__name__)

_HASHTAG_RE = re.compile(r"#(\w+)", re.UNICODE)

INTERACTION_TYPES = ("like", "unlike", "save", "unsave")
FEED_FILTERS = ("all", "following", "business")


def extract_hashtags(content: str) -> list[str]:
    seen = []
    for tag in _HASHTAG_RE.findall(content):
        if tag.lower() not in seen:
            seen.append(tag.lower())
    return seen


async def create_post(
    db: AsyncSession,
    user: User,
    *,
    content: str,
    images: list[str] | None = None,
    video_url: str | None = None,
    post_type: str = "personal",
    business_info: dict | None = None,
    location_name: str | None = None,
    visibility: str = "public",
) -> Post:
    if not content or not content.strip():
        raise ValidationError("Post content is required", field="content")
    if post_type not in ("personal", "business"):
        raise ValidationError(f"Unknown post type: {post_type}", field="postType")

    post = Post(
        user_id=user.id,
        content=content.strip(),
        images=images or [],
        video_url=video_url,
        post_type=post_type,
        business_info=business_info,
        location_name=location_name or user.location,
        hashtags=extract_hashtags(content),
        visibility=visibility,
    )
    db.add(post)
    await db.flush()
    return post


async def get_post(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None or not post.is_active:
        raise NotFoundError("Post", post_id)
    return post


async def _ids(db: AsyncSession, query) -> set[int]:
    res = await db.execute(query)
    return set(res.scalars().all())


async def get_feed(
    db: AsyncSession,
    viewer: User,
    *,
    filter: str = "all",
    location: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    """
    Feed entries enriched with the author summary and the viewer's state
    (isLiked, isSaved, isFollowing). Posts from blocked users are hidden.
    """
    if filter not in FEED_FILTERS:
        raise ValidationError(f"Unknown feed filter: {filter}", field="filter")

    following = await _ids(db, select(Follow.following_id).where(Follow.follower_id == viewer.id))
    blocked = await _ids(db, select(BlockedUser.blocked_id).where(BlockedUser.blocker_id == viewer.id))
    blocked |= await _ids(db, select(BlockedUser.blocker_id).where(BlockedUser.blocked_id == viewer.id))

    query = (
        select(Post, User)
        .join(User, User.id == Post.user_id)
        .where(Post.is_active == True)  # noqa: E712
        .order_by(Post.is_pinned.desc(), Post.created_at.desc(), Post.id.desc())
        .limit(limit)
        .offset(offset)
    )
    if filter == "following":
        query = query.where(Post.user_id.in_(list(following) or [-1]))
    elif filter == "business":
        query = query.where(Post.post_type == "business")
    if location:
        query = query.where(Post.location_name == location)
    if blocked:
        query = query.where(Post.user_id.notin_(list(blocked)))
    # followers-only posts are visible to followers and the author
    query = query.where(
        or_(Post.visibility == "public", Post.user_id == viewer.id, Post.user_id.in_(list(following) or [-1]))
    )

    rows = (await db.execute(query)).all()
    post_ids = [p.id for p, _ in rows]
    liked = await _ids(db, select(PostLike.post_id).where(PostLike.user_id == viewer.id, PostLike.post_id.in_(post_ids))) if post_ids else set()
    saved = await _ids(db, select(PostSave.post_id).where(PostSave.user_id == viewer.id, PostSave.post_id.in_(post_ids))) if post_ids else set()

    feed = []
    for post, author in rows:
        entry = dump(PostOut, post)
        entry.update({
            "user": dump(UserSummary, author),
            "isLiked": post.id in liked,
            "isSaved": post.id in saved,
            "isFollowing": author.id in following,
        })
        feed.append(entry)
    return feed


async def interact(db: AsyncSession, *, post_id: int, user: User, interaction_type: str) -> Post:
    """Apply like/unlike/save/unsave idempotently and keep the counters in sync."""
    if interaction_type not in INTERACTION_TYPES:
        raise ValidationError(f"Unknown interaction: {interaction_type}", field="interactionType")
    post = await get_post(db, post_id)

    model, counter = (PostLike, "like_count") if interaction_type in ("like", "unlike") else (PostSave, "save_count")
    res = await db.execute(select(model).where(model.post_id == post_id, model.user_id == user.id))
    existing = res.scalar_one_or_none()

    if interaction_type in ("like", "save"):
        if existing is None:
            db.add(model(post_id=post_id, user_id=user.id))
            setattr(post, counter, (getattr(post, counter) or 0) + 1)
            if interaction_type == "like" and post.user_id != user.id:
                await notification_service.create_notification(
                    db,
                    user_id=post.user_id,
                    type=NotificationType.LIKE,
                    actor_id=user.id,
                    post_id=post.id,
                    message=f"{user.name} liked your post",
                )
    elif existing is not None:
        await db.delete(existing)
        setattr(post, counter, max(0, (getattr(post, counter) or 0) - 1))

    await db.flush()
    return post


async def follow(db: AsyncSession, *, follower: User, following_id: int) -> Follow:
    if follower.id == following_id:
        raise ValidationError("You cannot follow yourself", field="userId")
    target = await db.get(User, following_id)
    if target is None:
        raise NotFoundError("User", following_id)

    res = await db.execute(
        select(Follow).where(Follow.follower_id == follower.id, Follow.following_id == following_id)
    )
    if res.scalar_one_or_none() is not None:
        raise ConflictError("Already following this user")

    row = Follow(follower_id=follower.id, following_id=following_id)
    db.add(row)
    await notification_service.create_notification(
        db,
        user_id=following_id,
        type=NotificationType.FOLLOW,
        actor_id=follower.id,
        message=f"{follower.name} started following you",
    )
    await db.flush()
    return row


async def unfollow(db: AsyncSession, *, follower: User, following_id: int) -> bool:
    res = await db.execute(
        delete(Follow).where(Follow.follower_id == follower.id, Follow.following_id == following_id)
    )
    return bool(res.rowcount)


async def create_report(
    db: AsyncSession,
    reporter: User,
    *,
    reason: str | None,
    reported_user_id: int | None = None,
    post_id: int | None = None,
    description: str | None = None,
) -> Report:
    """Validation happens before anything is written."""
    if not reason or not reason.strip():
        raise ValidationError("A reason is required", field="reason")
    if reported_user_id is None and post_id is None:
        raise ValidationError("reportedUserId or postId is required")
    if reported_user_id is not None and await db.get(User, reported_user_id) is None:
        raise NotFoundError("User", reported_user_id)
    if post_id is not None:
        await get_post(db, post_id)

    report = Report(
        reporter_id=reporter.id,
        reported_user_id=reported_user_id,
        post_id=post_id,
        reason=reason.strip(),
        description=description,
    )
    db.add(report)
    await db.flush()
    logger.info(f"Report {report.id} filed by user {reporter.id}")
    return report


async def list_reports(db: AsyncSession, *, status: str | None = None) -> list[Report]:
    query = select(Report).order_by(Report.created_at.desc())
    if status:
        query = query.where(Report.status == status)
    res = await db.execute(query)
    return res.scalars().all()


async def block_user(db: AsyncSession, *, blocker: User, blocked_id: int) -> BlockedUser:
    if blocker.id == blocked_id:
        raise ValidationError("You cannot block yourself", field="blockedUserId")
    if await db.get(User, blocked_id) is None:
        raise NotFoundError("User", blocked_id)

    res = await db.execute(
        select(BlockedUser).where(BlockedUser.blocker_id == blocker.id, BlockedUser.blocked_id == blocked_id)
    )
    existing = res.scalar_one_or_none()
    if existing is not None:
        return existing

    row = BlockedUser(blocker_id=blocker.id, blocked_id=blocked_id)
    db.add(row)
    # blocking also ends any follow relation in both directions
    await db.execute(
        delete(Follow).where(
            or_(
                (Follow.follower_id == blocker.id) & (Follow.following_id == blocked_id),
                (Follow.follower_id == blocked_id) & (Follow.following_id == blocker.id),
            )
        )
    )
    await db.flush()
    return row


async def unblock_user(db: AsyncSession, *, blocker: User, blocked_id: int) -> bool:
    res = await db.execute(
        delete(BlockedUser).where(BlockedUser.blocker_id == blocker.id, BlockedUser.blocked_id == blocked_id)
    )
    return bool(res.rowcount)


async def list_blocked(db: AsyncSession, *, blocker: User) -> list[User]:
    res = await db.execute(
        select(User)
        .join(BlockedUser, BlockedUser.blocked_id == User.id)
        .where(BlockedUser.blocker_id == blocker.id)
        .order_by(BlockedUser.created_at.desc())
    )
    return res.scalars().all()
