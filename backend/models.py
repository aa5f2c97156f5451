"""
Pydantic response schemas.

ORM rows are converted with ``dump(Schema, row)``, which validates from
attributes and serializes with camelCase aliases for the SPA.
Request bodies live next to their routes.
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ApiBase(BaseModel):
    """Shared base: allows construction by Python name or alias, and from ORM rows."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


def dump(schema: Type[ApiBase], obj: Any) -> dict:
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_all(schema: Type[ApiBase], objs: Iterable[Any]) -> list[dict]:
    return [dump(schema, o) for o in objs]


# ── Users ───────────────────────────────────────────────────────────

class UserSummary(ApiBase):
    id: int
    name: str
    avatar: Optional[str] = None
    location: str = ""
    is_verified: bool = Field(False, alias="isVerified")
    is_online: bool = Field(False, alias="isOnline")


class UserProfile(UserSummary):
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    email: Optional[str] = None
    bio: Optional[str] = None
    is_admin: bool = Field(False, alias="isAdmin")
    last_seen: Optional[datetime] = Field(None, alias="lastSeen")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


# ── Messaging ───────────────────────────────────────────────────────

class MessageOut(ApiBase):
    id: int
    chat_id: int = Field(..., alias="chatId")
    sender_id: int = Field(..., alias="senderId")
    content: Optional[str] = None
    message_type: str = Field(..., alias="messageType")
    media_url: Optional[str] = Field(None, alias="mediaUrl")
    reply_to_id: Optional[int] = Field(None, alias="replyToId")
    is_read: bool = Field(False, alias="isRead")
    is_delivered: bool = Field(False, alias="isDelivered")
    is_edited: bool = Field(False, alias="isEdited")
    created_at: datetime = Field(..., alias="createdAt")


class StoryOut(ApiBase):
    id: int
    user_id: int = Field(..., alias="userId")
    content: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    video_url: Optional[str] = Field(None, alias="videoUrl")
    background_color: Optional[str] = Field(None, alias="backgroundColor")
    text_color: Optional[str] = Field(None, alias="textColor")
    location: str = ""
    view_count: int = Field(0, alias="viewCount")
    expires_at: datetime = Field(..., alias="expiresAt")
    created_at: datetime = Field(..., alias="createdAt")


# ── Social ──────────────────────────────────────────────────────────

class PostOut(ApiBase):
    id: int
    user_id: int = Field(..., alias="userId")
    content: str
    images: List[str] = Field(default_factory=list)
    video_url: Optional[str] = Field(None, alias="videoUrl")
    post_type: str = Field(..., alias="postType")
    business_info: Optional[dict] = Field(None, alias="businessInfo")
    location_name: Optional[str] = Field(None, alias="locationName")
    hashtags: List[str] = Field(default_factory=list)
    visibility: str = "public"
    like_count: int = Field(0, alias="likeCount")
    save_count: int = Field(0, alias="saveCount")
    is_pinned: bool = Field(False, alias="isPinned")
    created_at: datetime = Field(..., alias="createdAt")


class NotificationOut(ApiBase):
    id: int
    type: str
    actor_id: Optional[int] = Field(None, alias="actorId")
    post_id: Optional[int] = Field(None, alias="postId")
    title: Optional[str] = None
    message: str
    is_read: bool = Field(False, alias="isRead")
    created_at: datetime = Field(..., alias="createdAt")


class ReportOut(ApiBase):
    id: int
    reporter_id: int = Field(..., alias="reporterId")
    reported_user_id: Optional[int] = Field(None, alias="reportedUserId")
    post_id: Optional[int] = Field(None, alias="postId")
    reason: str
    description: Optional[str] = None
    status: str
    created_at: datetime = Field(..., alias="createdAt")


# ── Calls ───────────────────────────────────────────────────────────

class CallOut(ApiBase):
    id: int
    caller_id: int = Field(..., alias="callerId")
    receiver_id: int = Field(..., alias="receiverId")
    call_type: str = Field(..., alias="callType")
    status: str
    duration: int = 0
    started_at: Optional[datetime] = Field(None, alias="startedAt")
    answered_at: Optional[datetime] = Field(None, alias="answeredAt")
    ended_at: Optional[datetime] = Field(None, alias="endedAt")


# ── Marketplace ─────────────────────────────────────────────────────

class VendorCategoryOut(ApiBase):
    id: int
    name: str
    name_ar: str = Field(..., alias="nameAr")
    icon: Optional[str] = None
    sort_order: int = Field(0, alias="sortOrder")


class VendorOut(ApiBase):
    id: int
    user_id: int = Field(..., alias="userId")
    business_name: str = Field(..., alias="businessName")
    display_name: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = None
    category_id: Optional[int] = Field(None, alias="categoryId")
    location: str = ""
    address: Optional[str] = None
    phone: Optional[str] = None
    logo: Optional[str] = None
    status: str
    is_verified: bool = Field(False, alias="isVerified")
    is_featured: bool = Field(False, alias="isFeatured")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class ProductOut(ApiBase):
    id: int
    vendor_id: int = Field(..., alias="vendorId")
    name: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = Field(None, alias="imageUrl")
    category: Optional[str] = None
    stock_quantity: Optional[int] = Field(None, alias="stockQuantity")
    is_active: bool = Field(True, alias="isActive")


class OrderItemOut(ApiBase):
    id: int
    product_id: Optional[int] = Field(None, alias="productId")
    product_name: str = Field(..., alias="productName")
    quantity: int
    unit_price: float = Field(..., alias="unitPrice")
    line_total: float = Field(..., alias="lineTotal")


class OrderOut(ApiBase):
    id: int
    buyer_id: int = Field(..., alias="buyerId")
    seller_id: int = Field(..., alias="sellerId")
    vendor_id: Optional[int] = Field(None, alias="vendorId")
    status: str
    customer_name: str = Field(..., alias="customerName")
    customer_phone: str = Field(..., alias="customerPhone")
    delivery_address: str = Field(..., alias="deliveryAddress")
    notes: Optional[str] = None
    total_amount: float = Field(..., alias="totalAmount")
    cancellation_reason: Optional[str] = Field(None, alias="cancellationReason")
    items: List[OrderItemOut] = Field(default_factory=list)
    confirmed_at: Optional[datetime] = Field(None, alias="confirmedAt")
    prepared_at: Optional[datetime] = Field(None, alias="preparedAt")
    delivered_at: Optional[datetime] = Field(None, alias="deliveredAt")
    cancelled_at: Optional[datetime] = Field(None, alias="cancelledAt")
    created_at: datetime = Field(..., alias="createdAt")


# ── Verification / features / content ──────────────────────────────

class VerificationRequestOut(ApiBase):
    id: int
    user_id: int = Field(..., alias="userId")
    vendor_id: Optional[int] = Field(None, alias="storeId")
    request_type: str = Field(..., alias="requestType")
    reason: Optional[str] = None
    documents: List[str] = Field(default_factory=list)
    status: str
    admin_note: Optional[str] = Field(None, alias="adminNote")
    reviewed_by: Optional[int] = Field(None, alias="reviewedBy")
    reviewed_at: Optional[datetime] = Field(None, alias="reviewedAt")
    submitted_at: datetime = Field(..., alias="submittedAt")


class FeatureOut(ApiBase):
    id: str = Field(..., validation_alias="key")
    name: str
    description: Optional[str] = None
    is_enabled: bool = Field(..., alias="isEnabled")
    category: str
    priority: int


class PolicyOut(ApiBase):
    id: int
    title: str
    content: str
    version: int
    is_active: bool = Field(..., alias="isActive")
    created_at: Optional[datetime] = Field(None, alias="updatedAt")


class PrivacySectionOut(ApiBase):
    id: int
    section_key: str = Field(..., alias="sectionKey")
    title: str
    content: str
    icon: Optional[str] = None
    sort_order: int = Field(0, alias="sortOrder")
    is_active: bool = Field(True, alias="isActive")
