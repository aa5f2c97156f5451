"""
Domain enums and the status state machines built on them.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARED = "prepared"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# pending -> confirmed -> prepared -> delivered, or pending -> cancelled
ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARED},
    OrderStatus.PREPARED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class CallStatus(str, Enum):
    RINGING = "ringing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ENDED = "ended"


class CallType(str, Enum):
    VOICE = "voice"
    VIDEO = "video"


class VendorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationType(str, Enum):
    USER = "user"
    STORE = "store"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    FILE = "file"


class NotificationType(str, Enum):
    LIKE = "like"
    FOLLOW = "follow"
    ORDER = "order"
    VERIFICATION = "verification"
    ANNOUNCEMENT = "announcement"


class OtpChannel(str, Enum):
    WHATSAPP = "whatsapp"
    EMAIL = "email"
