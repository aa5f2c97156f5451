"""
Domain constants used across services/routers.
"""

ADMIN_TOKEN_PREFIX = "admin-"

# Shown in notification previews in place of non-text message bodies
MESSAGE_PLACEHOLDERS = {
    "image": "صورة",
    "audio": "رسالة صوتية",
    "file": "ملف",
}
DEFAULT_MESSAGE_PLACEHOLDER = "رسالة"

RECENT_UNREAD_PER_CHAT = 3
RECENT_MESSAGES_LIMIT = 5

# Feature flags seeded on startup: (key, name, description, category, priority)
DEFAULT_FEATURES = [
    ("messaging", "Messaging", "Private and group chats", "core", 1),
    ("stories", "Stories", "24-hour stories", "social", 2),
    ("voice_calls", "Voice calls", "Voice and video calls", "communication", 3),
    ("marketplace", "Marketplace", "Stores and products", "commerce", 4),
    ("cart", "Cart", "Shopping cart and orders", "commerce", 5),
    ("neighborhoods", "Neighborhoods", "Neighborhood groups", "social", 6),
    ("affiliate", "Affiliate", "Affiliate marketing program", "commerce", 7),
]

# Vendor categories seeded on startup: (name, name_ar, icon, sort_order)
DEFAULT_VENDOR_CATEGORIES = [
    ("Restaurants", "مطاعم", "utensils", 1),
    ("Groceries", "بقالة", "shopping-basket", 2),
    ("Fashion", "أزياء", "shirt", 3),
    ("Electronics", "إلكترونيات", "smartphone", 4),
    ("Services", "خدمات", "wrench", 5),
    ("Other", "أخرى", "store", 6),
]

ALLOWED_UPLOAD_PREFIXES = ("image/", "video/")
