from sqlalchemy import Enum

# Value tuples are the single source of truth; schemas and the /enums endpoint reuse them.
# Enum types get created by migrations on Postgres and degrade to VARCHAR on SQLite.

POST_TYPES = ("donation", "request")
FOOD_CATEGORIES = ("meal", "produce", "bakery", "dairy", "pantry", "beverages", "other")
DIETARY_OPTIONS = ("vegetarian", "vegan", "gluten_free", "dairy_free", "nut_free", "halal", "kosher")
POST_STATUSES = ("available", "claimed", "in_progress", "completed", "expired", "cancelled")
CLAIM_STATUSES = ("pending", "approved", "in_progress", "rejected", "cancelled", "completed")
CONTACT_PREFERENCES = ("in_app", "phone", "email")
NOTIFICATION_TYPES = (
    "claim_request",
    "claim_accepted",
    "claim_rejected",
    "claim_cancelled",
    "claim_in_progress",
    "claim_completed",
    "rating",
    "rating_update",
    "message",
    "expiry_warning",
)

# Claims that still hold a post
ACTIVE_CLAIM_STATUSES = ("pending", "approved", "in_progress")

post_type_enum = Enum(*POST_TYPES, name="post_type_enum")
food_category_enum = Enum(*FOOD_CATEGORIES, name="food_category_enum")
post_status_enum = Enum(*POST_STATUSES, name="post_status_enum")
claim_status_enum = Enum(*CLAIM_STATUSES, name="claim_status_enum")
contact_preference_enum = Enum(*CONTACT_PREFERENCES, name="contact_preference_enum")
notification_type_enum = Enum(*NOTIFICATION_TYPES, name="notification_type_enum")
