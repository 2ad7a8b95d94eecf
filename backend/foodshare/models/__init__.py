# Import every model so metadata (create_all, Alembic autogenerate) sees all tables
from .user import User
from .food_post import FoodPost, FoodPostImage
from .claim import Claim
from .rating import Rating
from .notification import Notification
from .message import Message

__all__ = [
    "User",
    "FoodPost",
    "FoodPostImage",
    "Claim",
    "Rating",
    "Notification",
    "Message",
]
