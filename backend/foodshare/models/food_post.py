from datetime import datetime

from sqlalchemy import func, Index
from ..extensions import db
from ..timeutil import as_utc, utcnow
from .enums import post_type_enum, food_category_enum, post_status_enum
from .types import BigIntPK, JSONType

# Statuses from which a post can still lapse into "expired"
EXPIRABLE_STATUSES = ("available", "claimed")


class FoodPost(db.Model):
    __tablename__ = "food_posts"

    id = db.Column(BigIntPK, primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(post_type_enum, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    quantity = db.Column(db.String(120))
    category = db.Column(food_category_enum, nullable=False)
    # Unordered set of dietary tags, stored sorted
    dietary = db.Column(JSONType, nullable=False, default=list)
    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)
    expiry_time = db.Column(db.DateTime(timezone=True), nullable=False)
    status = db.Column(post_status_enum, nullable=False, default="available", server_default="available")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    owner = db.relationship("User", back_populates="posts", foreign_keys=[user_id])
    images = db.relationship(
        "FoodPostImage",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="FoodPostImage.id",
    )
    claims = db.relationship("Claim", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_food_posts_type_status", "type", "status"),
        Index("idx_food_posts_user", "user_id"),
        Index("idx_food_posts_expiry", "expiry_time"),
        Index("idx_food_posts_created_at", "created_at"),
    )

    def effective_status(self, now: datetime | None = None) -> str:
        """Stored status with expiry applied; nothing is written back."""
        if self.status in EXPIRABLE_STATUSES and self.expiry_time is not None:
            if as_utc(self.expiry_time) <= (now or utcnow()):
                return "expired"
        return self.status


class FoodPostImage(db.Model):
    __tablename__ = "food_post_images"

    id = db.Column(BigIntPK, primary_key=True)
    post_id = db.Column(db.BigInteger, db.ForeignKey("food_posts.id", ondelete="CASCADE"), nullable=False)
    image_url = db.Column(db.String(512), nullable=False)
    thumb_url = db.Column(db.String(512))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    post = db.relationship("FoodPost", back_populates="images")

    __table_args__ = (
        Index("idx_food_post_images_post", "post_id"),
    )
