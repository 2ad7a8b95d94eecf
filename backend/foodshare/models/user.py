from sqlalchemy import func, false
from ..extensions import db
from .types import BigIntPK


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(BigIntPK, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.Text, nullable=False)
    first_name = db.Column(db.String(120))
    last_name = db.Column(db.String(120))
    zip_code = db.Column(db.String(20))
    bio = db.Column(db.Text)
    # Reputation, recomputed from received ratings
    average_rating = db.Column(db.Float)
    rating_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    is_trusted = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    # Completed exchange counters
    donation_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    received_count = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    posts = db.relationship(
        "FoodPost",
        back_populates="owner",
        foreign_keys="FoodPost.user_id",
        lazy=True,
        cascade="all, delete-orphan",
    )
    claims = db.relationship(
        "Claim",
        back_populates="claimer",
        foreign_keys="Claim.claimer_id",
        lazy=True,
        cascade="all, delete-orphan",
    )
    notifications = db.relationship(
        "Notification",
        back_populates="user",
        lazy=True,
        cascade="all, delete-orphan",
    )

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.username
