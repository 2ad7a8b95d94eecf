from sqlalchemy import func, Index, false
from ..extensions import db
from .enums import claim_status_enum, contact_preference_enum
from .types import BigIntPK


class Claim(db.Model):
    __tablename__ = "claims"

    id = db.Column(BigIntPK, primary_key=True)
    post_id = db.Column(db.BigInteger, db.ForeignKey("food_posts.id", ondelete="CASCADE"), nullable=False)
    claimer_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = db.Column(claim_status_enum, nullable=False, default="pending", server_default="pending")
    message = db.Column(db.Text)
    contact_preference = db.Column(contact_preference_enum, nullable=False, default="in_app", server_default="in_app")
    handover_code = db.Column(db.String(32))
    handover_code_expires_at = db.Column(db.DateTime(timezone=True))
    is_handover_verified = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    approved_at = db.Column(db.DateTime(timezone=True))
    completed_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    post = db.relationship("FoodPost", back_populates="claims")
    claimer = db.relationship("User", back_populates="claims", foreign_keys=[claimer_id])
    ratings = db.relationship("Rating", back_populates="claim", cascade="all, delete-orphan")
    messages = db.relationship(
        "Message",
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )

    __table_args__ = (
        Index("idx_claims_post", "post_id"),
        Index("idx_claims_claimer", "claimer_id"),
        Index("idx_claims_status", "status"),
    )
