from sqlalchemy import func, UniqueConstraint, CheckConstraint, Index
from ..extensions import db
from .types import BigIntPK, JSONType


class Rating(db.Model):
    __tablename__ = "ratings"

    id = db.Column(BigIntPK, primary_key=True)
    claim_id = db.Column(db.BigInteger, db.ForeignKey("claims.id", ondelete="CASCADE"), nullable=False)
    from_user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    categories = db.Column(JSONType, nullable=False, default=list)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    claim = db.relationship("Claim", back_populates="ratings")
    from_user = db.relationship("User", foreign_keys=[from_user_id])
    to_user = db.relationship("User", foreign_keys=[to_user_id])

    __table_args__ = (
        UniqueConstraint("claim_id", "from_user_id", "to_user_id", name="uq_ratings_claim_direction"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
        Index("idx_ratings_to_user", "to_user_id"),
    )
