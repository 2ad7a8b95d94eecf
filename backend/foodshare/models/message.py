from sqlalchemy import Index, func, false
from ..extensions import db
from .types import BigIntPK


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(BigIntPK, primary_key=True)
    claim_id = db.Column(db.BigInteger, db.ForeignKey("claims.id", ondelete="CASCADE"), nullable=False)
    sender_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    receiver_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    claim = db.relationship("Claim", back_populates="messages")
    sender = db.relationship("User", foreign_keys=[sender_id])
    receiver = db.relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        Index("idx_messages_claim", "claim_id"),
        Index("idx_messages_receiver_read", "receiver_id", "is_read"),
    )
