from sqlalchemy import Index, func, false
from ..extensions import db
from .enums import notification_type_enum
from .types import BigIntPK


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(BigIntPK, primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = db.Column(notification_type_enum, nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    # Pointer back to the triggering entity for client-side deep-linking
    related_id = db.Column(db.BigInteger)
    related_type = db.Column(db.String(40))
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default=false())
    read_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    user = db.relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "is_read"),
    )
