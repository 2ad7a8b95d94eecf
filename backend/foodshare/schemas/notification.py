from marshmallow import Schema, fields, validate

from ..models.enums import NOTIFICATION_TYPES
from .base import QuerySchema, UTCDateTime


class NotificationQuerySchema(QuerySchema):
    is_read = fields.Bool(data_key="isRead")
    type = fields.Str(validate=validate.OneOf(NOTIFICATION_TYPES))


class NotificationSchema(Schema):
    id = fields.Int()
    user_id = fields.Int(data_key="userId")
    type = fields.Str()
    title = fields.Str()
    message = fields.Str()
    related_id = fields.Int(data_key="relatedId", allow_none=True)
    related_type = fields.Str(data_key="relatedType", allow_none=True)
    is_read = fields.Bool(data_key="isRead")
    read_at = UTCDateTime(data_key="readAt")
    created_at = UTCDateTime(data_key="createdAt")
