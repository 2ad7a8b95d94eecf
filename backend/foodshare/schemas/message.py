from marshmallow import Schema, fields, validate

from .base import StrictSchema, UTCDateTime


class MessageCreateSchema(StrictSchema):
    content = fields.Str(required=True, validate=validate.Length(min=1, max=2000))


class MessageSchema(Schema):
    id = fields.Int()
    claim_id = fields.Int(data_key="claimId")
    sender_id = fields.Int(data_key="senderId")
    receiver_id = fields.Int(data_key="receiverId")
    content = fields.Str()
    is_read = fields.Bool(data_key="isRead")
    created_at = UTCDateTime(data_key="createdAt")
