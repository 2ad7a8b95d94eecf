from marshmallow import Schema, fields, validate

from ..models.enums import CLAIM_STATUSES, CONTACT_PREFERENCES
from .base import QuerySchema, StrictSchema, UTCDateTime
from .post import PostSummarySchema
from .user import UserSummarySchema

REQUESTABLE_STATUSES = ("approved", "rejected", "cancelled", "in_progress", "completed")


class ClaimCreateSchema(StrictSchema):
    post_id = fields.Int(data_key="postId", required=True, strict=True)
    message = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    contact_preference = fields.Str(
        data_key="contactPreference",
        load_default="in_app",
        validate=validate.OneOf(CONTACT_PREFERENCES),
    )


class PostClaimSchema(StrictSchema):
    """Body for POST /posts/<id>/claim; older clients send ``note``."""

    message = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    note = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    contact_preference = fields.Str(
        data_key="contactPreference",
        load_default="in_app",
        validate=validate.OneOf(CONTACT_PREFERENCES),
    )


class ClaimUpdateSchema(StrictSchema):
    status = fields.Str(required=True, validate=validate.OneOf(REQUESTABLE_STATUSES))


class HandoverVerifySchema(StrictSchema):
    code = fields.Str(required=True, validate=validate.Length(min=1, max=32))


class ClaimQuerySchema(QuerySchema):
    post_id = fields.Int(data_key="postId")
    status = fields.Str(validate=validate.OneOf(CLAIM_STATUSES))
    role = fields.Str(validate=validate.OneOf(["owner", "claimer"]))


class ClaimSchema(Schema):
    id = fields.Int()
    post_id = fields.Int(data_key="postId")
    claimer_id = fields.Int(data_key="claimerId")
    status = fields.Str()
    message = fields.Str()
    contact_preference = fields.Str(data_key="contactPreference")
    is_handover_verified = fields.Bool(data_key="isHandoverVerified")
    # The code itself is only ever returned to the owner who generates it
    has_handover_code = fields.Method("get_has_handover_code", data_key="hasHandoverCode")
    handover_code_expires_at = UTCDateTime(data_key="handoverCodeExpiresAt")
    approved_at = UTCDateTime(data_key="approvedAt")
    completed_at = UTCDateTime(data_key="completedAt")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")
    post = fields.Nested(PostSummarySchema)
    claimer = fields.Nested(UserSummarySchema)

    def get_has_handover_code(self, obj):
        return bool(obj.handover_code)
