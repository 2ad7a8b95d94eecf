from marshmallow import Schema, fields, validate

from .base import StrictSchema, UTCDateTime


class RatingCreateSchema(StrictSchema):
    # claimId/fromUserId are accepted for older clients and checked against the path and session
    claim_id = fields.Int(data_key="claimId", strict=True)
    from_user_id = fields.Int(data_key="fromUserId", strict=True)
    to_user_id = fields.Int(data_key="toUserId", strict=True, allow_none=True)
    # Range is enforced by the rating service so out-of-range values surface as InvalidInput
    rating = fields.Int(required=True, strict=True)
    comment = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    categories = fields.List(
        fields.Str(validate=validate.Length(min=1, max=40)),
        load_default=list,
        validate=validate.Length(max=10),
    )


class RatingSchema(Schema):
    id = fields.Int()
    claim_id = fields.Int(data_key="claimId")
    from_user_id = fields.Int(data_key="fromUserId")
    to_user_id = fields.Int(data_key="toUserId")
    rating = fields.Int()
    comment = fields.Str()
    categories = fields.List(fields.Str())
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")
