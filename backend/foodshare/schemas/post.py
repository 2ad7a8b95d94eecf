from marshmallow import Schema, fields, validate

from ..models.enums import DIETARY_OPTIONS, FOOD_CATEGORIES, POST_STATUSES, POST_TYPES
from .base import QuerySchema, StrictSchema, UTCDateTime
from .user import UserSummarySchema


class PostCreateSchema(StrictSchema):
    type = fields.Str(required=True, validate=validate.OneOf(POST_TYPES))
    title = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    description = fields.Str(allow_none=True, validate=validate.Length(max=5000))
    quantity = fields.Str(allow_none=True, validate=validate.Length(max=120))
    category = fields.Str(required=True, validate=validate.OneOf(FOOD_CATEGORIES))
    dietary = fields.List(fields.Str(validate=validate.OneOf(DIETARY_OPTIONS)), load_default=list)
    latitude = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))
    expiry_time = UTCDateTime(data_key="expiryTime", allow_none=True)


class PostUpdateSchema(PostCreateSchema):
    """Loaded with ``partial=True``; status may only be used to withdraw a post."""

    status = fields.Str(validate=validate.OneOf(["cancelled"]))


class PostQuerySchema(QuerySchema):
    type = fields.Str(validate=validate.OneOf(POST_TYPES))
    user_id = fields.Int(data_key="userId")
    status = fields.Str(validate=validate.OneOf(POST_STATUSES))
    category = fields.List(fields.Str(validate=validate.OneOf(FOOD_CATEGORIES)))
    dietary = fields.List(fields.Str(validate=validate.OneOf(DIETARY_OPTIONS)))
    search = fields.Str(validate=validate.Length(max=200))
    latitude = fields.Float(validate=validate.Range(min=-90, max=90))
    longitude = fields.Float(validate=validate.Range(min=-180, max=180))
    distance = fields.Float(validate=validate.Range(min=0))
    expiry_within = fields.Float(data_key="expiryWithin", validate=validate.Range(min=0))


class ImageCreateSchema(StrictSchema):
    image_url = fields.Str(data_key="imageUrl", required=True, validate=validate.Length(min=1, max=512))
    thumb_url = fields.Str(data_key="thumbUrl", allow_none=True, validate=validate.Length(max=512))


class PostImageSchema(Schema):
    id = fields.Int()
    post_id = fields.Int(data_key="postId")
    image_url = fields.Str(data_key="imageUrl")
    thumb_url = fields.Str(data_key="thumbUrl")
    created_at = UTCDateTime(data_key="createdAt")


class PostSummarySchema(Schema):
    id = fields.Int()
    user_id = fields.Int(data_key="userId")
    type = fields.Str()
    title = fields.Str()
    status = fields.Method("get_status")

    def get_status(self, obj):
        return obj.effective_status()


class PostSchema(PostSummarySchema):
    description = fields.Str()
    quantity = fields.Str()
    category = fields.Str()
    dietary = fields.List(fields.Str())
    latitude = fields.Float(allow_none=True)
    longitude = fields.Float(allow_none=True)
    expiry_time = UTCDateTime(data_key="expiryTime")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")
    images = fields.List(fields.Nested(PostImageSchema))
    owner = fields.Nested(UserSummarySchema)
