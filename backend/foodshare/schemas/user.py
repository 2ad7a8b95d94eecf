from marshmallow import Schema, fields, validate

from .base import StrictSchema, UTCDateTime


class RegisterSchema(StrictSchema):
    username = fields.Str(required=True, validate=[validate.Length(min=3, max=80), validate.Regexp(r"^[A-Za-z0-9_.-]+$")])
    password = fields.Str(required=True, load_only=True, validate=validate.Length(min=8, max=128))
    first_name = fields.Str(data_key="firstName", allow_none=True, validate=validate.Length(max=120))
    last_name = fields.Str(data_key="lastName", allow_none=True, validate=validate.Length(max=120))
    zip_code = fields.Str(data_key="zipCode", allow_none=True, validate=validate.Length(max=20))
    bio = fields.Str(allow_none=True, validate=validate.Length(max=2000))


class LoginSchema(StrictSchema):
    username = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class ProfileUpdateSchema(StrictSchema):
    first_name = fields.Str(data_key="firstName", allow_none=True, validate=validate.Length(max=120))
    last_name = fields.Str(data_key="lastName", allow_none=True, validate=validate.Length(max=120))
    zip_code = fields.Str(data_key="zipCode", allow_none=True, validate=validate.Length(max=20))
    bio = fields.Str(allow_none=True, validate=validate.Length(max=2000))
    current_password = fields.Str(data_key="currentPassword", load_only=True)
    new_password = fields.Str(data_key="newPassword", load_only=True, validate=validate.Length(min=8, max=128))


class UserSummarySchema(Schema):
    id = fields.Int()
    username = fields.Str()
    first_name = fields.Str(data_key="firstName")
    last_name = fields.Str(data_key="lastName")
    average_rating = fields.Float(data_key="averageRating", allow_none=True)
    is_trusted = fields.Bool(data_key="isTrusted")


class UserSchema(UserSummarySchema):
    zip_code = fields.Str(data_key="zipCode")
    bio = fields.Str()
    rating_count = fields.Int(data_key="ratingCount")
    donation_count = fields.Int(data_key="donationCount")
    received_count = fields.Int(data_key="receivedCount")
    created_at = UTCDateTime(data_key="createdAt")
