from __future__ import annotations

from typing import Iterable

from flask import request
from marshmallow import EXCLUDE, RAISE, Schema, ValidationError, fields, validate

from ..timeutil import as_utc


class StrictSchema(Schema):
    """Request bodies: unknown or mistyped fields are rejected, never passed through."""

    class Meta:
        unknown = RAISE


class QuerySchema(Schema):
    """Query strings tolerate unrelated params (cache busters and the like)."""

    class Meta:
        unknown = EXCLUDE

    limit = fields.Int(load_default=50, validate=validate.Range(min=1, max=100))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))


class UTCDateTime(fields.DateTime):
    """ISO-8601 in and out, always as aware UTC."""

    def _serialize(self, value, attr, obj, **kwargs):
        return super()._serialize(as_utc(value), attr, obj, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        return as_utc(super()._deserialize(value, attr, data, **kwargs))


def load_json(schema: Schema, partial: bool = False) -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", field_name="_schema")
    return schema.load(data, partial=partial)


def load_args(schema: Schema, list_fields: Iterable[str] = ()) -> dict:
    """Load query args; ``list_fields`` accept repeated keys or comma-separated values."""
    list_fields = set(list_fields)
    data: dict = {}
    for key in request.args:
        values = request.args.getlist(key)
        if key in list_fields:
            data[key] = [v.strip() for raw in values for v in raw.split(",") if v.strip()]
        else:
            data[key] = values[-1]
    return schema.load(data)
