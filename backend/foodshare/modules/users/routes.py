from flask import Blueprint, jsonify

from ...schemas.base import QuerySchema, load_args, load_json
from ...schemas.rating import RatingSchema
from ...schemas.user import ProfileUpdateSchema, UserSchema
from ...security import current_user_id, login_required
from ...services import get_services

bp = Blueprint("users", __name__, url_prefix="/users")

_user_schema = UserSchema()


@bp.get("/me")
@login_required
def get_me():
    return jsonify(_user_schema.dump(get_services().users.get(current_user_id())))


@bp.patch("/me")
@login_required
def update_me():
    uid = current_user_id()
    changes = load_json(ProfileUpdateSchema())
    user = get_services().users.update_profile(uid, uid, changes)
    return jsonify(_user_schema.dump(user))


@bp.get("/<int:user_id>")
def get_user(user_id: int):
    """Public profile with reputation and exchange counters."""
    return jsonify(_user_schema.dump(get_services().users.get(user_id)))


@bp.patch("/<int:user_id>")
@login_required
def update_user(user_id: int):
    changes = load_json(ProfileUpdateSchema())
    user = get_services().users.update_profile(user_id, current_user_id(), changes)
    return jsonify(_user_schema.dump(user))


@bp.get("/<int:user_id>/ratings")
def list_user_ratings(user_id: int):
    args = load_args(QuerySchema())
    services = get_services()
    services.users.get(user_id)
    ratings = services.ratings.list_received(user_id, limit=args["limit"], offset=args["offset"])
    return jsonify(RatingSchema().dump(ratings, many=True))
