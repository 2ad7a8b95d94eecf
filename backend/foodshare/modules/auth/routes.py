import logging

from flask import jsonify, session

from ...schemas.base import load_json
from ...schemas.user import LoginSchema, RegisterSchema, UserSchema
from ...security import current_user_id, issue_token, login_required
from ...services import get_services
from . import bp

logger = logging.getLogger(__name__)

_user_schema = UserSchema()


def _signed_in(user, status: int = 200):
    session.clear()
    session["user_id"] = int(user.id)
    body = _user_schema.dump(user)
    body["token"] = issue_token(int(user.id))
    return jsonify(body), status


@bp.post("/register")
def register():
    data = load_json(RegisterSchema())
    user = get_services().users.register(data)
    return _signed_in(user, 201)


@bp.post("/login")
def login():
    data = load_json(LoginSchema())
    user = get_services().users.authenticate(data["username"], data["password"])
    logger.info("User %s logged in", user.id)
    return _signed_in(user)


@bp.post("/logout")
def logout():
    session.clear()
    return jsonify({"ok": True})


@bp.get("/me")
@login_required
def me():
    user = get_services().users.get(current_user_id())
    return jsonify(_user_schema.dump(user))
