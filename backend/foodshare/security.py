from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from flask import current_app, g
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired


def _serializer() -> URLSafeTimedSerializer:
    secret = current_app.config.get("SECRET_KEY") or "change-me"
    # Salt provides namespace isolation for tokens
    return URLSafeTimedSerializer(secret_key=secret, salt="auth-token")


def issue_token(user_id: int) -> str:
    """Issue a signed bearer token for a user.

    Payload is minimal: {"id": int}
    """
    return _serializer().dumps({"id": int(user_id)})


def verify_token(token: str) -> Optional[int]:
    """Verify a token and return the user id if valid, else None.

    Max age comes from AUTH_TOKEN_MAX_AGE seconds (default 30 days).
    """
    max_age = int(current_app.config.get("AUTH_TOKEN_MAX_AGE") or 60 * 60 * 24 * 30)
    try:
        data = _serializer().loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(data, dict) or data.get("id") is None:
        return None
    try:
        return int(data["id"])
    except (TypeError, ValueError):
        return None


def current_user_id() -> int:
    """Id of the authenticated caller; raises Unauthenticated when there is none."""
    from .errors import Unauthenticated

    uid = getattr(g, "current_user_id", None)
    if uid is None:
        raise Unauthenticated()
    return int(uid)


def login_required(view: Callable):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_user_id()
        return view(*args, **kwargs)

    return wrapper
