from flask import Blueprint, Flask, g, request, session

from ...modules.auth import bp as auth_bp
from ...modules.posts.routes import bp as posts_bp
from ...modules.claims.routes import bp as claims_bp
from ...modules.messages.routes import bp as messages_bp
from ...modules.users.routes import bp as users_bp
from ...modules.notifications.routes import bp as notifications_bp
from ...modules.public.routes import bp as public_bp


def register_api(app: Flask) -> None:
    api_v1 = Blueprint("api_v1", __name__, url_prefix="/api/v1")

    # Browser clients authenticate with the session cookie set at login;
    # other clients send the signed bearer token returned alongside it.
    @api_v1.before_request  # type: ignore
    def _load_current_user():
        from ...extensions import db
        from ...models.user import User  # local import to avoid circulars
        from ...security import verify_token

        uid: int | None = None
        auth = request.headers.get("Authorization") or ""
        if auth.lower().startswith("bearer "):
            uid = verify_token(auth[7:].strip())
        elif session.get("user_id") is not None:
            try:
                uid = int(session["user_id"])
            except (TypeError, ValueError):
                uid = None

        user_obj = db.session.get(User, uid) if uid is not None else None
        g.current_user = user_obj  # type: ignore[attr-defined]
        g.current_user_id = user_obj.id if user_obj is not None else None  # type: ignore[attr-defined]

    # Mount feature blueprints
    api_v1.register_blueprint(auth_bp)
    api_v1.register_blueprint(posts_bp)
    api_v1.register_blueprint(claims_bp)
    api_v1.register_blueprint(messages_bp)
    api_v1.register_blueprint(users_bp)
    api_v1.register_blueprint(notifications_bp)
    api_v1.register_blueprint(public_bp)

    app.register_blueprint(api_v1)
