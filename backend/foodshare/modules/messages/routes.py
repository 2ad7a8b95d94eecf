from flask import Blueprint, jsonify

from ...schemas.message import MessageSchema
from ...security import current_user_id, login_required
from ...services import get_services

bp = Blueprint("messages", __name__, url_prefix="/messages")


@bp.get("/unread-count")
@login_required
def unread_count():
    return jsonify({"count": get_services().messages.unread_count(current_user_id())})


@bp.patch("/<int:message_id>/read")
@login_required
def mark_read(message_id: int):
    msg = get_services().messages.mark_read(message_id, current_user_id())
    return jsonify(MessageSchema().dump(msg))
