from __future__ import annotations

from flask import Blueprint, jsonify, Response, stream_with_context
import json
import time
from queue import Empty

from ...schemas.base import load_args
from ...schemas.notification import NotificationQuerySchema, NotificationSchema
from ...security import current_user_id, login_required
from ...services import get_services
from .bus import subscribe, unsubscribe

bp = Blueprint("notifications", __name__, url_prefix="/notifications")

_schema = NotificationSchema()

# Keep below gunicorn's timeout to ensure periodic yields
KEEPALIVE_SECONDS = 15


@bp.get("")
@login_required
def list_notifications():
    args = load_args(NotificationQuerySchema())
    rows = get_services().notifications.list_for_user(
        current_user_id(),
        is_read=args.get("is_read"),
        type_=args.get("type"),
        limit=args["limit"],
        offset=args["offset"],
    )
    return jsonify(_schema.dump(rows, many=True))


@bp.get("/unread-count")
@login_required
def unread_count():
    return jsonify({"count": get_services().notifications.unread_count(current_user_id())})


@bp.patch("/<int:notif_id>/read")
@login_required
def mark_read(notif_id: int):
    n = get_services().notifications.mark_read(notif_id, current_user_id())
    return jsonify(_schema.dump(n))


@bp.patch("/read-all")
@login_required
def mark_all_read():
    updated = get_services().notifications.mark_all_read(current_user_id())
    return jsonify({"updated": updated})


@bp.delete("/<int:notif_id>")
@login_required
def delete_notification(notif_id: int):
    get_services().notifications.delete(notif_id, current_user_id())
    return "", 204


@bp.get("/stream")
@login_required
def stream_notifications():
    """Server-Sent Events stream of the caller's new notifications.

    Delivery is best-effort; clients reconcile through GET /notifications.
    """
    uid = current_user_id()
    q = subscribe(uid)

    def event_stream():
        try:
            # Initial comment to establish stream
            yield ": connected\n\n"
            while True:
                try:
                    evt = q.get(timeout=KEEPALIVE_SECONDS)
                except Empty:
                    yield "event: ping\n" + f"data: {json.dumps({'ts': int(time.time())})}\n\n"
                    continue
                yield "event: notification\n" + f"data: {json.dumps(evt)}\n\n"
        finally:
            unsubscribe(uid, q)

    headers = {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return Response(stream_with_context(event_stream()), headers=headers)
