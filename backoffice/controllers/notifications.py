from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from ..services.common import to_int
from ..utils.decorators import current_user, token_required

bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _service():
    return current_app.extensions["backoffice"]["notifications"]


@bp.get("")
@token_required
def list_notifications():
    unread_only = request.args.get("unread_only", "").lower() in ("1", "true", "yes")
    limit = to_int(request.args.get("limit"), "limit")
    rows = _service().list_for_user(current_user(), unread_only=unread_only, limit=limit)
    return jsonify({"notifications": [n.to_dict() for n in rows]})


@bp.get("/sent")
@token_required
def list_sent():
    return jsonify({"notifications": [n.to_dict() for n in _service().list_sent(current_user())]})


@bp.get("/stream")
@token_required
def stream():
    """
    Server-Sent Events feed. Every client receives every event; the user
    and role rooms are joined so targeted publishes reach them too.
    """
    user = current_user()
    channel = current_app.extensions["backoffice"]["channel"]
    rooms = {f"user:{user.id}", f"role:{user.role.name}"}
    extra = request.args.get("room")
    if extra:
        rooms.add(extra)
    sub = channel.subscribe(rooms)
    return Response(
        stream_with_context(channel.stream(sub)),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@bp.patch("/read-all")
@token_required
def read_all():
    count = _service().mark_all_read(current_user())
    return jsonify({"message": "All notifications marked as read", "count": count})


@bp.patch("/<int:notification_id>/read")
@token_required
def mark_read(notification_id):
    row = _service().mark_read(current_user(), notification_id)
    return jsonify({"notification": row.to_dict()})


@bp.delete("/<int:notification_id>")
@token_required
def delete_notification(notification_id):
    _service().delete(current_user(), notification_id)
    return jsonify({"message": "Notification deleted"})


@bp.post("/send")
@token_required
def send():
    data = request.get_json(silent=True) or {}
    recipients = data.get("recipient_ids")
    if isinstance(recipients, list):
        recipients = [to_int(r, "recipient_ids") for r in recipients]
    rows = _service().send(
        current_user(),
        recipients,
        data.get("type"),
        data.get("title"),
        data.get("message"),
        requires_action=data.get("requires_action", False),
        action_type=data.get("action_type"),
    )
    return jsonify({"notifications": [n.to_dict() for n in rows]}), 201


@bp.post("/acknowledge")
@token_required
def acknowledge():
    data = request.get_json(silent=True) or {}
    reply = _service().acknowledge(
        current_user(),
        to_int(data.get("notification_id"), "notification_id"),
        data.get("message"),
    )
    return jsonify({
        "message": "Notification acknowledged",
        "reply": reply.to_dict() if reply else None,
    })
