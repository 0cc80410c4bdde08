# Overview: Flask API routes for notifications and the live event stream.

# backend/bizops/routes/notifications.py
"""
Notification routes.

GET /api/events is a Server-Sent Events stream fed by the in-process
event relay. Delivery is at-most-once: events published while a client
is disconnected, or while its buffer is full, are not replayed. The
persisted notifications list is the durable record.
"""

import queue

from flask import Blueprint, Response, current_app, g, jsonify, request

from ..extensions import relay
from ..services import notification_service
from ..services.event_relay import format_sse
from ..validation import NotFoundError
from ..decorators import require_auth

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api")

KEEPALIVE_SECONDS = 15


@notifications_bp.get("/notifications")
@require_auth
def list_notifications():
    """Query params: unread=1 to return unread notifications only."""
    unread_only = request.args.get("unread") in {"1", "true", "yes"}
    notifications = notification_service.list_notifications(g.principal.user_id, unread_only=unread_only)
    return jsonify([n.to_dict() for n in notifications]), 200


@notifications_bp.post("/notifications/<int:notification_id>/read")
@require_auth
def mark_read(notification_id: int):
    try:
        notification = notification_service.mark_notification_read(notification_id, g.principal.user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(notification.to_dict()), 200


@notifications_bp.get("/events")
@require_auth
def event_stream():
    """Push notification, low_stock_alert and order_update events to the client."""
    subscription = relay.subscribe()
    current_app.logger.info("User %s connected to the event stream", g.principal.user_id)

    def generate():
        try:
            yield ": connected\n\n"
            while True:
                try:
                    message = subscription.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield format_sse(message)
        finally:
            relay.unsubscribe(subscription)

    response = Response(generate(), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    response.call_on_close(lambda: relay.unsubscribe(subscription))
    return response
