# Overview: Service-layer operations for per-user notifications.

from __future__ import annotations

from ..extensions import db, relay
from ..models import Notification
from ..validation import NotFoundError, require_choice
from .event_relay import EVENT_NOTIFICATION


NOTIFICATION_TYPES = {"info", "warning", "error", "success"}


def create_notification(*, user_id: int | None, title: str, message: str, type: str = "info") -> Notification:
    """
    Persist a notification and push it to connected clients.

    The relay push is best-effort; the stored row is the durable copy.
    """
    require_choice(type, NOTIFICATION_TYPES, "type")

    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        type=type,
        is_read=False,
    )
    db.session.add(notification)
    db.session.commit()

    relay.publish(EVENT_NOTIFICATION, notification.to_dict())
    return notification


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def mark_notification_read(notification_id: int, user_id: int) -> Notification:
    # Other users' notifications are reported as missing
    notification = db.session.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
    if not notification:
        raise NotFoundError("Notification not found", entity="notification", entity_id=notification_id)

    notification.is_read = True
    db.session.commit()
    return notification
