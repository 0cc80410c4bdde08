from __future__ import annotations

from ..extensions import db
from bizops.time_utils import to_utc_z


class AiInsight(db.Model):
    """Advisory record produced by the insight generator."""
    __tablename__ = "ai_insights"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # recommendation, alert, forecast
    type = db.Column(db.String(32), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    data = db.Column(db.JSON, nullable=True)

    # low, medium, high
    priority = db.Column(db.String(16), nullable=False, default="medium")
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "data": self.data,
            "priority": self.priority,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }


class Notification(db.Model):
    """Per-user informational message with a read flag."""
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)

    # info, warning, error, success
    type = db.Column(db.String(16), nullable=False, default="info")
    is_read = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
        }
