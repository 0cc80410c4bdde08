# Overview: Service-layer operations for sessions; resolves tokens into request principals.

"""
Session Token Management Service

Tokens are cryptographically secure, hashed in the database, and
time-limited. The plaintext travels in the session cookie (or an
Authorization: Bearer header for non-browser clients).

SECURITY FEATURES:
- 32 bytes of entropy per token
- SHA-256 hash stored, never the plaintext
- Absolute timeout (SESSION_ABSOLUTE_HOURS)
- Idle timeout (SESSION_IDLE_HOURS)
- Revocable on logout or account deactivation
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from bizops.time_utils import utcnow


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller resolved once per request.

    Passed explicitly into service entry points (e.g. order creation)
    instead of being read from ambient request state.
    """
    user_id: int
    username: str
    role: str
    subscription_tier: str

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == "premium"

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            user_id=user.id,
            username=user.username,
            role=user.role,
            subscription_tier=user.subscription_tier,
        )


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_HOURS", 2))


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a new session for the user.

    Returns (session_record, plaintext_token). Only the hash is stored.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User account is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )

    user.last_login_at = now
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> Principal | None:
    """
    Validate a session token and return the caller's Principal.

    Returns None if the token is unknown, expired, revoked, idle too long,
    or belongs to a deactivated user. Touches last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > _idle_timeout():
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return Principal.from_user(user)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke a session. Returns False if no live session matches."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False,
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)
