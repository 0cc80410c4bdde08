# Overview: Service-layer operations for users, passwords, and subscription tiers.

"""
Authentication Service

Passwords are hashed with bcrypt (cost from BCRYPT_ROUNDS) and must meet
a minimum strength. Self-registered users always start as role "sales"
on the standard tier; elevated roles are assigned through the CLI.
"""

import bcrypt
import re

from flask import current_app

from ..extensions import db
from ..models import User
from ..models.users import ROLES, SUBSCRIPTION_TIERS
from ..validation import ValidationError, ConflictError, NotFoundError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str):
        super().__init__(message, field="password")


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter, one digit
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes simply fail."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = "sales",
    subscription_tier: str = "standard",
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for bad input and ConflictError when the
    username or email is already taken.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()

    if not username:
        raise ValidationError("username is required", field="username")
    if not email or "@" not in email:
        raise ValidationError("A valid email is required", field="email")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}", field="role")
    if subscription_tier not in SUBSCRIPTION_TIERS:
        raise ValidationError("subscription_tier must be standard or premium", field="subscription_tier")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username already exists")
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        subscription_tier=subscription_tier,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """Return the active user matching the credentials, else None."""
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == (username or "").lower())
    ).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


def set_subscription_tier(user_id: int, tier: str) -> User:
    if tier not in SUBSCRIPTION_TIERS:
        raise ValidationError("subscription_tier must be standard or premium", field="subscription_tier")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found", entity="user", entity_id=user_id)

    user.subscription_tier = tier
    db.session.commit()
    current_app.logger.info("User %s subscription set to %s", user.username, tier)
    return user
