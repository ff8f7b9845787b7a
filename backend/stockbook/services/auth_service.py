# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

Users are created by an operator (flask users create); self-registration and
password reset are handled outside this service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, 12 by default)
- Minimum 8 characters, at least one letter and one digit
- Emails are unique and compared case-insensitively
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from stockbook.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user(name: str, email: str, password: str) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If name/email missing or email already registered
        PasswordValidationError: If password doesn't meet requirements
    """
    if not name or not name.strip():
        raise ValueError("name is required")
    if not email or "@" not in email:
        raise ValueError("valid email is required")

    email = normalize_email(email)
    if db.session.query(User).filter_by(email=email).first():
        raise ValueError(f"User with email {email} already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active user for these credentials, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(email=normalize_email(email)).first()
    if not user or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
