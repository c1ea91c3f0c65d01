# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every sale and stock movement is attributed to a staff account.
Passwords are hashed with bcrypt.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_LOG_ROUNDS, default 12)
- Minimum 8 characters with at least one letter and one digit
- Access tokens are issued separately (see token_service.py)
"""

import bcrypt
import re
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..models.auth import ROLES
from ..validation import ConflictError, ValidationError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Za-z]', password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw compares in constant time.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    username: str,
    password: str,
    role: str,
    full_name: str | None = None,
    email: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: missing username, unknown role, weak password
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required")
    if role not in ROLES:
        raise ValidationError("Invalid role")

    existing = db.session.query(User).filter(User.username == username).first()
    if existing:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        full_name=full_name or None,
        email=email or None,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.session.rollback()
        raise ConflictError("Username already exists")
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid and account active, None otherwise.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        return user

    return None


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
