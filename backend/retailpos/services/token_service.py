"""
Access token issue/verify for the mobile client.

Tokens are stateless HS256 JWTs. The user row is re-read on every request
(see decorators.require_auth) so deactivating an account takes effect
immediately even though the token itself cannot be revoked.
"""

from datetime import timedelta

from flask import current_app
from jose import jwt, JWTError

from ..models import User
from retailpos.time_utils import utcnow


def create_access_token(user: User, expires_delta: timedelta | None = None) -> str:
    now = utcnow()
    expire = now + (expires_delta or timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]))
    claims = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_access_token(token: str) -> dict | None:
    """Return the claims of a valid access token, None otherwise."""
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    return payload
