"""JWT helpers for the identity tokens this service accepts.

Tokens are minted by the identity service; ``create_access_token`` exists
for operators and test fixtures that need to impersonate a user.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from classquiz.config import settings


def create_access_token(
    user_id: uuid.UUID,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT whose ``sub`` is *user_id*."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT. Returns payload dict or None on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def subject_user_id(payload: dict) -> uuid.UUID | None:
    """Extract the user id from a decoded token, or None if it is malformed."""
    sub = payload.get("sub")
    if not sub:
        return None
    try:
        return uuid.UUID(str(sub))
    except ValueError:
        return None
