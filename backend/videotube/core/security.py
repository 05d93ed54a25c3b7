"""
Access tokens: HS256 JWTs whose `sub` claim is the user id.
Issued by the auth service (out of scope here); create_access_token exists for scripts and tests.
"""
import time

import jwt

from videotube.config import settings
from videotube.core.errors import AuthError


def create_access_token(user_id: int, expires_in_seconds: int | None = None) -> str:
    now = int(time.time())
    ttl = expires_in_seconds if expires_in_seconds is not None else settings.access_token_expire_minutes * 60
    token = jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + ttl},
        settings.access_token_secret,
        algorithm=settings.access_token_algorithm,
    )
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def decode_access_token(token: str) -> int:
    """Return the user id from a valid token. Raises AuthError for expired, tampered or malformed tokens."""
    try:
        payload = jwt.decode(
            token,
            settings.access_token_secret,
            algorithms=[settings.access_token_algorithm],
        )
    except jwt.PyJWTError as e:
        raise AuthError("Invalid access token") from e
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise AuthError("Invalid access token") from e
