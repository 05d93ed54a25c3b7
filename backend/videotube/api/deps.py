"""
Shared route dependencies: the authenticated user id.

Token comes from `Authorization: Bearer <jwt>` (mobile/API clients) or the `accessToken` cookie (browser).
"""
from fastapi import Cookie, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from videotube.core.errors import AuthError, service_error_to_http
from videotube.core.security import decode_access_token
from videotube.db.session import get_db
from videotube.models.user import User


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_user_id(
    db: Session = Depends(get_db),
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None, alias="accessToken"),
) -> int:
    token = _bearer_token(authorization) or access_token
    try:
        if not token:
            raise AuthError()
        user_id = decode_access_token(token)
        if db.get(User, user_id) is None:
            raise AuthError("Invalid access token")
    except AuthError as e:
        raise service_error_to_http(e) from e
    return user_id


def require_ids(ids: list[int] | None, what: str = "Notification IDs") -> list[int]:
    if not ids:
        raise HTTPException(status_code=400, detail=f"{what} are required")
    return ids
