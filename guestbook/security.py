from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, Query

from guestbook.settings import DEV_ADMIN_TOKEN, Settings, get_app_settings

INSECURE_TOKENS = {DEV_ADMIN_TOKEN, "change-me", "changeme", "secret", "admin", "token", ""}


def extract_token(query_token: str | None, authorization: str | None) -> str | None:
    """Pick the presented admin token: query parameter first, then a Bearer header."""
    if query_token:
        return query_token
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer ") :]
    return None


def authorize(presented: str | None, secret: str) -> bool:
    """Constant-time check of a presented token against the configured secret."""
    if not presented or not secret:
        return False
    return secrets.compare_digest(presented.encode("utf-8"), secret.encode("utf-8"))


class AdminUnauthorized(HTTPException):
    """Raised by ``require_admin``; answered as plain text like the other moderation responses."""

    def __init__(self) -> None:
        super().__init__(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_admin(
    token: str | None = Query(default=None),
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    if not authorize(extract_token(token, authorization), settings.admin_token):
        raise AdminUnauthorized()
