"""Shared-secret admin session handling."""

from __future__ import annotations

import hashlib
import hmac
import secrets

from fastapi import HTTPException, Request
from fastapi.responses import Response

from .config import Settings

ADMIN_COOKIE = "adminToken"


def admin_token(settings: Settings) -> str | None:
    """Return the cookie value granting admin access, if a password is set."""

    if not settings.admin_password:
        return None
    return hmac.new(
        settings.signing_secret.encode("utf-8"),
        settings.admin_password.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def check_password(settings: Settings, candidate: str | None) -> bool:
    if not settings.admin_password or not candidate:
        return False
    return secrets.compare_digest(
        candidate.encode("utf-8"), settings.admin_password.encode("utf-8")
    )


def is_admin(request: Request, settings: Settings) -> bool:
    expected = admin_token(settings)
    if expected is None:
        return False
    supplied = request.cookies.get(ADMIN_COOKIE)
    if not supplied:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def require_admin(request: Request, settings: Settings) -> None:
    if not is_admin(request, settings):
        raise HTTPException(status_code=403, detail="Administrator access required.")


def grant_admin(response: Response, settings: Settings) -> None:
    token = admin_token(settings)
    if token is None:
        return
    response.set_cookie(
        ADMIN_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )


def revoke_admin(response: Response) -> None:
    response.delete_cookie(ADMIN_COOKIE)
