from __future__ import annotations

import hashlib
import hmac
import os
from typing import Optional

from studio.core.settings import settings

CSRF_COOKIE = "csrf_token"


def _sign(value: str) -> str:
    key = (settings.SECRET_KEY or "change-me").encode("utf-8")
    return hmac.new(key, value.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_csrf_token() -> str:
    nonce = os.urandom(16).hex()
    return f"{nonce}:{_sign(nonce)}"


def validate_csrf_token(token: Optional[str]) -> bool:
    nonce, sep, sig = (token or "").partition(":")
    if not sep or not nonce or not sig:
        return False
    return hmac.compare_digest(_sign(nonce), sig)


def csrf_ok(request, form_token: Optional[str]) -> bool:
    """Double-submit check: signed form token equal to the cookie copy."""
    cookie_token = request.cookies.get(CSRF_COOKIE)
    return bool(
        cookie_token
        and form_token
        and hmac.compare_digest(cookie_token, form_token)
        and validate_csrf_token(form_token)
    )


def current_or_new_token(request) -> str:
    """Reuse a valid cookie token so several open tabs keep working."""
    token = request.cookies.get(CSRF_COOKIE)
    if token and validate_csrf_token(token):
        return token
    return issue_csrf_token()


def set_csrf_cookie(response, token: str) -> None:
    """Set the CSRF cookie with consistent attributes across the app."""
    response.set_cookie(
        CSRF_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=bool(getattr(settings, "COOKIE_SECURE", False)),
        path="/",
    )
