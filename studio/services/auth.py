"""Admin sessions backed by Supabase Auth.

Signing in yields an access/refresh token pair. The pair is kept in a signed
cookie (itsdangerous) and turned back into an authenticated client for each
admin request.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import HTTPException
from itsdangerous import BadSignature, URLSafeTimedSerializer
from starlette.requests import Request
from supabase import AuthError as SupabaseAuthError

import db
from studio.core.settings import settings
from studio.services.errors import AuthError

logger = logging.getLogger(__name__)

ADMIN_COOKIE = "admin_session"
_SALT = "admin-session"

serializer = URLSafeTimedSerializer(settings.SECRET_KEY)


@dataclass(frozen=True)
class AdminSession:
    access_token: str
    refresh_token: str
    email: str = ""


def sign_in(client, email: str, password: str) -> AdminSession:
    """Password sign-in; any failure becomes a detail-free AuthError."""
    try:
        res = client.auth.sign_in_with_password({"email": email, "password": password})
    except (SupabaseAuthError, httpx.HTTPError) as exc:
        raise AuthError(f"sign-in failed for {email}", cause=exc) from exc
    session = getattr(res, "session", None)
    if session is None or not getattr(session, "access_token", None):
        raise AuthError(f"sign-in for {email} returned no session")
    user = getattr(res, "user", None)
    return AdminSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        email=getattr(user, "email", None) or email,
    )


def restore(client, session: AdminSession) -> AdminSession:
    """Attach ``session`` to ``client``; returns the (possibly refreshed) session."""
    try:
        client.auth.set_session(session.access_token, session.refresh_token)
        current = client.auth.get_session()
    except (SupabaseAuthError, httpx.HTTPError) as exc:
        raise AuthError("stored session rejected", cause=exc) from exc
    if current is None:
        raise AuthError("stored session rejected")
    return AdminSession(
        access_token=current.access_token,
        refresh_token=current.refresh_token,
        email=session.email,
    )


def sign_out(client) -> None:
    try:
        client.auth.sign_out()
    except (SupabaseAuthError, httpx.HTTPError) as exc:
        # Token already revoked/expired; the cookie is dropped either way
        logger.info("admin.sign_out.ignored", extra={"error": str(exc)})


# Cookie encoding


def encode_session(session: AdminSession) -> str:
    return serializer.dumps(
        {"a": session.access_token, "r": session.refresh_token, "e": session.email}, salt=_SALT
    )


def decode_session(value: Optional[str]) -> Optional[AdminSession]:
    if not value:
        return None
    try:
        data = serializer.loads(
            value, salt=_SALT, max_age=int(settings.ADMIN_SESSION_MAX_AGE_SECONDS)
        )
    except BadSignature:
        return None
    try:
        return AdminSession(access_token=data["a"], refresh_token=data["r"], email=data.get("e", ""))
    except (KeyError, TypeError):
        return None


def set_session_cookie(response, session: AdminSession) -> None:
    response.set_cookie(
        ADMIN_COOKIE,
        encode_session(session),
        max_age=int(settings.ADMIN_SESSION_MAX_AGE_SECONDS),
        httponly=True,
        samesite="lax",
        secure=bool(getattr(settings, "COOKIE_SECURE", False)),
        path="/",
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(ADMIN_COOKIE, path="/")


# FastAPI dependencies for the admin area


@dataclass
class AdminContext:
    client: object
    session: AdminSession
    refreshed: bool = False

    def persist(self, response):
        """Re-issue the cookie when Supabase rotated the tokens during restore."""
        if self.refreshed:
            set_session_cookie(response, self.session)
        return response


def get_admin(request: Request) -> Optional[AdminContext]:
    """Return an authenticated admin context or None (existing-session check)."""
    stored = decode_session(request.cookies.get(ADMIN_COOKIE))
    if stored is None:
        return None
    client = db.create_user_client()
    try:
        current = restore(client, stored)
    except AuthError as exc:
        logger.info("admin.session.invalid", extra=exc.log_extra())
        return None
    return AdminContext(
        client=client,
        session=current,
        refreshed=current.access_token != stored.access_token,
    )


def require_admin(request: Request) -> AdminContext:
    """Dependency that requires a signed-in admin; redirects to the login form."""
    admin = get_admin(request)
    if admin is None:
        raise HTTPException(status_code=303, headers={"Location": "/admin/login"})
    return admin
