from typing import Optional

from supabase import Client, ClientOptions, create_client

from studio.core.settings import settings

# Tests inject an in-memory stand-in for the Supabase client here; every
# factory below returns it when set so routes and helpers share one store.
_TEST_BACKEND = None

_public_client: Optional[Client] = None


def _options() -> ClientOptions:
    # Server side: sessions live in our signed cookie, never in the client
    return ClientOptions(persist_session=False, auto_refresh_token=False)


def create_public_client() -> Client:
    """Client authenticated with the anon key only (public reads)."""
    if _TEST_BACKEND is not None:
        return _TEST_BACKEND
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=_options())


def create_user_client() -> Client:
    """Fresh anon-key client meant to carry one admin's session.

    Never reuse it across requests: signing in mutates the client's auth headers.
    """
    if _TEST_BACKEND is not None:
        return _TEST_BACKEND
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY, options=_options())


def create_service_client() -> Client:
    """Service-role client; bypasses row level security. Scripts only."""
    if _TEST_BACKEND is not None:
        return _TEST_BACKEND
    if not settings.SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY is not set in .env")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY, options=_options())


def get_backend():
    """FastAPI dependency yielding the shared public client."""
    global _public_client
    if _TEST_BACKEND is not None:
        yield _TEST_BACKEND
        return
    if _public_client is None:
        _public_client = create_public_client()
    yield _public_client
