"""
Create the admin user in Supabase Auth.

Usage (from project root):
    python -m scripts.create_admin [--email EMAIL] [--password PASSWORD] [--skip-rls]

Email and password default to ADMIN_EMAIL / ADMIN_PASSWORD from .env. Needs
SUPABASE_SERVICE_KEY. Afterwards row level security is switched off for the
events and photos tables through the ``disable_rls`` database function, unless
--skip-rls is given.
"""
import argparse
import logging
import sys

import httpx
from dotenv import load_dotenv
from supabase import AuthError, PostgrestAPIError

load_dotenv()

import db  # noqa: E402
from studio.core.logging_utils import configure_logging  # noqa: E402
from studio.core.settings import settings  # noqa: E402
from studio.services.queries import EVENTS, PHOTOS, describe  # noqa: E402

logger = logging.getLogger("scripts.create_admin")


def create_admin(client, email: str, password: str) -> str:
    res = client.auth.admin.create_user(
        {"email": email, "password": password, "email_confirm": True}
    )
    user = getattr(res, "user", None)
    return str(getattr(user, "id", "") or "")


def disable_rls(client, tables=(EVENTS, PHOTOS)) -> bool:
    """Call the ``disable_rls`` function per table; False when any call failed."""
    ok = True
    for table in tables:
        try:
            client.rpc("disable_rls", {"table_name": table}).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            logger.warning("rls.disable.failed", extra={"table": table, "error": describe(exc)})
            ok = False
    return ok


def main():
    parser = argparse.ArgumentParser(description="Create the admin user in Supabase Auth.")
    parser.add_argument("--email", default=settings.ADMIN_EMAIL)
    parser.add_argument("--password", default=settings.ADMIN_PASSWORD)
    parser.add_argument("--skip-rls", action="store_true", help="Leave row level security as is")
    args = parser.parse_args()

    configure_logging(settings)
    email = (args.email or "").strip()
    if not email or not args.password:
        print("ADMIN_EMAIL and ADMIN_PASSWORD must be set (or pass --email/--password).")
        sys.exit(2)

    client = db.create_service_client()
    try:
        user_id = create_admin(client, email, args.password)
    except (AuthError, httpx.HTTPError) as exc:
        print(f"Could not create admin user {email}: {describe(exc)}")
        sys.exit(1)
    print(f"Admin user created: id={user_id} email={email}")

    if not args.skip_rls and not disable_rls(client):
        print("Warning: row level security could not be disabled; see the log for details.")


if __name__ == "__main__":
    main()
