"""
Find storage objects that no photo row references.

Usage (from project root):
    python -m scripts.sweep_orphans [--apply]

Lists orphans by default; --apply removes them. Needs SUPABASE_SERVICE_KEY.
"""
import argparse
import sys

from dotenv import load_dotenv

load_dotenv()

import db  # noqa: E402
from studio.core.logging_utils import configure_logging  # noqa: E402
from studio.core.settings import settings  # noqa: E402
from studio.services.errors import BackendError  # noqa: E402
from studio.services.uploads import sweep_orphans  # noqa: E402


def main():
    parser = argparse.ArgumentParser(description="Report or remove unreferenced storage objects.")
    parser.add_argument("--apply", action="store_true", help="Delete the orphans")
    args = parser.parse_args()

    configure_logging(settings)
    client = db.create_service_client()
    try:
        orphans = sweep_orphans(client, dry_run=not args.apply)
    except BackendError as exc:
        print(f"Sweep failed: {exc}")
        sys.exit(1)
    for key in orphans:
        print(key)
    verb = "Removed" if args.apply else "Found"
    print(f"{verb} {len(orphans)} orphaned objects")


if __name__ == "__main__":
    main()
