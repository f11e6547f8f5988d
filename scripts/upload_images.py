"""
Bulk-upload images into a category.

Usage (from project root):
    python -m scripts.upload_images --category motocross [--start-number 12] [--event-id ID] PATH [PATH ...]

Each PATH is an image file or a directory (its images are uploaded, not
recursively). Signs in with ADMIN_EMAIL / ADMIN_PASSWORD. Exits with status 1
when any file failed.
"""
import argparse
import mimetypes
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import db  # noqa: E402
from studio.core.logging_utils import configure_logging  # noqa: E402
from studio.core.settings import settings  # noqa: E402
from studio.models import Category  # noqa: E402
from studio.services import auth  # noqa: E402
from studio.services.errors import AuthError  # noqa: E402
from studio.services.uploads import UploadItem, run_batch_upload  # noqa: E402

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".heic", ".tif", ".tiff"}


def collect_files(paths) -> list[Path]:
    files: list[Path] = []
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            files.extend(
                sorted(c for c in p.iterdir() if c.is_file() and c.suffix.lower() in IMAGE_SUFFIXES)
            )
        elif p.is_file():
            files.append(p)
        else:
            print(f"Skipping {p}: not found")
    return files


def build_items(files, category: Category, start_number: str, event_id: str | None):
    for f in files:
        yield UploadItem(
            filename=f.name,
            data=f.read_bytes(),
            category=category,
            content_type=mimetypes.guess_type(f.name)[0],
            start_number=start_number,
            event_id=event_id,
        )


def main():
    parser = argparse.ArgumentParser(description="Bulk-upload images into a category.")
    parser.add_argument("paths", nargs="+", help="Image files or directories")
    parser.add_argument("--category", required=True, choices=[c.value for c in Category])
    parser.add_argument("--start-number", default="", help="Rider start number (motocross)")
    parser.add_argument("--event-id", default=None, help="Event to attach the photos to")
    args = parser.parse_args()

    configure_logging(settings)
    files = collect_files(args.paths)
    if not files:
        print("No images to upload.")
        sys.exit(1)

    client = db.create_user_client()
    try:
        auth.sign_in(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    except AuthError as exc:
        print(f"Sign-in failed: {exc}")
        sys.exit(1)

    result = run_batch_upload(
        client,
        build_items(files, Category(args.category), args.start_number.strip(), args.event_id),
    )
    for outcome in result.outcomes:
        if outcome.ok:
            print(f"ok      {outcome.filename} -> {outcome.key}")
        else:
            print(f"failed  {outcome.filename}: {outcome.error}")
    print(f"Uploaded {len(result.succeeded)} of {len(result.outcomes)} files")
    auth.sign_out(client)
    if result.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
