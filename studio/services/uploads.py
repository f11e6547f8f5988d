"""Photo upload and deletion against object storage plus the ``photos`` table.

A photo lives in two places: an object in the media bucket and a row whose
``url`` holds the object's key. The two writes are separate requests, so:

* upload writes the object first, then the row; if the row insert fails the
  object is removed again (best effort).
* delete removes the row first, then the object.

Whatever a failed compensation leaves behind is an unreferenced object, which
:func:`sweep_orphans` cleans up (``scripts/sweep_orphans.py``).
"""

import logging
import re
import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import httpx
from supabase import StorageException

from studio.core.settings import settings
from studio.models import Category, Photo
from studio.services import queries
from studio.services.errors import (
    BackendError,
    RowDeleteError,
    RowInsertError,
    StorageDeleteError,
    StorageWriteError,
    UploadRejected,
)
from studio.services.storage_urls import storage_key_of

logger = logging.getLogger(__name__)
audit = logging.getLogger("audit")

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
# Supabase pads empty folders with this marker object
_FOLDER_PLACEHOLDER = ".emptyFolderPlaceholder"
_LIST_PAGE = 1000
_REMOVE_CHUNK = 100
# libmagic answers this when it cannot tell
_UNDETECTED = ("", "application/octet-stream")


def _bucket(client, bucket: Optional[str] = None):
    return client.storage.from_(bucket or settings.STORAGE_BUCKET)


def file_extension(filename: str) -> str:
    """Extension of the last path segment, case preserved, without the dot."""
    base = (filename or "").replace("\\", "/").split("/")[-1]
    stem, dot, ext = base.rpartition(".")
    if not dot or not stem:
        return ""
    return re.sub(r"[^A-Za-z0-9]", "", ext)


def generate_file_name(
    original: str, now: Optional[datetime] = None, token: Optional[str] = None
) -> str:
    """``<epoch-millis>-<token>.<ext>``; the extension keeps its case (``.JPG``)."""
    millis = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    if token is None:
        token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
    ext = file_extension(original)
    return f"{millis}-{token}.{ext}" if ext else f"{millis}-{token}"


def storage_key(category: Category, file_name: str) -> str:
    return f"{Category(category).value}/{file_name}"


def sniff_mime(data: bytes, declared: Optional[str] = None) -> str:
    """Content type read from the bytes (python-magic), else the declared one."""
    try:
        import magic  # type: ignore

        detected = magic.from_buffer(data[:4096], mime=True)
    except Exception:
        # python-magic not installed or libmagic not loadable
        detected = ""
    if isinstance(detected, str) and detected not in _UNDETECTED:
        return detected
    return declared or "application/octet-stream"


def validate_upload(data: bytes, filename: str, content_type: Optional[str] = None) -> str:
    """Check size and type before anything is written; returns the MIME type."""
    if not data:
        raise UploadRejected(f"{filename}: empty file")
    max_bytes = int(getattr(settings, "MAX_UPLOAD_BYTES", 25_000_000))
    if len(data) > max_bytes:
        raise UploadRejected(f"{filename}: larger than {max_bytes} bytes")
    mime = sniff_mime(data, content_type)
    allowed = tuple(getattr(settings, "ALLOWED_UPLOAD_MIME_PREFIXES", ("image/",)))
    if allowed and not mime.startswith(allowed):
        raise UploadRejected(f"{filename}: unsupported type {mime}")
    return mime


def upload_photo(
    client,
    data: bytes,
    filename: str,
    category: Category,
    start_number: str = "",
    event_id: Optional[str] = None,
    content_type: Optional[str] = None,
    bucket: Optional[str] = None,
) -> str:
    """Store the bytes, insert the row referencing them, return the storage key.

    Raises StorageWriteError (nothing inserted) or RowInsertError (object
    already removed again, unless that also failed).
    """
    category = Category(category)
    key = storage_key(category, generate_file_name(filename))
    store = _bucket(client, bucket)
    try:
        store.upload(key, data, {"content-type": content_type or "application/octet-stream"})
    except (StorageException, httpx.HTTPError) as exc:
        raise StorageWriteError(
            f"upload of {filename} failed: {queries.describe(exc)}", cause=exc
        ) from exc

    row = {"url": key, "category": category.value, "start_number": start_number or ""}
    if event_id:
        row["event_id"] = event_id
    try:
        queries.insert_photo(client, row)
    except RowInsertError:
        _compensate_upload(store, key)
        raise
    audit.info(
        "upload.stored",
        extra={"key": key, "source": filename, "category": category.value, "event_id": event_id},
    )
    return key


def _compensate_upload(store, key: str) -> None:
    try:
        store.remove([key])
        audit.info("upload.compensate", extra={"key": key, "removed": True})
    except (StorageException, httpx.HTTPError) as exc:
        audit.error(
            "upload.compensate",
            extra={"key": key, "removed": False, "error": queries.describe(exc)},
        )


@dataclass(frozen=True)
class UploadItem:
    filename: str
    data: bytes = field(repr=False)
    category: Category
    content_type: Optional[str] = None
    start_number: str = ""
    event_id: Optional[str] = None


@dataclass(frozen=True)
class UploadOutcome:
    filename: str
    key: Optional[str] = None
    error: Optional[BackendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    outcomes: List[UploadOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[UploadOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[UploadOutcome]:
        return [o for o in self.outcomes if not o.ok]


def run_batch_upload(client, items: Iterable[UploadItem]) -> BatchResult:
    """Upload items one after another; a failed item never stops the batch."""
    result = BatchResult()
    for item in items:
        try:
            mime = validate_upload(item.data, item.filename, item.content_type)
            key = upload_photo(
                client,
                item.data,
                item.filename,
                item.category,
                start_number=item.start_number,
                event_id=item.event_id,
                content_type=mime,
            )
        except BackendError as exc:
            audit.warning("upload.item.failed", extra={"source": item.filename, **exc.log_extra()})
            result.outcomes.append(UploadOutcome(item.filename, error=exc))
            continue
        result.outcomes.append(UploadOutcome(item.filename, key=key))
    audit.info(
        "upload.batch.done",
        extra={"succeeded": len(result.succeeded), "failed": len(result.failed)},
    )
    return result


def delete_photo(client, photo_id: str, bucket: Optional[str] = None) -> Photo:
    """Remove the row, then its storage object. Returns the deleted photo."""
    photo = queries.get_photo_by_id(client, photo_id)
    if photo is None:
        raise RowDeleteError(f"photo {photo_id} not found", not_found=True)
    queries.delete_photo_row(client, photo_id)

    key = storage_key_of(photo.url, settings.public_storage_base)
    if key:
        try:
            _bucket(client, bucket).remove([key])
        except (StorageException, httpx.HTTPError) as exc:
            audit.error(
                "photo.orphan_object",
                extra={"photo_id": photo_id, "key": key, "error": queries.describe(exc)},
            )
            raise StorageDeleteError(
                f"object {key} of photo {photo_id} not removed: {queries.describe(exc)}",
                cause=exc,
            ) from exc
    audit.info("photo.deleted", extra={"photo_id": photo_id, "key": key})
    return photo


def _list_folder(store, folder: str) -> List[str]:
    names: List[str] = []
    offset = 0
    while True:
        entries = store.list(folder, {"limit": _LIST_PAGE, "offset": offset})
        for entry in entries or []:
            name = entry.get("name")
            # Sub-folders come back without an id
            if not name or name == _FOLDER_PLACEHOLDER or entry.get("id") is None:
                continue
            names.append(f"{folder}/{name}")
        if len(entries or []) < _LIST_PAGE:
            return names
        offset += _LIST_PAGE


def find_orphans(client, bucket: Optional[str] = None) -> List[str]:
    """Storage keys under the category folders that no photo row references."""
    base = settings.public_storage_base
    referenced = {storage_key_of(u, base) for u in queries.list_photo_urls(client)}
    store = _bucket(client, bucket)
    orphans: List[str] = []
    for category in Category:
        try:
            keys = _list_folder(store, category.value)
        except (StorageException, httpx.HTTPError) as exc:
            raise BackendError(
                f"listing {category.value}/ failed: {queries.describe(exc)}", cause=exc
            ) from exc
        orphans.extend(k for k in keys if k not in referenced)
    return orphans


def sweep_orphans(client, dry_run: bool = True, bucket: Optional[str] = None) -> List[str]:
    """Find (and unless ``dry_run``, remove) unreferenced objects."""
    orphans = find_orphans(client, bucket)
    if dry_run or not orphans:
        return orphans
    store = _bucket(client, bucket)
    for i in range(0, len(orphans), _REMOVE_CHUNK):
        chunk = orphans[i:i + _REMOVE_CHUNK]
        try:
            store.remove(chunk)
        except (StorageException, httpx.HTTPError) as exc:
            raise StorageDeleteError(
                f"orphan sweep stopped: {queries.describe(exc)}", cause=exc
            ) from exc
        audit.info("storage.orphans.removed", extra={"count": len(chunk)})
    return orphans
