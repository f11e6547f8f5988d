"""Reads and writes against the ``events`` and ``photos`` tables.

Each helper issues one request through the Supabase client and either returns
typed rows or raises one of :mod:`studio.services.errors`. Nothing here
retries or caches.
"""

import logging
from typing import Any, Iterable, List, Optional, Type

import httpx
from pydantic import ValidationError
from supabase import PostgrestAPIError

from studio.core.settings import settings
from studio.models import Category, Event, EventCreate, Photo, PhotoUpdate
from studio.services.errors import (
    BackendError,
    QueryError,
    RowDeleteError,
    RowInsertError,
    RowUpdateError,
)

logger = logging.getLogger(__name__)

EVENTS = "events"
PHOTOS = "photos"

# PostgREST caps unranged selects at 1000 rows by default
PAGE_SIZE = 1000


def describe(exc: BaseException) -> str:
    msg = getattr(exc, "message", None)
    return str(msg) if msg else (str(exc) or exc.__class__.__name__)


def _execute(query, error_cls: Type[BackendError], action: str, **ctx: Any):
    try:
        return query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        logger.warning(
            "backend.request.failed",
            extra={"action": action, "error": describe(exc), **ctx},
        )
        raise error_cls(f"{action} failed: {describe(exc)}", cause=exc) from exc


def _parse(model, rows: Iterable[dict], action: str) -> list:
    try:
        return [model.model_validate(r) for r in rows or []]
    except ValidationError as exc:
        raise QueryError(f"{action} returned malformed rows", cause=exc) from exc


# --- Events ---


def get_events(client) -> List[Event]:
    """All events, newest date first."""
    q = client.table(EVENTS).select("*").order("date", desc=True)
    res = _execute(q, QueryError, "events.list")
    return _parse(Event, res.data, "events.list")


def get_event_by_id(client, event_id: str) -> Event:
    """Exactly one event; zero or several matches raise QueryError."""
    q = client.table(EVENTS).select("*").eq("id", event_id).single()
    res = _execute(q, QueryError, "events.get", event_id=event_id)
    if not isinstance(res.data, dict):
        raise QueryError(f"events.get failed: no single row for id {event_id}")
    return _parse(Event, [res.data], "events.get")[0]


def create_event(client, payload: EventCreate) -> Event:
    q = client.table(EVENTS).insert(payload.to_row())
    res = _execute(q, RowInsertError, "events.insert", event_name=payload.name)
    rows = _parse(Event, res.data, "events.insert")
    if not rows:
        raise RowInsertError("events.insert returned no row")
    return rows[0]


def delete_event(client, event_id: str) -> None:
    """Delete one event. Photos keep their (now dangling) event_id."""
    q = client.table(EVENTS).delete().eq("id", event_id)
    res = _execute(q, RowDeleteError, "events.delete", event_id=event_id)
    if not res.data:
        raise RowDeleteError(f"event {event_id} not found", not_found=True)


# --- Photos ---


def get_photos_by_event(client, event_id: str) -> List[Photo]:
    q = client.table(PHOTOS).select("*").eq("event_id", event_id)
    res = _execute(q, QueryError, "photos.by_event", event_id=event_id)
    return _parse(Photo, res.data, "photos.by_event")


def get_photos_by_start_number(client, event_id: str, start_number: str) -> List[Photo]:
    """Photos of one event tagged with exactly this start number (case-sensitive)."""
    q = (
        client.table(PHOTOS)
        .select("*")
        .eq("event_id", event_id)
        .eq("start_number", start_number)
    )
    res = _execute(
        q, QueryError, "photos.by_start_number", event_id=event_id, start_number=start_number
    )
    return _parse(Photo, res.data, "photos.by_start_number")


def get_photos_by_category(client, category: Category) -> List[Photo]:
    """Up to PORTFOLIO_LIMIT photos of a category, in backend order."""
    category = Category(category)
    q = (
        client.table(PHOTOS)
        .select("*")
        .eq("category", category.value)
        .limit(settings.PORTFOLIO_LIMIT)
    )
    res = _execute(q, QueryError, "photos.by_category", category=category.value)
    return _parse(Photo, res.data, "photos.by_category")


def list_photos(
    client,
    category: Optional[Category] = None,
    event_id: Optional[str] = None,
    start_number: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Photo]:
    """Newest photos first, narrowed by whichever filters are set."""
    q = client.table(PHOTOS).select("*")
    if category:
        q = q.eq("category", Category(category).value)
    if event_id:
        q = q.eq("event_id", event_id)
    if start_number:
        q = q.eq("start_number", start_number)
    q = q.order("created_at", desc=True)
    if limit:
        q = q.limit(int(limit))
    res = _execute(
        q,
        QueryError,
        "photos.list",
        category=Category(category).value if category else None,
        event_id=event_id,
    )
    return _parse(Photo, res.data, "photos.list")


def get_photo_by_id(client, photo_id: str) -> Optional[Photo]:
    q = client.table(PHOTOS).select("*").eq("id", photo_id).limit(1)
    res = _execute(q, QueryError, "photos.get", photo_id=photo_id)
    rows = _parse(Photo, res.data, "photos.get")
    return rows[0] if rows else None


def list_photo_urls(client) -> List[str]:
    """Every stored ``url`` value, paging past the PostgREST row cap."""
    urls: List[str] = []
    start = 0
    while True:
        q = client.table(PHOTOS).select("url").order("id").range(start, start + PAGE_SIZE - 1)
        res = _execute(q, QueryError, "photos.urls", offset=start)
        batch = res.data or []
        urls.extend(str(r.get("url") or "") for r in batch)
        if len(batch) < PAGE_SIZE:
            return urls
        start += PAGE_SIZE


def insert_photo(client, row: dict) -> Photo:
    q = client.table(PHOTOS).insert(row)
    res = _execute(q, RowInsertError, "photos.insert", url=row.get("url"))
    rows = _parse(Photo, res.data, "photos.insert")
    if not rows:
        raise RowInsertError("photos.insert returned no row")
    return rows[0]


def update_photo(client, photo_id: str, changes: PhotoUpdate) -> Photo:
    q = client.table(PHOTOS).update(changes.to_row()).eq("id", photo_id)
    res = _execute(q, RowUpdateError, "photos.update", photo_id=photo_id)
    rows = _parse(Photo, res.data, "photos.update")
    if not rows:
        raise RowUpdateError(f"photo {photo_id} not found", not_found=True)
    return rows[0]


def delete_photo_row(client, photo_id: str) -> None:
    q = client.table(PHOTOS).delete().eq("id", photo_id)
    res = _execute(q, RowDeleteError, "photos.delete", photo_id=photo_id)
    if not res.data:
        raise RowDeleteError(f"photo {photo_id} not found", not_found=True)
