"""Public pages: portfolio, category galleries and the photo JSON feed."""

# ruff: noqa: I001
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from db import get_backend
from studio.core.settings import settings
from studio.core.templates import templates
from studio.models import Category
from studio.services import queries
from studio.services.errors import BackendError
from studio.services.storage_urls import normalize_url
from studio.services.views import GalleryState, MotocrossFilter

router = APIRouter()
logger = logging.getLogger(__name__)

# Plain category galleries (motocross has its own filtered page)
_GALLERY_PAGES = {
    "portrait": (Category.PORTRAIT, "Portrait"),
    "product": (Category.PRODUCT, "Product photography"),
}


def _photo_json(photo) -> dict:
    return {
        "id": photo.id,
        "url": normalize_url(photo.url, settings.public_storage_base),
        "category": photo.category.value,
        "start_number": photo.start_number,
        "event_id": photo.event_id,
        "created_at": photo.created_at,
    }


@router.get("/", response_class=HTMLResponse)
@router.get("/portfolio", response_class=HTMLResponse)
async def portfolio(request: Request, client=Depends(get_backend)):
    sections = []
    error = None
    for category in Category:
        try:
            photos = queries.get_photos_by_category(client, category)
        except BackendError as exc:
            logger.error("portfolio.load.failed", extra={"category": category.value, **exc.log_extra()})
            photos = []
            error = "Some photos could not be loaded."
        sections.append({"category": category.value, "photos": photos})
    return templates.TemplateResponse(
        request,
        "portfolio.html",
        context={"sections": sections, "gallery": GalleryState(), "error": error},
    )


def _motocross_photos(client, filters: MotocrossFilter):
    """Photos for the motocross page, newest first."""
    if not filters.event_id:
        return queries.list_photos(
            client, category=Category.MOTOCROSS, start_number=filters.start_number
        )
    if filters.start_number:
        rows = queries.get_photos_by_start_number(client, filters.event_id, filters.start_number)
    else:
        rows = queries.get_photos_by_event(client, filters.event_id)
    # An event may also hold photos filed under another category
    rows = [p for p in rows if p.category == Category.MOTOCROSS]
    return sorted(rows, key=lambda p: p.created_at or "", reverse=True)


@router.get("/motocross", response_class=HTMLResponse)
async def motocross(request: Request, client=Depends(get_backend)):
    filters = MotocrossFilter.from_params(request.query_params)
    events, photos, error = [], [], None
    try:
        events = queries.get_events(client)
        photos = _motocross_photos(client, filters)
    except BackendError as exc:
        logger.error(
            "motocross.load.failed",
            extra={"event_id": filters.event_id, "start_number": filters.start_number, **exc.log_extra()},
        )
        error = "Photos could not be loaded. Please try again later."
    return templates.TemplateResponse(
        request,
        "motocross.html",
        context={
            "events": events,
            "photos": photos,
            "filters": filters,
            "gallery": GalleryState(),
            "error": error,
        },
    )


def _render_gallery(request: Request, slug: str, client):
    category, title = _GALLERY_PAGES[slug]
    photos, error = [], None
    try:
        photos = queries.list_photos(client, category=category)
    except BackendError as exc:
        logger.error("gallery.load.failed", extra={"category": category.value, **exc.log_extra()})
        error = "Photos could not be loaded. Please try again later."
    return templates.TemplateResponse(
        request,
        "gallery.html",
        context={
            "title": title,
            "category": category.value,
            "photos": photos,
            "gallery": GalleryState(),
            "error": error,
        },
    )


@router.get("/portrait", response_class=HTMLResponse)
async def portrait(request: Request, client=Depends(get_backend)):
    return _render_gallery(request, "portrait", client)


@router.get("/product", response_class=HTMLResponse)
async def product(request: Request, client=Depends(get_backend)):
    return _render_gallery(request, "product", client)


@router.get("/api/photos", response_class=JSONResponse)
async def photos_data(
    category: Optional[str] = Query(None),
    event_id: Optional[str] = Query(None),
    start_number: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=200),
    client=Depends(get_backend),
):
    cat = Category.parse(category) if category else None
    if category and cat is None:
        return JSONResponse({"ok": False, "error": "unknown category"}, status_code=400)
    try:
        photos = queries.list_photos(
            client,
            category=cat,
            event_id=(event_id or "").strip() or None,
            start_number=(start_number or "").strip() or None,
            limit=limit,
        )
    except BackendError as exc:
        logger.error("api.photos.failed", extra=exc.log_extra())
        return JSONResponse({"ok": False, "error": "backend unavailable"}, status_code=502)
    return {"ok": True, "photos": [_photo_json(p) for p in photos]}
