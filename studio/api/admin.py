"""Admin dashboard: events and photos management."""

# ruff: noqa: I001
import logging
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

import db
from studio.core.logging_utils import request_context
from studio.core.settings import settings
from studio.core.templates import templates
from studio.models import Category, EventCreate, PhotoUpdate
from studio.services import auth, queries, uploads
from studio.services.auth import AdminContext, require_admin
from studio.services.csrf import csrf_ok, current_or_new_token, set_csrf_cookie
from studio.services.errors import (
    AuthError,
    BackendError,
    RowDeleteError,
    RowUpdateError,
    StorageDeleteError,
)
from studio.services.rate_limit import allow as rl_allow
from studio.services.views import DashboardView, build_dashboard_context

router = APIRouter()
logger = logging.getLogger(__name__)
audit = logging.getLogger("audit")

MESSAGES = {
    "event-created": "Event created.",
    "event-deleted": "Event deleted.",
    "photo-updated": "Photo saved.",
    "photo-deleted": "Photo deleted.",
}
ERRORS = {
    "csrf": "Invalid form token. Please refresh and try again.",
    "event-invalid": "Please provide a name, a valid date and a location.",
    "event-failed": "The event could not be saved.",
    "event-missing": "That event no longer exists.",
    "photo-missing": "That photo no longer exists.",
    "photo-failed": "The photo could not be changed.",
    "photo-orphan": "Photo removed, but its file is still in storage (cleaned up by the orphan sweep).",
    "load-failed": "Data could not be loaded from the backend.",
}


def _render(
    request: Request,
    template: str,
    context: dict,
    admin: Optional[AdminContext] = None,
    status_code: int = 200,
):
    token = current_or_new_token(request)
    resp = templates.TemplateResponse(
        request,
        template,
        context={"csrf_token": token, "admin": admin, **context},
        status_code=status_code,
    )
    set_csrf_cookie(resp, token)
    if admin is not None:
        admin.persist(resp)
    return resp


def _back(
    admin: AdminContext,
    view: DashboardView,
    msg: Optional[str] = None,
    err: Optional[str] = None,
):
    """Redirect to the dashboard; the target page re-fetches its list."""
    url = view.url()
    extra = {k: v for k, v in (("msg", msg), ("err", err)) if v}
    if extra:
        url += "&" + urlencode(extra)
    return admin.persist(RedirectResponse(url, status_code=303))


def _photos_view(view_category: str, view_portfolio: str) -> DashboardView:
    return DashboardView.from_params(
        {"tab": "photos", "category": view_category, "portfolio": view_portfolio}
    )


def _dashboard(
    request: Request,
    admin: AdminContext,
    view: DashboardView,
    batch=None,
    error: Optional[str] = None,
    status_code: int = 200,
):
    events, photos = [], []
    error = error or ERRORS.get(request.query_params.get("err", ""))
    try:
        events = queries.get_events(admin.client)
        if view.tab == "photos":
            photos = queries.list_photos(
                admin.client, category=view.category_filter, limit=view.photo_limit
            )
    except BackendError as exc:
        logger.error("admin.load.failed", extra=request_context(request, **exc.log_extra()))
        error = ERRORS["load-failed"]
    context = build_dashboard_context(
        view,
        events,
        photos,
        batch=batch,
        notice=MESSAGES.get(request.query_params.get("msg", "")),
        error=error,
    )
    return _render(request, "admin/dashboard.html", context, admin=admin, status_code=status_code)


# --- Session ---


@router.get("/admin/login", response_class=HTMLResponse)
async def login_page(request: Request):
    admin = auth.get_admin(request)
    if admin is not None:
        return admin.persist(RedirectResponse("/admin", status_code=303))
    return _render(request, "admin/login.html", {})


@router.post("/admin/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    csrf_token: str = Form(""),
):
    email = email.strip()
    rl_key = f"login:{request.client.host if request.client else 'unknown'}:{email.lower()}"
    if not rl_allow(
        rl_key,
        int(getattr(settings, "RATE_LIMIT_LOGIN_ATTEMPTS", 5)),
        int(getattr(settings, "RATE_LIMIT_LOGIN_WINDOW_SECONDS", 900)),
    ):
        return _render(
            request,
            "admin/login.html",
            {"error": "Too many login attempts. Please try again later.", "email": email},
            status_code=429,
        )
    if not csrf_ok(request, csrf_token):
        audit.warning("admin.csrf.mismatch", extra=request_context(request))
        return _render(
            request,
            "admin/login.html",
            {"error": ERRORS["csrf"], "email": email},
            status_code=400,
        )
    try:
        session = auth.sign_in(db.create_user_client(), email, password)
    except AuthError as exc:
        audit.warning(
            "admin.login.failed", extra=request_context(request, email=email, **exc.log_extra())
        )
        return _render(
            request,
            "admin/login.html",
            {"error": AuthError.public_message, "email": email},
            status_code=401,
        )
    audit.info("admin.login", extra=request_context(request, email=session.email))
    resp = RedirectResponse("/admin", status_code=303)
    auth.set_session_cookie(resp, session)
    return resp


@router.post("/admin/logout")
async def logout(request: Request, csrf_token: str = Form("")):
    if not csrf_ok(request, csrf_token):
        return RedirectResponse("/admin?err=csrf", status_code=303)
    admin = auth.get_admin(request)
    if admin is not None:
        auth.sign_out(admin.client)
        audit.info("admin.logout", extra=request_context(request, email=admin.session.email))
    resp = RedirectResponse("/admin/login", status_code=303)
    auth.clear_session_cookie(resp)
    return resp


# --- Dashboard ---


@router.get("/admin", response_class=HTMLResponse)
async def dashboard(request: Request, admin: AdminContext = Depends(require_admin)):
    view = DashboardView.from_params(request.query_params)
    return _dashboard(request, admin, view)


# --- Events ---


@router.post("/admin/events")
async def create_event(
    request: Request,
    name: str = Form(""),
    date: str = Form(""),
    location: str = Form(""),
    description: str = Form(""),
    csrf_token: str = Form(""),
    admin: AdminContext = Depends(require_admin),
):
    view = DashboardView(tab="events")
    if not csrf_ok(request, csrf_token):
        return _back(admin, view, err="csrf")
    try:
        payload = EventCreate(name=name, date=date, location=location, description=description)
    except ValidationError:
        return _back(admin, view, err="event-invalid")
    try:
        event = queries.create_event(admin.client, payload)
    except BackendError as exc:
        logger.error("admin.event.create.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="event-failed")
    audit.info("admin.event.created", extra=request_context(request, event_id=event.id))
    return _back(admin, view, msg="event-created")


@router.get("/admin/events/{event_id}/delete", response_class=HTMLResponse)
async def confirm_delete_event(
    request: Request, event_id: str, admin: AdminContext = Depends(require_admin)
):
    try:
        event = queries.get_event_by_id(admin.client, event_id)
    except BackendError:
        return _back(admin, DashboardView(tab="events"), err="event-missing")
    return _render(
        request,
        "admin/confirm_delete.html",
        {
            "kind": "event",
            "label": f"{event.name} ({event.date}, {event.location})",
            "action": f"/admin/events/{event.id}/delete",
            "cancel_url": DashboardView(tab="events").url(),
        },
        admin=admin,
    )


@router.post("/admin/events/{event_id}/delete")
async def delete_event(
    request: Request,
    event_id: str,
    csrf_token: str = Form(""),
    admin: AdminContext = Depends(require_admin),
):
    view = DashboardView(tab="events")
    if not csrf_ok(request, csrf_token):
        return _back(admin, view, err="csrf")
    try:
        queries.delete_event(admin.client, event_id)
    except RowDeleteError as exc:
        logger.warning("admin.event.delete.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="event-missing" if exc.not_found else "event-failed")
    except BackendError as exc:
        logger.error("admin.event.delete.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="event-failed")
    audit.info("admin.event.deleted", extra=request_context(request, event_id=event_id))
    return _back(admin, view, msg="event-deleted")


# --- Photos ---


@router.post("/admin/photos/upload", response_class=HTMLResponse)
async def upload_photos(
    request: Request,
    files: List[UploadFile] = File(...),
    category: str = Form(""),
    start_number: str = Form(""),
    event_id: str = Form(""),
    view_category: str = Form("all"),
    view_portfolio: str = Form(""),
    csrf_token: str = Form(""),
    admin: AdminContext = Depends(require_admin),
):
    view = _photos_view(view_category, view_portfolio)
    if not csrf_ok(request, csrf_token):
        return _back(admin, view, err="csrf")
    cat = Category.parse(category)
    if cat is None:
        # "all" is a filter, not a place to store photos
        return _dashboard(
            request, admin, view, error="Choose a category before uploading.", status_code=400
        )

    max_bytes = int(getattr(settings, "MAX_UPLOAD_BYTES", 25_000_000))
    items = []
    for f in files:
        # One byte past the limit is enough for validate_upload to reject the file
        data = await f.read(max_bytes + 1)
        items.append(
            uploads.UploadItem(
                filename=f.filename or "upload",
                data=data,
                category=cat,
                content_type=f.content_type,
                start_number=start_number.strip(),
                event_id=event_id.strip() or None,
            )
        )
    batch = uploads.run_batch_upload(admin.client, items)
    audit.info(
        "admin.photos.uploaded",
        extra=request_context(
            request,
            category=cat.value,
            succeeded=len(batch.succeeded),
            failed=len(batch.failed),
        ),
    )
    return _dashboard(request, admin, view, batch=batch)


@router.post("/admin/photos/{photo_id}")
async def update_photo(
    request: Request,
    photo_id: str,
    start_number: str = Form(""),
    event_id: str = Form(""),
    view_category: str = Form("all"),
    view_portfolio: str = Form(""),
    csrf_token: str = Form(""),
    admin: AdminContext = Depends(require_admin),
):
    view = _photos_view(view_category, view_portfolio)
    if not csrf_ok(request, csrf_token):
        return _back(admin, view.editing(photo_id), err="csrf")
    try:
        queries.update_photo(
            admin.client, photo_id, PhotoUpdate(start_number=start_number, event_id=event_id)
        )
    except RowUpdateError as exc:
        logger.warning("admin.photo.update.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="photo-missing" if exc.not_found else "photo-failed")
    except BackendError as exc:
        logger.error("admin.photo.update.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="photo-failed")
    audit.info("admin.photo.updated", extra=request_context(request, photo_id=photo_id))
    return _back(admin, view, msg="photo-updated")


@router.get("/admin/photos/{photo_id}/delete", response_class=HTMLResponse)
async def confirm_delete_photo(
    request: Request, photo_id: str, admin: AdminContext = Depends(require_admin)
):
    view = DashboardView.from_params({**request.query_params, "tab": "photos"})
    try:
        photo = queries.get_photo_by_id(admin.client, photo_id)
    except BackendError:
        photo = None
    if photo is None:
        return _back(admin, view, err="photo-missing")
    return _render(
        request,
        "admin/confirm_delete.html",
        {
            "kind": "photo",
            "label": photo.url,
            "photo": photo,
            "action": f"/admin/photos/{photo.id}/delete",
            "cancel_url": view.url(),
            "view": view,
        },
        admin=admin,
    )


@router.post("/admin/photos/{photo_id}/delete")
async def delete_photo(
    request: Request,
    photo_id: str,
    view_category: str = Form("all"),
    view_portfolio: str = Form(""),
    csrf_token: str = Form(""),
    admin: AdminContext = Depends(require_admin),
):
    view = _photos_view(view_category, view_portfolio)
    if not csrf_ok(request, csrf_token):
        return _back(admin, view, err="csrf")
    try:
        uploads.delete_photo(admin.client, photo_id)
    except RowDeleteError as exc:
        logger.warning("admin.photo.delete.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="photo-missing" if exc.not_found else "photo-failed")
    except StorageDeleteError:
        # Row is gone; the object is picked up by the orphan sweep
        return _back(admin, view, err="photo-orphan")
    except BackendError as exc:
        logger.error("admin.photo.delete.failed", extra=request_context(request, **exc.log_extra()))
        return _back(admin, view, err="photo-failed")
    return _back(admin, view, msg="photo-deleted")
