import logging
import time
import uuid
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import PlainTextResponse, RedirectResponse

load_dotenv()

from studio.api import admin, contact, pages  # noqa: E402
from studio.core.logging_utils import configure_logging  # noqa: E402
from studio.core.middleware import (  # noqa: E402
    SecurityHeadersMiddleware,
    add_compression_middleware,
)
from studio.core.settings import settings  # noqa: E402
from studio.core.templates import templates  # noqa: E402

try:
    import sentry_sdk  # type: ignore
    from sentry_sdk.integrations.starlette import StarletteIntegration  # type: ignore
except Exception:
    sentry_sdk = None  # type: ignore


app = FastAPI(title=settings.SITE_NAME)
add_compression_middleware(app)
app.add_middleware(SecurityHeadersMiddleware, media_origin=settings.SUPABASE_URL)

# Configure logging (console + rotating file; JSON by default)
configure_logging(settings)
logger = logging.getLogger("app")

# Initialize Sentry if DSN provided
if getattr(settings, "SENTRY_DSN", "") and sentry_sdk is not None:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[StarletteIntegration()],
        traces_sample_rate=float(getattr(settings, "SENTRY_TRACES_SAMPLE_RATE", 0.0) or 0.0),
        send_default_pii=False,
    )

app.mount("/static", StaticFiles(directory="static"), name="static")

app.include_router(admin.router)
app.include_router(contact.router)
app.include_router(pages.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


# Request logging middleware with request id
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    duration_ms: Optional[int] = None
    request.state.request_id = request_id

    extra_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }
    logger.info("request.start", extra=extra_ctx)
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.exception("request.error", extra={**extra_ctx, "duration_ms": duration_ms})
        # Re-raise to be handled by 500 handler
        raise

    duration_ms = int((time.perf_counter() - start) * 1000)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "request.end",
        extra={**extra_ctx, "status_code": response.status_code, "duration_ms": duration_ms},
    )
    return response


def _with_request_id(request: Request, resp):
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        resp.headers["X-Request-ID"] = str(request_id)
    return resp


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    if request.url.path.startswith("/api/"):
        return _with_request_id(request, JSONResponse({"detail": "Not Found"}, status_code=404))
    resp = templates.TemplateResponse(request, "404.html", status_code=404)
    return _with_request_id(request, resp)


@app.exception_handler(FastAPIHTTPException)
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Follow redirects raised by auth dependencies; JSON for everything else."""
    status = getattr(exc, "status_code", 500) or 500
    if status == 404:
        return await not_found_handler(request, exc)
    if status in (301, 302, 303, 307, 308):
        loc = (getattr(exc, "headers", None) or {}).get("Location")
        if loc:
            return _with_request_id(request, RedirectResponse(url=loc, status_code=status))
    if status >= 500:
        logger.error(
            "http.error",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "status_code": status,
                "detail": str(exc.detail),
            },
        )
    resp = JSONResponse({"detail": exc.detail}, status_code=status)
    return _with_request_id(request, resp)


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        "request.unhandled",
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"request_id": request_id, "path": request.url.path, "method": request.method},
    )
    try:
        resp = templates.TemplateResponse(
            request,
            "500.html",
            context={"request_id": request_id},
            status_code=500,
        )
    except Exception:
        resp = PlainTextResponse("Internal Server Error", status_code=500)
    return _with_request_id(request, resp)
