import os

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp


def add_compression_middleware(app):
    app.add_middleware(GZipMiddleware, minimum_size=500)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, media_origin: str = "", prod_only: bool = True):
        super().__init__(app)
        self.media_origin = (media_origin or "").rstrip("/")
        self.prod_only = prod_only and os.getenv("ENV", "dev") == "prod"

    async def dispatch(self, request, call_next):
        response: Response = await call_next(request)
        content_type = response.headers.get("content-type", "").lower()
        # Only set security headers for HTML responses
        if content_type.startswith("text/html"):
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            img_src = "img-src 'self' data:"
            if self.media_origin:
                img_src += f" {self.media_origin}"
            csp_parts = [
                "default-src 'self';",
                "script-src 'self';",
                "style-src 'self' 'unsafe-inline';",
                img_src + ";",
                "object-src 'none';",
                "base-uri 'self';",
                "form-action 'self';",
            ]
            response.headers["Content-Security-Policy"] = " ".join(csp_parts)
            if self.prod_only:
                response.headers[
                    "Strict-Transport-Security"
                ] = "max-age=63072000; includeSubDomains"
        return response
