"""Resolve stored photo urls to public object URLs.

Photo rows hold either a storage key relative to the media bucket
(``motocross/1712345678901-k3j9x2.JPG``) or an absolute URL from older
imports. Both are served through :func:`normalize_url`.
"""

from __future__ import annotations

from typing import Optional

_SCHEMES = ("http://", "https://")


def is_absolute(url: Optional[str]) -> bool:
    return bool(url) and str(url).lower().startswith(_SCHEMES)


def normalize_url(url: Optional[str], base: str) -> str:
    """Return the public URL for ``url``.

    Absolute URLs are returned unchanged, so the function is idempotent.
    Empty values map to an empty string; callers render a placeholder.
    """
    if not url:
        return ""
    url = str(url)
    if is_absolute(url):
        return url
    if not base.endswith("/"):
        base += "/"
    return base + url.lstrip("/")


def storage_key_of(url: Optional[str], base: str) -> Optional[str]:
    """Inverse of :func:`normalize_url` for objects living in our bucket.

    Returns None for empty values and for absolute URLs pointing elsewhere.
    """
    if not url:
        return None
    url = str(url)
    if not is_absolute(url):
        return url.lstrip("/") or None
    if not base.endswith("/"):
        base += "/"
    if url.startswith(base):
        return url[len(base):] or None
    return None
