from datetime import date, datetime

from fastapi.templating import Jinja2Templates

from studio.core.settings import settings
from studio.services.storage_urls import normalize_url


def _datefmt(value, fmt: str = "%d.%m.%Y") -> str:
    """
    Jinja filter: Format an event date as DD.MM.YYYY.
    - date/datetime values use strftime.
    - ISO strings (YYYY-MM-DD, as stored for events) are parsed as calendar dates.
    - Anything else is returned as-is; None becomes an empty string.
    """
    if value is None or value == "":
        return ""
    if hasattr(value, "strftime"):
        return value.strftime(fmt)
    try:
        return date.fromisoformat(str(value)[:10]).strftime(fmt)
    except ValueError:
        return str(value)


def _media_url(value) -> str:
    """Jinja filter: resolve a stored photo url/key to its public URL."""
    return normalize_url(value, settings.public_storage_base)


templates = Jinja2Templates(directory="templates")
templates.env.filters["datefmt"] = _datefmt
templates.env.filters["media_url"] = _media_url
templates.env.globals["now"] = lambda: datetime.now()
templates.env.globals["site_name"] = settings.SITE_NAME
