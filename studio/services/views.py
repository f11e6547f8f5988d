"""Immutable view state for the admin dashboard and the galleries.

State arrives as query parameters, is parsed once into a frozen value and
handed to pure functions that build the template context.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Optional
from urllib.parse import urlencode

from studio.core.settings import settings
from studio.models import Category, Event, Photo

TABS = ("events", "photos")
ALL = "all"
CATEGORY_FILTERS = (ALL,) + tuple(c.value for c in Category)


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "on", "yes")


@dataclass(frozen=True)
class DashboardView:
    tab: str = "events"
    category: str = ALL
    portfolio_only: bool = False
    editing_photo_id: Optional[str] = None

    @classmethod
    def from_params(cls, params) -> "DashboardView":
        """Parse query params; unknown values fall back to defaults."""
        tab = str(params.get("tab") or "events")
        category = str(params.get("category") or ALL)
        editing = str(params.get("edit") or "").strip() or None
        return cls(
            tab=tab if tab in TABS else "events",
            category=category if category in CATEGORY_FILTERS else ALL,
            portfolio_only=_truthy(params.get("portfolio")),
            editing_photo_id=editing,
        )

    @property
    def category_filter(self) -> Optional[Category]:
        return None if self.category == ALL else Category(self.category)

    @property
    def photo_limit(self) -> Optional[int]:
        return int(settings.PORTFOLIO_LIMIT) if self.portfolio_only else None

    def with_tab(self, tab: str) -> "DashboardView":
        return replace(self, tab=tab, editing_photo_id=None)

    def editing(self, photo_id: Optional[str]) -> "DashboardView":
        return replace(self, tab="photos", editing_photo_id=photo_id)

    def query_string(self) -> str:
        params: Dict[str, str] = {"tab": self.tab}
        if self.tab == "photos":
            if self.category != ALL:
                params["category"] = self.category
            if self.portfolio_only:
                params["portfolio"] = "1"
            if self.editing_photo_id:
                params["edit"] = self.editing_photo_id
        return urlencode(params)

    def url(self) -> str:
        return f"/admin?{self.query_string()}"


def build_dashboard_context(
    view: DashboardView,
    events: List[Event],
    photos: List[Photo],
    batch=None,
    notice: Optional[str] = None,
    error: Optional[str] = None,
) -> dict:
    """Template context for admin/dashboard.html; no I/O."""
    event_names = {e.id: e.name for e in events}
    return {
        "view": view,
        "tabs": TABS,
        "category_filters": CATEGORY_FILTERS,
        "categories": [c.value for c in Category],
        "events": events,
        "event_names": event_names,
        "photos": photos,
        "editing": view.editing_photo_id,
        "batch": batch,
        "notice": notice,
        "error": error,
        "events_url": view.with_tab("events").url(),
        "photos_url": view.with_tab("photos").url(),
        "return_to": view.with_tab(view.tab).url(),
    }


@dataclass(frozen=True)
class GalleryState:
    """Which images of a gallery have finished loading (skeleton vs image)."""

    loaded: FrozenSet[str] = field(default_factory=frozenset)

    def mark_loaded(self, photo_id: str) -> "GalleryState":
        if photo_id in self.loaded:
            return self
        return GalleryState(loaded=self.loaded | {photo_id})

    def is_loaded(self, photo_id: str) -> bool:
        return photo_id in self.loaded

    @classmethod
    def of(cls, ids: Iterable[str]) -> "GalleryState":
        return cls(loaded=frozenset(ids))


@dataclass(frozen=True)
class MotocrossFilter:
    event_id: Optional[str] = None
    start_number: Optional[str] = None

    @classmethod
    def from_params(cls, params) -> "MotocrossFilter":
        event_id = str(params.get("event_id") or "").strip() or None
        # Start numbers are matched exactly; only surrounding whitespace is dropped
        start_number = str(params.get("start_number") or "").strip() or None
        return cls(event_id=event_id, start_number=start_number)

    @property
    def active(self) -> bool:
        return bool(self.event_id or self.start_number)
