"""
Worker query builder.

Collects optional, independent search predicates into one structured query
and translates it to a Firestore query in a fixed order, so the same
filters always produce the same query no matter which order they were
added in. Sorting is an explicit ordered key list.

Firestore allows a single array-membership predicate per query, so
category and subcategory membership are both answered from one derived
field, `search_keys`:

    c:<category>   s:<subcategory>   cs:<category>|<subcategory>

and the builder picks the single most specific key.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from firebase_admin import firestore

from app.core.errors import InvalidInputError
from app.utils.firestore_helpers import where_filter
from app.utils.geo import haversine_meters, latitude_band, point_coordinates
from app.utils.geocoding import normalize_city_name
from app.utils.validators import validate_coordinates

DESCENDING = firestore.Query.DESCENDING
ASCENDING = firestore.Query.ASCENDING

DEFAULT_PAGE_SIZE = 20

# Paid tiers first, then best rated, then most reviewed
RANKING_ORDER: List[Tuple[str, str]] = [
    ("plan_rank", DESCENDING),
    ("rating", DESCENDING),
    ("total_reviews", DESCENDING),
]


def _tag(value: str) -> str:
    return " ".join(value.split()).lower()


def build_search_keys(categories: Iterable[str], subcategories: Iterable[str]) -> List[str]:
    """Derive the `search_keys` membership index stored on each worker profile."""
    cats = sorted({_tag(c) for c in categories or [] if c and c.strip()})
    subs = sorted({_tag(s) for s in subcategories or [] if s and s.strip()})
    keys = [f"c:{c}" for c in cats] + [f"s:{s}" for s in subs]
    keys += [f"cs:{c}|{s}" for c in cats for s in subs]
    return keys


@dataclass(frozen=True)
class PageWindow:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def clamp(cls, page: Optional[int], limit: Optional[int], max_limit: int) -> "PageWindow":
        """1-indexed page clamped to >= 1; limit clamped to [1, max_limit]."""
        page = max(1, page or 1)
        limit = DEFAULT_PAGE_SIZE if limit is None else limit
        return cls(page=page, limit=min(max(1, limit), max_limit))


@dataclass(frozen=True)
class GeoFilter:
    latitude: float
    longitude: float
    radius_meters: float

    def distance_to(self, location: Optional[Dict[str, Any]]) -> Optional[float]:
        """Distance in meters if the point lies inside the radius, else None."""
        coords = point_coordinates(location)
        if coords is None:
            return None
        distance = haversine_meters(self.latitude, self.longitude, coords[0], coords[1])
        return distance if distance <= self.radius_meters else None


class WorkerQuery:
    def __init__(self):
        self.equals: Dict[str, Any] = {}
        self.category: Optional[str] = None
        self.subcategory: Optional[str] = None
        self.city: Optional[str] = None
        self.min_rating: Optional[float] = None
        self.geo: Optional[GeoFilter] = None
        self.sort: List[Tuple[str, str]] = []

    @classmethod
    def public(cls) -> "WorkerQuery":
        """Baseline for anything shown to customers: available and verified workers only."""
        query = cls()
        query.equals = {"is_available": True, "is_verified": True}
        return query

    def with_category(self, category: Optional[str]) -> "WorkerQuery":
        if category and category.strip():
            self.category = _tag(category)
        return self

    def with_subcategory(self, subcategory: Optional[str]) -> "WorkerQuery":
        if subcategory and subcategory.strip():
            self.subcategory = _tag(subcategory)
        return self

    def with_city(self, city: Optional[str]) -> "WorkerQuery":
        self.city = normalize_city_name(city)
        return self

    def with_min_rating(self, min_rating: Optional[float]) -> "WorkerQuery":
        if min_rating is None:
            return self
        if not 0 <= min_rating <= 5:
            raise InvalidInputError("min_rating must be between 0 and 5")
        self.min_rating = float(min_rating)
        return self

    def within_radius(self, latitude: float, longitude: float, radius_meters: float) -> "WorkerQuery":
        validate_coordinates(latitude, longitude)
        self.geo = GeoFilter(latitude, longitude, radius_meters)
        return self

    def order_by(self, order: List[Tuple[str, str]]) -> "WorkerQuery":
        self.sort = list(order)
        return self

    def membership_key(self) -> Optional[str]:
        if self.category and self.subcategory:
            return f"cs:{self.category}|{self.subcategory}"
        if self.category:
            return f"c:{self.category}"
        if self.subcategory:
            return f"s:{self.subcategory}"
        return None

    def filters(self) -> List[Tuple[str, str, Any]]:
        """Store-side predicates as (field, op, value), in canonical order."""
        filters = [(name, "==", value) for name, value in sorted(self.equals.items())]
        if self.city:
            filters.append(("city", "==", self.city))
        key = self.membership_key()
        if key:
            filters.append(("search_keys", "array_contains", key))
        if self.min_rating is not None:
            filters.append(("rating", ">=", self.min_rating))
        if self.geo is not None:
            low, high = latitude_band(self.geo.latitude, self.geo.radius_meters)
            filters.append(("location_lat", ">=", low))
            filters.append(("location_lat", "<=", high))
        return filters

    def apply(self, collection, include_sort: bool = True):
        query = collection
        for field_path, op, value in self.filters():
            query = where_filter(query, field_path, op, value)
        if include_sort:
            for field_path, direction in self.sort:
                query = query.order_by(field_path, direction=direction)
        return query
