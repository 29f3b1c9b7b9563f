"""
Worker Search Service - public discovery of worker profiles.

Three entry points:

search()  category / subcategory / city / min_rating filters, ranked by
          plan tier, then rating, then review count. Page window and total
          come from two store queries over the same filter.

nearby()  category / subcategory within a fixed 10 km radius, ordered by
          distance. Firestore has no radius query, so the store narrows by
          latitude band and the exact haversine check runs here.

admin_stats()  dashboard counts plus all profiles, newest first.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.config.firebase import get_db
from app.models.base import Pagination
from app.models.worker import SubscriptionPlan
from app.services.worker_query import DESCENDING, RANKING_ORDER, PageWindow, WorkerQuery
from app.utils.firestore_helpers import count_documents, snapshot_to_dict, where_filter

logger = logging.getLogger(__name__)

WORKER_PROFILES = "worker_profiles"

# (stat key, field, value) counted by admin_stats()
STAT_FILTERS = [
    ("verified_workers", "is_verified", True),
    ("available_workers", "is_available", True),
    ("silver_subscribers", "subscription_plan", SubscriptionPlan.SILVER.value),
    ("gold_subscribers", "subscription_plan", SubscriptionPlan.GOLD.value),
]


@dataclass
class SearchResult:
    items: List[Dict[str, Any]]
    total: int
    window: PageWindow

    @property
    def pagination(self) -> Pagination:
        return Pagination.build(self.window.page, self.window.limit, self.total)


class WorkerSearchService:
    SEARCH_MAX_LIMIT = 100
    NEARBY_MAX_LIMIT = 50
    NEARBY_RADIUS_METERS = 10_000

    @property
    def db(self):
        return get_db()

    def search(
        self,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        city: Optional[str] = None,
        min_rating: Optional[float] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        window = PageWindow.clamp(page, limit, self.SEARCH_MAX_LIMIT)
        query = (
            WorkerQuery.public()
            .with_category(category)
            .with_subcategory(subcategory)
            .with_city(city)
            .with_min_rating(min_rating)
            .order_by(RANKING_ORDER)
        )

        collection = self.db.collection(WORKER_PROFILES)
        page_query = query.apply(collection).offset(window.skip).limit(window.limit)
        items = [snapshot_to_dict(doc) for doc in page_query.stream()]
        total = count_documents(query.apply(collection, include_sort=False))

        logger.info(
            f"Worker search filters={query.filters()} page={window.page} "
            f"limit={window.limit} -> {len(items)}/{total}"
        )
        return SearchResult(items=items, total=total, window=window)

    def nearby(
        self,
        latitude: float,
        longitude: float,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        window = PageWindow.clamp(page, limit, self.NEARBY_MAX_LIMIT)
        query = (
            WorkerQuery.public()
            .with_category(category)
            .with_subcategory(subcategory)
            .within_radius(latitude, longitude, self.NEARBY_RADIUS_METERS)
        )

        matches: List[Dict[str, Any]] = []
        for doc in query.apply(self.db.collection(WORKER_PROFILES)).stream():
            worker = snapshot_to_dict(doc)
            distance = query.geo.distance_to(worker.get("location"))
            if distance is None:
                continue
            worker["distance_meters"] = round(distance, 1)
            matches.append(worker)

        matches.sort(key=lambda w: (w["distance_meters"], w["id"]))
        items = matches[window.skip: window.skip + window.limit]

        logger.info(
            f"Nearby search ({latitude:.4f}, {longitude:.4f}) r={self.NEARBY_RADIUS_METERS}m "
            f"page={window.page} limit={window.limit} -> {len(items)}/{len(matches)}"
        )
        return SearchResult(items=items, total=len(matches), window=window)

    def admin_stats(self, page: Optional[int] = None, limit: Optional[int] = None) -> Tuple[Dict[str, int], SearchResult]:
        """
        Profile counts for the admin dashboard plus every profile, newest
        first, regardless of verification or availability.
        """
        window = PageWindow.clamp(page, limit, self.SEARCH_MAX_LIMIT)
        collection = self.db.collection(WORKER_PROFILES)

        stats = {"total_workers": count_documents(collection)}
        for key, field, value in STAT_FILTERS:
            stats[key] = count_documents(where_filter(collection, field, "==", value))

        page_query = collection.order_by("created_at", direction=DESCENDING).offset(window.skip).limit(window.limit)
        items = [snapshot_to_dict(doc) for doc in page_query.stream()]

        logger.info(f"Worker stats page={window.page} limit={window.limit}: {stats}")
        return stats, SearchResult(items=items, total=stats["total_workers"], window=window)


_worker_search_service = None


def get_worker_search_service() -> WorkerSearchService:
    global _worker_search_service
    if _worker_search_service is None:
        _worker_search_service = WorkerSearchService()
    return _worker_search_service
