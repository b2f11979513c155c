"""
Spatial query layer.

Translates a viewport (bounds, zoom, category filter, pagination offset) into
the three independent query shapes served by the restaurant store:

- bounds query: markers inside the padded viewport, unfiltered by category
- cluster query: per-cell aggregates over the same padded viewport
- nearest query: paginated list ordered by planar distance to the padded
  viewport's centre, filtered by category in the store

Every method validates its input before touching the store.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from app.application.interfaces.repositories import RestaurantStore
from app.core.config import MapViewConfig
from app.core.exceptions import InvalidQueryError
from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.services.clustering import MAX_ZOOM, MIN_ZOOM, cluster_cell_bounds
from app.domain.mapping.services.geometry import bounds_center, pad_bounds
from app.domain.mapping.value_objects.coordinates import Bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyPage:
    """One page of the nearest-neighbor list."""

    items: Tuple[Restaurant, ...]
    has_more: bool
    offset: int
    center: Tuple[float, float] = (0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "items": [r.to_dict() for r in self.items],
            "has_more": self.has_more,
            "offset": self.offset,
        }


def _validate_zoom(zoom: int) -> None:
    if isinstance(zoom, bool) or not isinstance(zoom, int):
        raise InvalidQueryError(f"Zoom must be an integer, got {zoom!r}")
    if not (MIN_ZOOM <= zoom <= MAX_ZOOM):
        raise InvalidQueryError(f"Zoom {zoom} outside [{MIN_ZOOM}, {MAX_ZOOM}]")


def _normalize_category_filter(categories: Optional[Iterable[str]]) -> Optional[FrozenSet[str]]:
    if not categories:
        return None
    selected = frozenset(c for c in categories if c)
    return selected or None


class SpatialQueryService:
    """Viewport-to-store query translation shared by the HTTP API and map sessions."""

    def __init__(self, store: RestaurantStore, config: Optional[MapViewConfig] = None):
        self.store = store
        self.config = config or MapViewConfig()

    def padded(self, bounds: Bounds) -> Bounds:
        """Viewport plus the pre-fetch halo."""
        return pad_bounds(bounds, self.config.padding_ratio)

    async def fetch_bounds(self, bounds: Bounds) -> List[Restaurant]:
        """Map markers for ``bounds``; category filtering is left to the caller."""
        return await self.store.find_in_bounds(self.padded(bounds))

    async def fetch_clusters(self, bounds: Bounds, zoom: int) -> List[Cluster]:
        _validate_zoom(zoom)
        return await self.store.cluster_in_bounds(self.padded(bounds), zoom)

    async def fetch_cell(self, cluster: Cluster, zoom: int) -> List[Restaurant]:
        """Members of a selected cluster: a bounds query scoped to its covering cell."""
        _validate_zoom(zoom)
        return await self.store.find_in_bounds(cluster_cell_bounds(cluster.lat, cluster.lng, zoom))

    async def fetch_nearby(
        self,
        bounds: Bounds,
        categories: Optional[Iterable[str]] = None,
        offset: int = 0,
    ) -> NearbyPage:
        """
        One page of restaurants nearest to the padded viewport's centre.

        Fetches one row beyond the page size to learn whether another page
        exists without a separate count query.

        Args:
            bounds: Visible viewport (padding is applied here)
            categories: OR filter applied by the store; empty means no filter
            offset: Rows to skip, a multiple of the page size in practice

        Returns:
            NearbyPage with at most ``page_size`` items
        """
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise InvalidQueryError(f"Offset must be a non-negative integer, got {offset!r}")

        limit = self.config.page_size
        center_lat, center_lng = bounds_center(self.padded(bounds))
        rows = await self.store.find_nearest(
            center_lat,
            center_lng,
            _normalize_category_filter(categories),
            limit + 1,
            offset,
        )
        has_more = len(rows) > limit
        return NearbyPage(
            items=tuple(rows[:limit]),
            has_more=has_more,
            offset=offset,
            center=(center_lat, center_lng),
        )

    async def list_categories(self) -> List[str]:
        return await self.store.list_categories()

    async def search(self, query: str, limit: Optional[int] = None) -> List[Restaurant]:
        trimmed = (query or "").strip()
        if not trimmed:
            return []
        limit = self.config.search_limit if limit is None else limit
        if limit <= 0:
            raise InvalidQueryError(f"Search limit must be positive, got {limit}")
        logger.debug(f"Searching restaurants for '{trimmed}' (limit={limit})")
        return await self.store.search(trimmed, limit)
