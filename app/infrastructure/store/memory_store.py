"""
In-memory restaurant store backed by region JSON files.

Each ``<region>.json`` file under the data directory holds a list of raw
restaurant records; the file stem becomes the record's region. Used when the
relational database is disabled and as a deterministic store in tests.
"""

import json
import logging
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from app.application.interfaces.repositories import RestaurantStore
from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.services.clustering import cluster_points
from app.domain.mapping.services.geometry import extract_categories, filter_by_bounds
from app.domain.mapping.value_objects.coordinates import Bounds

logger = logging.getLogger(__name__)

# Aggregate exports that would duplicate every region file.
SKIP_FILES = frozenset({"restaurants.json", "restaurants-all.json"})


def load_region_files(data_dir: Path) -> List[Restaurant]:
    """
    Read every region file in ``data_dir``.

    Records without coordinates are dropped; duplicates across regions are
    collapsed on ``(name, lat, lng)``, keeping the first occurrence.
    """
    if not data_dir.is_dir():
        logger.warning(f"Restaurant data directory not found: {data_dir}")
        return []

    seen: Set[Tuple[str, float, float]] = set()
    restaurants: List[Restaurant] = []
    skipped = 0

    for path in sorted(data_dir.glob("*.json")):
        if path.name in SKIP_FILES:
            continue
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read region file {path.name}: {e}")
            continue
        if not isinstance(records, list):
            logger.warning(f"Region file {path.name} does not contain a list; skipped")
            continue

        for record in records:
            if not isinstance(record, dict):
                skipped += 1
                continue
            restaurant = Restaurant.from_record(record, region=path.stem)
            if restaurant is None:
                skipped += 1
                continue
            key = (restaurant.name, restaurant.lat, restaurant.lng)
            if key in seen:
                continue
            seen.add(key)
            restaurants.append(restaurant)

    logger.info(f"Loaded {len(restaurants)} restaurants from {data_dir} ({skipped} without coordinates skipped)")
    return restaurants


class InMemoryRestaurantStore(RestaurantStore):
    """``RestaurantStore`` over a materialized list; store order is list order."""

    def __init__(self, restaurants: Iterable[Restaurant] = ()):
        self._restaurants: List[Restaurant] = list(restaurants)

    @classmethod
    def from_directory(cls, data_dir: Path) -> "InMemoryRestaurantStore":
        return cls(load_region_files(data_dir))

    def __len__(self) -> int:
        return len(self._restaurants)

    async def find_in_bounds(self, bounds: Bounds) -> List[Restaurant]:
        return filter_by_bounds(self._restaurants, bounds)

    async def cluster_in_bounds(self, bounds: Bounds, zoom: int) -> List[Cluster]:
        return cluster_points(filter_by_bounds(self._restaurants, bounds), zoom)

    async def find_nearest(
        self,
        lat: float,
        lng: float,
        categories: Optional[FrozenSet[str]],
        limit: int,
        offset: int,
    ) -> List[Restaurant]:
        candidates = [
            (index, r) for index, r in enumerate(self._restaurants)
            if not categories or r.has_any_category(categories)
        ]
        # list position stands in for the store id as tie-break
        candidates.sort(key=lambda item: ((item[1].lat - lat) ** 2 + (item[1].lng - lng) ** 2, item[0]))
        return [r for _, r in candidates[offset:offset + limit]]

    async def list_categories(self) -> List[str]:
        return extract_categories(self._restaurants)

    async def search(self, query: str, limit: int) -> List[Restaurant]:
        matches = [r for r in self._restaurants if query in r.name or query in r.address]
        return matches[:limit]
