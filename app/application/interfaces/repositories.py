"""
Repository interfaces for the application layer.

These interfaces define contracts for restaurant data access without
coupling the query layer to a specific store implementation.
"""
from abc import ABC, abstractmethod
from typing import FrozenSet, List, Optional

from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.value_objects.coordinates import Bounds


class RestaurantStore(ABC):
    """
    Read-side contract of the restaurant store.

    Every operation excludes soft-deleted records and records without
    coordinates. Implementations raise ``StoreUnavailableError`` when they
    cannot answer.
    """

    @abstractmethod
    async def find_in_bounds(self, bounds: Bounds) -> List[Restaurant]:
        """
        Restaurants inside ``bounds`` (inclusive), in store order.

        Args:
            bounds: Rectangle to search; callers pass already-padded bounds

        Returns:
            Matching restaurants
        """
        pass

    @abstractmethod
    async def cluster_in_bounds(self, bounds: Bounds, zoom: int) -> List[Cluster]:
        """
        One ``(lat, lng, count)`` aggregate per non-empty grid cell at ``zoom``.

        Args:
            bounds: Rectangle to aggregate over
            zoom: Map zoom level selecting the cell size

        Returns:
            Clusters ordered by cell
        """
        pass

    @abstractmethod
    async def find_nearest(
        self,
        lat: float,
        lng: float,
        categories: Optional[FrozenSet[str]],
        limit: int,
        offset: int,
    ) -> List[Restaurant]:
        """
        Restaurants ordered by squared planar distance to ``(lat, lng)``.

        Args:
            lat: Reference latitude
            lng: Reference longitude
            categories: When non-empty, keep rows having ANY of these categories
            limit: Maximum rows to return
            offset: Rows to skip

        Returns:
            At most ``limit`` restaurants, nearest first, ties broken by store id
        """
        pass

    @abstractmethod
    async def list_categories(self) -> List[str]:
        """All distinct category labels, sorted."""
        pass

    @abstractmethod
    async def search(self, query: str, limit: int) -> List[Restaurant]:
        """Restaurants whose name or address contains ``query``."""
        pass
