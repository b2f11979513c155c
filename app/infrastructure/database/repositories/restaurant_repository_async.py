"""
Async repository layer for restaurant spatial queries.

Provides the three viewport query shapes (bounds, clusters, nearest) plus
category listing and name search against the ``restaurants`` table. Each
call opens its own session so concurrent queries never share one.
"""

import logging
from typing import FrozenSet, List, Optional

from sqlalchemy import Integer, and_, case, cast, func, literal_column, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.application.interfaces.repositories import RestaurantStore
from app.core.exceptions import StoreUnavailableError
from app.domain.mapping.entities.restaurant import Cluster, Restaurant, normalize_categories
from app.domain.mapping.services.clustering import cell_size
from app.domain.mapping.value_objects.coordinates import Bounds
from app.infrastructure.database.models.restaurant_models import RestaurantRecord

logger = logging.getLogger(__name__)


def _visible():
    """Rows the map may show: not soft-deleted and geocoded to a valid WGS84 coordinate."""
    return and_(
        RestaurantRecord.deleted_at.is_(None),
        RestaurantRecord.lat.isnot(None),
        RestaurantRecord.lng.isnot(None),
        RestaurantRecord.lat.between(-90.0, 90.0),
        RestaurantRecord.lng.between(-180.0, 180.0),
    )


def _inside(bounds: Bounds):
    return and_(
        RestaurantRecord.lat.between(bounds.south, bounds.north),
        RestaurantRecord.lng.between(bounds.west, bounds.east),
    )


def _floor(expr):
    # CAST truncates toward zero; step down one for negative non-integers.
    truncated = cast(expr, Integer)
    return case((expr < truncated, truncated - 1), else_=truncated)


def _to_restaurant(row: RestaurantRecord) -> Restaurant:
    return Restaurant(
        name=row.name,
        address=row.address or "",
        lat=row.lat,
        lng=row.lng,
        link=row.link or "",
        recommendation=row.recommendation or "",
        categories=normalize_categories(row.categories),
        region=row.region,
        id=row.id,
    )


class RestaurantRepositoryAsync(RestaurantStore):
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def _scalars(self, operation: str, stmt) -> list:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Restaurant store query '{operation}' failed: {e}")
            raise StoreUnavailableError(operation, e) from e

    async def has_rows(self) -> bool:
        """Whether any mappable restaurant is stored."""
        stmt = select(RestaurantRecord.id).where(_visible()).limit(1)
        return bool(await self._scalars("has_rows", stmt))

    async def find_in_bounds(self, bounds: Bounds) -> List[Restaurant]:
        stmt = (
            select(RestaurantRecord)
            .where(_visible(), _inside(bounds))
            .order_by(RestaurantRecord.id)
        )
        rows = await self._scalars("find_in_bounds", stmt)
        return [_to_restaurant(r) for r in rows]

    async def cluster_in_bounds(self, bounds: Bounds, zoom: int) -> List[Cluster]:
        # Inline the cell size so the grouped expressions render identically.
        size = literal_column(repr(float(cell_size(zoom))))
        cells = (
            select(
                _floor(RestaurantRecord.lng / size).label("cell_x"),
                _floor(RestaurantRecord.lat / size).label("cell_y"),
                RestaurantRecord.lat.label("lat"),
                RestaurantRecord.lng.label("lng"),
            )
            .where(_visible(), _inside(bounds))
            .subquery()
        )
        stmt = (
            select(
                func.avg(cells.c.lat).label("lat"),
                func.avg(cells.c.lng).label("lng"),
                func.count().label("count"),
            )
            .group_by(cells.c.cell_x, cells.c.cell_y)
            .order_by(cells.c.cell_x, cells.c.cell_y)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Restaurant store query 'cluster_in_bounds' failed: {e}")
            raise StoreUnavailableError("cluster_in_bounds", e) from e
        return [Cluster(lat=float(r.lat), lng=float(r.lng), count=int(r.count)) for r in rows]

    async def find_nearest(
        self,
        lat: float,
        lng: float,
        categories: Optional[FrozenSet[str]],
        limit: int,
        offset: int,
    ) -> List[Restaurant]:
        d_lat = RestaurantRecord.lat - lat
        d_lng = RestaurantRecord.lng - lng
        # Squared planar distance in degree space; cheap and index-friendly.
        planar_distance = d_lat * d_lat + d_lng * d_lng

        stmt = select(RestaurantRecord).where(_visible())
        if categories:
            labels = func.json_each(RestaurantRecord.categories).table_valued("value")
            stmt = stmt.where(
                select(labels.c.value).where(labels.c.value.in_(sorted(categories))).exists()
            )
        stmt = stmt.order_by(planar_distance, RestaurantRecord.id).limit(limit).offset(offset)

        rows = await self._scalars("find_nearest", stmt)
        return [_to_restaurant(r) for r in rows]

    async def list_categories(self) -> List[str]:
        stmt = select(RestaurantRecord.categories).where(_visible())
        raw_values = await self._scalars("list_categories", stmt)
        labels = set()
        for raw in raw_values:
            labels.update(normalize_categories(raw))
        return sorted(labels)

    async def search(self, query: str, limit: int) -> List[Restaurant]:
        stmt = (
            select(RestaurantRecord)
            .where(
                _visible(),
                or_(
                    RestaurantRecord.name.contains(query, autoescape=True),
                    RestaurantRecord.address.contains(query, autoescape=True),
                ),
            )
            .order_by(RestaurantRecord.id)
            .limit(limit)
        )
        rows = await self._scalars("search", stmt)
        return [_to_restaurant(r) for r in rows]
