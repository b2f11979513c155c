"""
Restaurant map API endpoints.

Exposes the spatial query shapes to stateless clients:
- Markers inside a (padded) viewport
- Grid clusters for low zoom levels
- Distance-ordered, paginated list with category filter
- Category listing and name/address search
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.schemas import ClusterResponse, MapConfigResponse, NearbyPageResponse, RestaurantResponse
from app.core.config import MapViewConfig
from app.core.exceptions import InvalidBoundsError, InvalidQueryError, StoreUnavailableError
from app.dependencies import get_map_view_config, get_spatial_query_service
from app.domain.mapping.value_objects.coordinates import Bounds
from app.services.spatial_query_service import SpatialQueryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restaurants", tags=["restaurants"])


# --- Dependency Functions ---

def get_viewport(
    north: float = Query(..., description="Northern latitude of the viewport"),
    south: float = Query(..., description="Southern latitude of the viewport"),
    east: float = Query(..., description="Eastern longitude of the viewport"),
    west: float = Query(..., description="Western longitude of the viewport"),
) -> Bounds:
    """Build validated viewport bounds from query parameters."""
    try:
        return Bounds(north=north, south=south, east=east, west=west)
    except InvalidBoundsError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _store_unavailable(operation: str, e: StoreUnavailableError) -> HTTPException:
    logger.error(f"Restaurant {operation} query failed: {e}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Restaurant store unavailable")


# --- Endpoints ---

@router.get("/bounds", response_model=List[RestaurantResponse])
async def get_restaurants_by_bounds(
    bounds: Bounds = Depends(get_viewport),
    service: SpatialQueryService = Depends(get_spatial_query_service),
):
    """Markers inside the viewport plus its pre-fetch halo."""
    try:
        restaurants = await service.fetch_bounds(bounds)
    except StoreUnavailableError as e:
        raise _store_unavailable("bounds", e)
    return [RestaurantResponse.from_domain(r) for r in restaurants]


@router.get("/clusters", response_model=List[ClusterResponse])
async def get_clusters_by_bounds(
    zoom: int = Query(..., description="Current map zoom level"),
    bounds: Bounds = Depends(get_viewport),
    service: SpatialQueryService = Depends(get_spatial_query_service),
):
    try:
        clusters = await service.fetch_clusters(bounds, zoom)
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except StoreUnavailableError as e:
        raise _store_unavailable("clusters", e)
    return [ClusterResponse.from_domain(c) for c in clusters]


@router.get("/nearby", response_model=NearbyPageResponse)
async def get_restaurants_nearby(
    offset: int = Query(0, description="Rows to skip; advances by the page size"),
    categories: Optional[List[str]] = Query(None, description="OR filter on category labels"),
    bounds: Bounds = Depends(get_viewport),
    service: SpatialQueryService = Depends(get_spatial_query_service),
):
    """One page of restaurants ordered by distance to the viewport centre."""
    try:
        page = await service.fetch_nearby(bounds, categories, offset)
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except StoreUnavailableError as e:
        raise _store_unavailable("nearby", e)
    return NearbyPageResponse(
        items=[RestaurantResponse.from_domain(r) for r in page.items],
        has_more=page.has_more,
        offset=page.offset,
    )


@router.get("/categories", response_model=List[str])
async def get_all_categories(service: SpatialQueryService = Depends(get_spatial_query_service)):
    try:
        return await service.list_categories()
    except StoreUnavailableError as e:
        raise _store_unavailable("categories", e)


@router.get("/search", response_model=List[RestaurantResponse])
async def search_restaurants(
    q: str = Query("", description="Substring matched against name and address"),
    service: SpatialQueryService = Depends(get_spatial_query_service),
):
    try:
        restaurants = await service.search(q)
    except StoreUnavailableError as e:
        raise _store_unavailable("search", e)
    return [RestaurantResponse.from_domain(r) for r in restaurants]


@router.get("/config", response_model=MapConfigResponse)
async def get_map_config(config: MapViewConfig = Depends(get_map_view_config)):
    return MapConfigResponse(
        cluster_zoom_threshold=config.cluster_zoom_threshold,
        default_zoom=config.default_zoom,
        default_center=config.default_center,
        page_size=config.page_size,
    )
