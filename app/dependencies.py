"""
Module for managing and providing application dependencies.
Leverages FastAPI's dependency injection system and app.state for components built at startup.
"""
import logging

from fastapi import HTTPException, Request, WebSocket, status

from app.application.interfaces.repositories import RestaurantStore
from app.core.config import MapViewConfig
from app.services.spatial_query_service import SpatialQueryService

logger = logging.getLogger(__name__)


# --- Accessing startup components from app.state ---

def get_restaurant_store(request: Request) -> RestaurantStore:
    """Retrieves the restaurant store selected at startup from app.state."""
    store = getattr(request.app.state, "restaurant_store", None)
    if store is None:
        logger.error("Restaurant store not found in app.state. Startup might have failed.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Restaurant store not initialized.")
    return store


def get_map_view_config(request: Request) -> MapViewConfig:
    config = getattr(request.app.state, "map_view_config", None)
    if config is None:
        logger.error("Map view config not found in app.state. Startup might have failed.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Map configuration not initialized.")
    return config


def get_spatial_query_service(request: Request) -> SpatialQueryService:
    """Retrieves the shared SpatialQueryService instance from app.state."""
    service = getattr(request.app.state, "spatial_query_service", None)
    if service is None:
        logger.error("SpatialQueryService not found in app.state. Startup might have failed.")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Spatial query service not available.")
    return service


def get_websocket_query_service(websocket: WebSocket) -> SpatialQueryService:
    """WebSocket flavour of ``get_spatial_query_service``; returns None when not ready."""
    return getattr(websocket.app.state, "spatial_query_service", None)
