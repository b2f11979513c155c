from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging
import os

from app.core.config import MapViewConfig, settings
from app.core.exceptions import StoreUnavailableError
from app.api.v1.endpoints import restaurants as restaurant_endpoints
from app.api.websockets import endpoints as ws_router
from app.api import health as health_router
from app.infrastructure.database.async_base import (
    dispose_async_engine,
    get_async_engine,
    get_async_session_factory,
)
from app.infrastructure.database.base import create_tables
from app.infrastructure.database.repositories.restaurant_repository_async import RestaurantRepositoryAsync
from app.infrastructure.store.memory_store import InMemoryRestaurantStore
from app.services.spatial_query_service import SpatialQueryService

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def _build_restaurant_store(app_instance: FastAPI):
    """SQL store when the database is enabled, reachable and populated; region files otherwise."""
    if settings.DB_ENABLED:
        try:
            engine = get_async_engine()
            logger.info("Setting up database tables and indexes...")
            await create_tables(engine)
            repository = RestaurantRepositoryAsync(get_async_session_factory())
            if await repository.has_rows():
                app_instance.state.db_engine = engine
                logger.info("Serving restaurants from the relational store")
                return repository
            logger.warning("Restaurant table is empty, falling back to region files")
            await dispose_async_engine()
        except (SQLAlchemyError, StoreUnavailableError, OSError) as e:
            logger.warning(f"Database setup failed, falling back to region files (continuing without DB): {e}")
            await dispose_async_engine()

    store = InMemoryRestaurantStore.from_directory(settings.resolved_data_dir)
    logger.info(f"Serving {len(store)} restaurants from {settings.resolved_data_dir}")
    return store


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    logger.info("Application startup sequence initiated...")
    app_instance.state.db_engine = None

    store = await _build_restaurant_store(app_instance)
    map_view_config = MapViewConfig.from_settings(settings)
    app_instance.state.restaurant_store = store
    app_instance.state.map_view_config = map_view_config
    app_instance.state.spatial_query_service = SpatialQueryService(store, map_view_config)
    logger.info(
        f"Map defaults: cluster threshold={map_view_config.cluster_zoom_threshold}, "
        f"zoom={map_view_config.default_zoom}, center={map_view_config.default_center}"
    )

    try:
        yield
    finally:
        logger.info("Application shutdown sequence initiated...")
        await dispose_async_engine()


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    version="0.1.0",
    lifespan=lifespan,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"/docs",
    redoc_url=f"/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

api_v1_router_prefix = settings.API_V1_PREFIX
app.include_router(
    restaurant_endpoints.router,
    prefix=f"{api_v1_router_prefix}",
    tags=["V1 - Restaurant Map"]
)

app.include_router(ws_router.router, prefix="/ws", tags=["WebSockets"])

# Health Check System
app.include_router(health_router.router, tags=["Health Checks"])


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to {settings.APP_NAME} - Version {app.version}"}
