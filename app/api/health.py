"""
Health check endpoints.

Reports which restaurant store is serving queries and, when the relational
store is active, whether the database answers a trivial query.
"""

import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.infrastructure.database.async_base import check_async_database_connection
from app.infrastructure.database.repositories.restaurant_repository_async import RestaurantRepositoryAsync
from app.infrastructure.store.memory_store import InMemoryRestaurantStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_START_TIME = time.time()


def _store_kind(store: Any) -> str:
    if isinstance(store, RestaurantRepositoryAsync):
        return "sql"
    if isinstance(store, InMemoryRestaurantStore):
        return "memory"
    return "unavailable" if store is None else type(store).__name__


@router.get("")
async def health_check(request: Request):
    """
    Basic health check.

    Returns 200 when a store is ready to serve queries, 503 otherwise.
    """
    store = getattr(request.app.state, "restaurant_store", None)
    kind = _store_kind(store)
    report: Dict[str, Any] = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "store": kind,
        "uptime_seconds": round(time.time() - _START_TIME, 1),
    }

    if kind == "sql":
        database_ok = await check_async_database_connection(getattr(request.app.state, "db_engine", None))
        report["database"] = "connected" if database_ok else "unreachable"
        if not database_ok:
            report["status"] = "unhealthy"
    elif kind == "memory":
        report["restaurants_loaded"] = len(store)
    elif store is None:
        report["status"] = "unhealthy"

    if report["status"] != "healthy":
        logger.warning(f"Health check: store not ready: {report}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=report)
    return report
