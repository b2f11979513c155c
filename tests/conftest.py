"""
Global fixtures for the restaurant map backend test suite.
"""
import pytest
import pytest_asyncio
from unittest.mock import MagicMock, PropertyMock
from pathlib import Path
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import MapViewConfig, Settings
from app.domain.mapping.entities.restaurant import Restaurant
from app.domain.mapping.value_objects.coordinates import Bounds
from app.infrastructure.database.base import create_tables, drop_tables
from app.infrastructure.store.memory_store import InMemoryRestaurantStore
from app.services.spatial_query_service import SpatialQueryService


@pytest.fixture(scope="session")
def mock_settings_base_values() -> Dict[str, Any]:
    """
    Provides a dictionary of base values for a mocked Settings object.
    Tests can override these by providing their own dictionary to mock_settings.
    """
    return {
        "APP_NAME": "Matjip Map Test Backend",
        "API_V1_PREFIX": "/api/v1",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "DB_ENABLED": False,
        "DATABASE_URL": "sqlite+aiosqlite://",
        "DB_POOL_PRE_PING": False,
        "DATA_DIR": "./test_data",
        "CLUSTER_ZOOM_THRESHOLD": 16,
        "DEFAULT_ZOOM": 16,
        "DEFAULT_CENTER_LAT": 37.4979,
        "DEFAULT_CENTER_LNG": 127.0276,
        "BOUNDS_PADDING_RATIO": 0.3,
        "LIST_PAGE_SIZE": 20,
        "SEARCH_RESULT_LIMIT": 20,
        "resolved_data_dir": Path("./test_data"),
        "default_center": (37.4979, 127.0276),
    }


@pytest.fixture
def mock_settings(mocker, mock_settings_base_values: Dict[str, Any]) -> MagicMock:
    """
    Provides a MagicMock instance of the application Settings.
    """
    mocked_settings = MagicMock(spec=Settings)

    for key, value in mock_settings_base_values.items():
        # For properties, mock them on the type of the mock
        if key in ["resolved_data_dir", "default_center"]:
            prop_mock = PropertyMock(return_value=value)
            setattr(type(mocked_settings), key, prop_mock)
        else:
            setattr(mocked_settings, key, value)

    mocked_settings.model_config = {"extra": "ignore"}

    return mocked_settings


@pytest.fixture
def map_config(mock_settings: MagicMock) -> MapViewConfig:
    return MapViewConfig.from_settings(mock_settings)


# --- Gangnam fixture data ---

@pytest.fixture
def gangnam_bounds() -> Bounds:
    return Bounds(north=37.52, south=37.49, east=127.07, west=127.03)


@pytest.fixture
def fixture_records() -> List[Dict[str, Any]]:
    """Five raw records: three inside the Gangnam viewport, two far outside it."""
    return [
        {"name": "역삼맛집", "address": "서울 강남구 역삼동", "lat": 37.5013, "lng": 127.0396,
         "categories": ["한식"], "region": "gangnam", "id": 1},
        {"name": "선릉맛집", "address": "서울 강남구 대치동", "lat": 37.5045, "lng": 127.0490,
         "categories": ["일식"], "region": "gangnam", "id": 2},
        {"name": "삼성맛집", "address": "서울 강남구 삼성동", "lat": 37.5088, "lng": 127.0630,
         "categories": ["한식", "단체"], "region": "gangnam", "id": 3},
        {"name": "부산맛집", "address": "부산 부산진구", "lat": 35.1796, "lng": 129.0756,
         "categories": ["한식"], "region": "busan", "id": 4},
        {"name": "인천맛집", "address": "인천 남동구", "lat": 37.4563, "lng": 126.7052,
         "categories": ["중식"], "region": "incheon", "id": 5},
    ]


@pytest.fixture
def fixture_restaurants(fixture_records) -> List[Restaurant]:
    return [Restaurant.from_record(record) for record in fixture_records]


@pytest.fixture
def memory_store(fixture_restaurants) -> InMemoryRestaurantStore:
    return InMemoryRestaurantStore(fixture_restaurants)


@pytest.fixture
def query_service(memory_store, map_config) -> SpatialQueryService:
    return SpatialQueryService(memory_store, map_config)


def _grid_restaurants(count: int, center_lat: float = 37.5, center_lng: float = 127.05) -> List[Restaurant]:
    """``count`` restaurants on a 10-column grid of 0.001 degree steps, ids 1..count."""
    restaurants = []
    for i in range(count):
        row, col = divmod(i, 10)
        restaurants.append(
            Restaurant(
                name=f"식당{i:03d}",
                address=f"서울 강남구 테스트로 {i}",
                lat=center_lat + row * 0.001,
                lng=center_lng + col * 0.001,
                categories=("한식",) if i % 2 == 0 else ("양식",),
                region="gangnam",
                id=i + 1,
            )
        )
    return restaurants


@pytest.fixture
def grid_restaurants():
    """Factory for larger, deterministic restaurant sets (alternating 한식 / 양식)."""
    return _grid_restaurants


# --- SQL store ---

@pytest_asyncio.fixture
async def sqlite_engine():
    """Fresh in-memory SQLite database with the restaurants table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await drop_tables(engine)
    await engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine) -> async_sessionmaker:
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)
