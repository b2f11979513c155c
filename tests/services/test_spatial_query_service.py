# tests/services/test_spatial_query_service.py
"""
Unit tests for SpatialQueryService: padding, limit+1 pagination, validation
and store delegation.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.application.interfaces.repositories import RestaurantStore
from app.core.exceptions import InvalidQueryError, StoreUnavailableError
from app.domain.mapping.entities.restaurant import Cluster
from app.infrastructure.store.memory_store import InMemoryRestaurantStore
from app.services.spatial_query_service import SpatialQueryService


@pytest.fixture
def mock_store():
    """Mocks the RestaurantStore interface."""
    store = MagicMock(spec=RestaurantStore)
    store.find_in_bounds = AsyncMock(return_value=[])
    store.cluster_in_bounds = AsyncMock(return_value=[])
    store.find_nearest = AsyncMock(return_value=[])
    store.list_categories = AsyncMock(return_value=[])
    store.search = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mocked_service(mock_store, map_config):
    return SpatialQueryService(mock_store, map_config)


@pytest.fixture
def grid_service(grid_restaurants, map_config):
    return SpatialQueryService(InMemoryRestaurantStore(grid_restaurants(45)), map_config)


# --- Bounds shape ---

@pytest.mark.asyncio
async def test_fetch_bounds_queries_padded_viewport(mocked_service, mock_store, gangnam_bounds):
    await mocked_service.fetch_bounds(gangnam_bounds)

    (queried,), _ = mock_store.find_in_bounds.call_args
    assert queried.north == pytest.approx(37.52 + 0.03 * 0.3)
    assert queried.south == pytest.approx(37.49 - 0.03 * 0.3)
    assert queried.east == pytest.approx(127.07 + 0.04 * 0.3)
    assert queried.west == pytest.approx(127.03 - 0.04 * 0.3)


@pytest.mark.asyncio
async def test_gangnam_bounds_returns_three_points_in_store_order(query_service, gangnam_bounds):
    restaurants = await query_service.fetch_bounds(gangnam_bounds)
    assert [r.name for r in restaurants] == ["역삼맛집", "선릉맛집", "삼성맛집"]


# --- Cluster shape ---

@pytest.mark.asyncio
async def test_fetch_clusters_passes_zoom_to_store(mocked_service, mock_store, gangnam_bounds):
    mock_store.cluster_in_bounds.return_value = [Cluster(lat=37.5, lng=127.05, count=3)]

    clusters = await mocked_service.fetch_clusters(gangnam_bounds, 12)

    assert clusters == [Cluster(lat=37.5, lng=127.05, count=3)]
    assert mock_store.cluster_in_bounds.call_args.args[1] == 12


@pytest.mark.asyncio
@pytest.mark.parametrize("zoom", [-1, 23, 12.5, True, None])
async def test_fetch_clusters_rejects_invalid_zoom(mocked_service, mock_store, gangnam_bounds, zoom):
    with pytest.raises(InvalidQueryError):
        await mocked_service.fetch_clusters(gangnam_bounds, zoom)
    mock_store.cluster_in_bounds.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_cell_scopes_bounds_query_to_covering_cell(mocked_service, mock_store):
    await mocked_service.fetch_cell(Cluster(lat=37.5, lng=127.0, count=4), 10)

    (cell,), _ = mock_store.find_in_bounds.call_args
    assert cell.center() == pytest.approx((37.5, 127.0))
    assert cell.lat_span == pytest.approx(360.0 / 1024)


# --- Nearest shape ---

@pytest.mark.asyncio
async def test_fetch_nearby_requests_one_extra_row(mocked_service, mock_store, gangnam_bounds, map_config):
    await mocked_service.fetch_nearby(gangnam_bounds, None, 40)

    args = mock_store.find_nearest.call_args.args
    assert args[0] == pytest.approx(37.505)
    assert args[1] == pytest.approx(127.05)
    assert args[2] is None
    assert args[3] == map_config.page_size + 1
    assert args[4] == 40


@pytest.mark.asyncio
async def test_fetch_nearby_normalizes_empty_category_filter(mocked_service, mock_store, gangnam_bounds):
    await mocked_service.fetch_nearby(gangnam_bounds, ["", ""], 0)
    assert mock_store.find_nearest.call_args.args[2] is None

    await mocked_service.fetch_nearby(gangnam_bounds, ["한식", "한식"], 0)
    assert mock_store.find_nearest.call_args.args[2] == frozenset({"한식"})


@pytest.mark.asyncio
async def test_pagination_never_repeats_and_ends_without_more(grid_service, gangnam_bounds):
    seen = []
    offset = 0
    pages = []
    while True:
        page = await grid_service.fetch_nearby(gangnam_bounds, None, offset)
        pages.append(page)
        seen.extend(page.items)
        if not page.has_more:
            break
        offset += 20

    assert [len(p.items) for p in pages] == [20, 20, 5]
    assert [p.has_more for p in pages] == [True, True, False]
    assert len(seen) == len(set(seen)) == 45


@pytest.mark.asyncio
async def test_pagination_exact_page_multiple_reports_no_more(grid_restaurants, map_config, gangnam_bounds):
    service = SpatialQueryService(InMemoryRestaurantStore(grid_restaurants(20)), map_config)
    page = await service.fetch_nearby(gangnam_bounds)
    assert len(page.items) == 20
    assert page.has_more is False


@pytest.mark.asyncio
async def test_fetch_nearby_orders_by_distance_to_padded_centre(query_service, gangnam_bounds):
    page = await query_service.fetch_nearby(gangnam_bounds)
    # centre (37.505, 127.05): 선릉 is closest, Busan farthest
    assert [r.name for r in page.items] == ["선릉맛집", "역삼맛집", "삼성맛집", "인천맛집", "부산맛집"]
    assert page.center == pytest.approx((37.505, 127.05))


@pytest.mark.asyncio
async def test_fetch_nearby_filters_categories_in_store(query_service, gangnam_bounds):
    page = await query_service.fetch_nearby(gangnam_bounds, {"한식"})
    assert {r.name for r in page.items} == {"역삼맛집", "삼성맛집", "부산맛집"}


@pytest.mark.asyncio
@pytest.mark.parametrize("offset", [-1, -20, 1.5, True])
async def test_fetch_nearby_rejects_invalid_offset(mocked_service, mock_store, gangnam_bounds, offset):
    with pytest.raises(InvalidQueryError):
        await mocked_service.fetch_nearby(gangnam_bounds, None, offset)
    mock_store.find_nearest.assert_not_called()


@pytest.mark.asyncio
async def test_store_failure_propagates(mocked_service, mock_store, gangnam_bounds):
    mock_store.find_nearest.side_effect = StoreUnavailableError("find_nearest", RuntimeError("db down"))
    with pytest.raises(StoreUnavailableError, match="find_nearest"):
        await mocked_service.fetch_nearby(gangnam_bounds)


# --- Categories / search ---

@pytest.mark.asyncio
async def test_list_categories(query_service):
    assert await query_service.list_categories() == ["단체", "일식", "중식", "한식"]


@pytest.mark.asyncio
async def test_search_matches_name_and_address(query_service):
    assert [r.name for r in await query_service.search("선릉")] == ["선릉맛집"]
    assert [r.name for r in await query_service.search("강남구")] == ["역삼맛집", "선릉맛집", "삼성맛집"]


@pytest.mark.asyncio
async def test_search_blank_query_skips_store(mocked_service, mock_store):
    assert await mocked_service.search("   ") == []
    mock_store.search.assert_not_called()


@pytest.mark.asyncio
async def test_search_trims_and_applies_default_limit(mocked_service, mock_store, map_config):
    await mocked_service.search("  맛집 ")
    mock_store.search.assert_awaited_once_with("맛집", map_config.search_limit)


@pytest.mark.asyncio
async def test_search_rejects_non_positive_limit(mocked_service):
    with pytest.raises(InvalidQueryError):
        await mocked_service.search("맛집", limit=0)
