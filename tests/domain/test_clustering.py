# tests/domain/test_clustering.py
"""
Unit tests for zoom-scaled grid clustering in app.domain.mapping.services.clustering.
"""
import pytest

from app.domain.mapping.entities.restaurant import Restaurant
from app.domain.mapping.services.clustering import (
    cell_of,
    cell_size,
    cluster_cell_bounds,
    cluster_points,
    is_cluster_mode,
)


def _point(lat, lng, name="p"):
    return Restaurant(name=name, address="", lat=lat, lng=lng)


def test_cell_size_halves_per_zoom_level():
    assert cell_size(0) == 360.0
    assert cell_size(1) == 180.0
    assert cell_size(10) == pytest.approx(360.0 / 1024)


def test_cell_of_floors_negative_coordinates():
    # zoom 1 -> 180 degree cells
    assert cell_of(-10.0, -10.0, 1) == (-1, -1)
    assert cell_of(10.0, 10.0, 1) == (0, 0)
    assert cell_of(0.0, 0.0, 1) == (0, 0)


@pytest.mark.parametrize("zoom,expected", [(15, True), (16, False), (17, False), (0, True)])
def test_is_cluster_mode_strictly_below_threshold(zoom, expected):
    assert is_cluster_mode(zoom, 16) is expected


@pytest.mark.parametrize("zoom", [0, 5, 10, 12, 14, 18])
def test_cluster_counts_sum_to_point_count(fixture_restaurants, grid_restaurants, zoom):
    points = fixture_restaurants + grid_restaurants(37)
    clusters = cluster_points(points, zoom)
    assert sum(c.count for c in clusters) == len(points)
    assert all(c.count > 0 for c in clusters)


def test_single_member_cluster_centroid_is_exact():
    member = _point(37.5013, 127.0396)
    [cluster] = cluster_points([member], 12)
    assert (cluster.lat, cluster.lng, cluster.count) == (37.5013, 127.0396, 1)


def test_centroid_is_arithmetic_mean_of_members():
    clusters = cluster_points([_point(1.0, 1.0), _point(3.0, 5.0)], 0)
    assert len(clusters) == 1
    assert clusters[0].lat == pytest.approx(2.0)
    assert clusters[0].lng == pytest.approx(3.0)
    assert clusters[0].count == 2


def test_far_apart_points_form_separate_clusters(fixture_restaurants):
    clusters = cluster_points(fixture_restaurants, 10)
    # Seoul points share a cell at zoom 10; Busan and Incheon do not.
    assert sorted(c.count for c in clusters) == [1, 1, 3]


def test_clustering_is_deterministic(grid_restaurants):
    points = grid_restaurants(53)
    assert cluster_points(points, 14) == cluster_points(points, 14)


def test_clusters_emitted_in_first_seen_cell_order():
    points = [_point(10.0, 10.0, "a"), _point(-10.0, -10.0, "b"), _point(11.0, 11.0, "c")]
    clusters = cluster_points(points, 1)
    assert [c.count for c in clusters] == [2, 1]
    assert clusters[1].lat == -10.0


def test_empty_input_yields_no_clusters():
    assert cluster_points([], 10) == []


def test_cluster_cell_bounds_is_centred_cell():
    b = cluster_cell_bounds(37.5, 127.0, 8)
    half = cell_size(8) / 2
    assert b.north == pytest.approx(37.5 + half)
    assert b.south == pytest.approx(37.5 - half)
    assert b.east == pytest.approx(127.0 + half)
    assert b.west == pytest.approx(127.0 - half)
    assert b.center() == pytest.approx((37.5, 127.0))


def test_cluster_cell_bounds_clamped_at_low_zoom():
    b = cluster_cell_bounds(0.0, 0.0, 0)
    assert (b.north, b.south, b.east, b.west) == (90.0, -90.0, 180.0, -180.0)
