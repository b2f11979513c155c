"""Geometry helpers for viewport filtering. Pure functions, no state."""

import math
from typing import Iterable, List, Sequence, Tuple

from app.domain.mapping.entities.restaurant import Restaurant
from app.domain.mapping.value_objects.coordinates import Bounds

EARTH_RADIUS_KM = 6371.0


def distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Clamp against floating point drift near antipodes.
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_bounds(point: Restaurant, bounds: Bounds) -> bool:
    """Inclusive on all four edges."""
    return bounds.south <= point.lat <= bounds.north and bounds.west <= point.lng <= bounds.east


def pad_bounds(bounds: Bounds, ratio: float) -> Bounds:
    """
    Expand every edge outward by ``ratio`` times the span it belongs to.

    North/south move by ``ratio * (north - south)``, east/west by
    ``ratio * (east - west)``. The result is clamped to the WGS84 range.
    """
    if ratio < 0:
        raise ValueError(f"Padding ratio must be non-negative, got {ratio}")
    lat_pad = bounds.lat_span * ratio
    lng_pad = bounds.lng_span * ratio
    return Bounds(
        north=min(90.0, bounds.north + lat_pad),
        south=max(-90.0, bounds.south - lat_pad),
        east=min(180.0, bounds.east + lng_pad),
        west=max(-180.0, bounds.west - lng_pad),
    )


def bounds_center(bounds: Bounds) -> Tuple[float, float]:
    return bounds.center()


def filter_by_bounds(points: Iterable[Restaurant], bounds: Bounds, padding: float = 0.0) -> List[Restaurant]:
    """Points inside (optionally padded) bounds, input order preserved."""
    area = pad_bounds(bounds, padding) if padding else bounds
    return [p for p in points if within_bounds(p, area)]


def filter_by_categories(points: Sequence[Restaurant], categories: Iterable[str]) -> Sequence[Restaurant]:
    """
    OR filter: a point matches when it has at least one selected category.

    An empty selection returns the input unchanged.
    """
    wanted = set(categories)
    if not wanted:
        return points
    return [p for p in points if p.has_any_category(wanted)]


def extract_categories(points: Iterable[Restaurant]) -> List[str]:
    """Unique category labels across ``points``, sorted."""
    labels = set()
    for p in points:
        labels.update(p.categories)
    return sorted(labels)
