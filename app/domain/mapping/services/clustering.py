"""
Zoom-scaled grid clustering.

Cells are squares of ``360 / 2**zoom`` degrees; a point at ``(lat, lng)``
belongs to cell ``(floor(lng / s), floor(lat / s))``. Each non-empty cell
becomes one cluster whose centroid is the arithmetic mean of its members.

The store computes the same grouping as an SQL aggregate; this module is the
in-process rendition used when points are already materialized.
"""
import math
from typing import Dict, Iterable, List, Tuple

from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.value_objects.coordinates import Bounds, is_valid_coordinate

MIN_ZOOM = 0
MAX_ZOOM = 22

CellKey = Tuple[int, int]


def cell_size(zoom: float) -> float:
    """Side length of a grid cell in degrees at ``zoom``."""
    return 360.0 / (2 ** zoom)


def cell_of(lat: float, lng: float, zoom: float) -> CellKey:
    s = cell_size(zoom)
    return (math.floor(lng / s), math.floor(lat / s))


def is_cluster_mode(zoom: float, threshold: int) -> bool:
    """Clusters render strictly below the threshold; individual markers at or above it."""
    return zoom < threshold


def cluster_points(points: Iterable[Restaurant], zoom: float) -> List[Cluster]:
    """
    Group ``points`` into grid cells and reduce each cell to centroid + count.

    Sums are accumulated in input order and clusters are emitted in order of
    each cell's first member, so a fixed input always yields identical output.
    """
    # cell -> [count, sum_lat, sum_lng]
    cells: Dict[CellKey, List[float]] = {}
    for p in points:
        if not is_valid_coordinate(p.lat, p.lng):
            continue
        key = cell_of(p.lat, p.lng, zoom)
        acc = cells.get(key)
        if acc is None:
            cells[key] = [1, p.lat, p.lng]
        else:
            acc[0] += 1
            acc[1] += p.lat
            acc[2] += p.lng

    return [
        Cluster(lat=sum_lat / count, lng=sum_lng / count, count=int(count))
        for count, sum_lat, sum_lng in cells.values()
    ]


def cluster_cell_bounds(lat: float, lng: float, zoom: float) -> Bounds:
    """
    Covering cell for a selected cluster: one cell-size square centred on
    the cluster centroid, clamped to the WGS84 range.
    """
    half = cell_size(zoom) / 2
    return Bounds(
        north=min(90.0, lat + half),
        south=max(-90.0, lat - half),
        east=min(180.0, lng + half),
        west=max(-180.0, lng - half),
    )
