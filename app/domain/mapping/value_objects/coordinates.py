"""
Coordinate value objects for the restaurant map.

All coordinates are WGS84 decimal degrees. Longitude wraparound across the
date line is not modelled: a viewport is a plain axis-aligned rectangle.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from app.core.exceptions import InvalidBoundsError
from app.domain.shared.value_objects.base_value_object import BaseValueObject


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    """True when both values are numbers inside the WGS84 ranges."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


@dataclass(frozen=True)
class Bounds(BaseValueObject):
    """
    Axis-aligned lat/lng rectangle describing a viewport.

    Invariants: ``south <= north`` and ``west <= east``; every edge inside
    the WGS84 range. Violations raise ``InvalidBoundsError``.
    """

    north: float
    south: float
    east: float
    west: float

    def _validate(self) -> None:
        for name in ("north", "south", "east", "west"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidBoundsError(f"Bounds edge '{name}' must be a number, got {value!r}")
        if self.south > self.north:
            raise InvalidBoundsError(f"Bounds south ({self.south}) is greater than north ({self.north})")
        if self.west > self.east:
            raise InvalidBoundsError(
                f"Bounds west ({self.west}) is greater than east ({self.east}); date-line crossing is not supported"
            )
        if not (-90.0 <= self.south and self.north <= 90.0):
            raise InvalidBoundsError(f"Bounds latitude [{self.south}, {self.north}] outside [-90, 90]")
        if not (-180.0 <= self.west and self.east <= 180.0):
            raise InvalidBoundsError(f"Bounds longitude [{self.west}, {self.east}] outside [-180, 180]")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Bounds":
        """Build from a ``{north, south, east, west}`` mapping (e.g. a JSON payload)."""
        try:
            return cls(
                north=data["north"],
                south=data["south"],
                east=data["east"],
                west=data["west"],
            )
        except KeyError as e:
            raise InvalidBoundsError(f"Bounds missing edge {e}") from e
        except TypeError as e:
            raise InvalidBoundsError(f"Bounds payload must be a mapping: {e}") from e

    @property
    def lat_span(self) -> float:
        return self.north - self.south

    @property
    def lng_span(self) -> float:
        return self.east - self.west

    def center(self) -> Tuple[float, float]:
        """Rectangle centroid as ``(lat, lng)``."""
        return ((self.north + self.south) / 2, (self.east + self.west) / 2)

    def __str__(self) -> str:
        return f"Bounds(N={self.north}, S={self.south}, E={self.east}, W={self.west})"
