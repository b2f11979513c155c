"""
Restaurant and cluster entities.

A ``Restaurant`` is a located record served to the map and list panels.
A ``Cluster`` is an ephemeral aggregate produced by a single cluster query;
it carries no identity beyond its centroid and count.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from app.domain.mapping.value_objects.coordinates import is_valid_coordinate


def normalize_categories(raw: Any) -> Tuple[str, ...]:
    """
    Collapse duplicates while keeping first-seen order.

    Accepts an iterable of labels or the store's JSON-array-as-text form.
    Anything unparseable yields an empty tuple.
    """
    if raw is None:
        return ()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return ()
    if not isinstance(raw, (list, tuple, set, frozenset)):
        return ()
    seen = []
    for label in raw:
        if isinstance(label, str) and label and label not in seen:
            seen.append(label)
    return tuple(seen)


@dataclass(frozen=True)
class Restaurant:
    """A restaurant with a valid WGS84 coordinate."""

    name: str
    address: str
    lat: float
    lng: float
    link: str = ""
    recommendation: str = ""
    categories: Tuple[str, ...] = ()
    region: Optional[str] = None
    id: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not is_valid_coordinate(self.lat, self.lng):
            raise ValueError(f"Restaurant '{self.name}' has invalid coordinate ({self.lat}, {self.lng})")
        object.__setattr__(self, "categories", normalize_categories(self.categories))

    def has_any_category(self, categories: Iterable[str]) -> bool:
        wanted = set(categories)
        return any(c in wanted for c in self.categories)

    @classmethod
    def from_record(cls, record: Dict[str, Any], region: Optional[str] = None) -> Optional["Restaurant"]:
        """
        Build from a raw store/file record.

        Returns None for records without usable coordinates; such records
        exist upstream but are invisible to every spatial operation.
        """
        lat = record.get("lat")
        lng = record.get("lng")
        if not is_valid_coordinate(lat, lng):
            return None
        return cls(
            name=record.get("name") or "",
            address=record.get("address") or "",
            lat=float(lat),
            lng=float(lng),
            link=record.get("link") or "",
            recommendation=record.get("recommendation") or "",
            categories=normalize_categories(record.get("categories")),
            region=record.get("region") or region,
            id=record.get("id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "link": self.link,
            "recommendation": self.recommendation,
            "categories": list(self.categories),
            "region": self.region,
        }


@dataclass(frozen=True)
class Cluster:
    """Centroid and member count of one non-empty grid cell."""

    lat: float
    lng: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lng": self.lng, "count": self.count}
