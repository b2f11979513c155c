from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple

from app.domain.mapping.entities.restaurant import Cluster, Restaurant

# --- Response Schemas ---

class RestaurantResponse(BaseModel):
    """A restaurant as served to the map and list panels."""
    name: str
    address: str
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    link: str = ""
    recommendation: str = Field("", description="Free-text annotation shown on the card.")
    categories: List[str] = Field(default_factory=list)
    region: Optional[str] = None

    @classmethod
    def from_domain(cls, restaurant: Restaurant) -> "RestaurantResponse":
        return cls(**restaurant.to_dict())


class ClusterResponse(BaseModel):
    """Centroid and member count of one grid cell."""
    lat: float
    lng: float
    count: int = Field(..., gt=0)

    @classmethod
    def from_domain(cls, cluster: Cluster) -> "ClusterResponse":
        return cls(lat=cluster.lat, lng=cluster.lng, count=cluster.count)


class NearbyPageResponse(BaseModel):
    """One page of the distance-ordered list."""
    items: List[RestaurantResponse]
    has_more: bool = Field(..., description="True when another page exists after this one.")
    offset: int = Field(..., ge=0)


class MapConfigResponse(BaseModel):
    """Map defaults the UI needs before its first viewport report."""
    cluster_zoom_threshold: int
    default_zoom: int
    default_center: Tuple[float, float]
    page_size: int


# --- WebSocket Message Schemas ---

class MapEventType(str, Enum):
    """Client-to-server events accepted by a map session."""
    VIEWPORT_CHANGED = "viewport_changed"
    ZOOM_CHANGED = "zoom_changed"
    CATEGORY_TOGGLED = "category_toggled"
    CATEGORIES_SET = "categories_set"
    CATEGORIES_CLEARED = "categories_cleared"
    LOAD_MORE = "load_more"
    CLUSTER_SELECTED = "cluster_selected"
    POINT_SELECTED = "point_selected"
    POINT_DESELECTED = "point_deselected"
    LIST_PANEL_TOGGLED = "list_panel_toggled"
