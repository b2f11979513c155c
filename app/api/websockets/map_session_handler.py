"""
Map Session WebSocket Handler

Translates client map events into view-sync controller transitions. One
handler (and one controller) exists per connected map session.
"""

import logging
from typing import Any, Dict, Optional

from app.api.v1.schemas import MapEventType
from app.core.exceptions import ErrorSeverity, MapCoreError
from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.value_objects.coordinates import Bounds, is_valid_coordinate
from app.services.view_sync_controller import MapViewController, SelectionSource

logger = logging.getLogger(__name__)


class InvalidMessageError(MapCoreError, ValueError):
    """Client message could not be mapped to a transition."""

    severity = ErrorSeverity.LOW


class MapSessionHandler:
    """Dispatches one session's client messages to its controller."""

    def __init__(self, controller: MapViewController, session_id: str = ""):
        self.controller = controller
        self.session_id = session_id

    async def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply one client event and return the settled view state message.

        Args:
            message: Decoded client message with a ``type`` key

        Returns:
            ``view_state`` message, or an ``error`` message when the event was rejected
        """
        try:
            self.apply_event(message)
        except MapCoreError as e:
            logger.warning(f"Rejected map event for session {self.session_id}: {e}")
            return {"type": "error", "message": str(e), "severity": e.severity.value}

        await self.controller.wait_idle()
        return self.view_state_message()

    def view_state_message(self) -> Dict[str, Any]:
        return {"type": "view_state", "payload": self.controller.snapshot()}

    def apply_event(self, message: Dict[str, Any]) -> None:
        if not isinstance(message, dict):
            raise InvalidMessageError("Message must be a JSON object")
        try:
            event = MapEventType(message.get("type"))
        except ValueError:
            raise InvalidMessageError(f"Unknown message type: {message.get('type')!r}")

        controller = self.controller
        if event is MapEventType.VIEWPORT_CHANGED:
            controller.change_viewport(Bounds.from_mapping(message.get("bounds")))
        elif event is MapEventType.ZOOM_CHANGED:
            controller.change_zoom(message.get("zoom"))
        elif event is MapEventType.CATEGORY_TOGGLED:
            category = message.get("category")
            if not isinstance(category, str) or not category:
                raise InvalidMessageError("category_toggled requires a non-empty 'category'")
            controller.toggle_category(category)
        elif event is MapEventType.CATEGORIES_SET:
            categories = message.get("categories")
            if not isinstance(categories, list) or not all(isinstance(c, str) for c in categories):
                raise InvalidMessageError("categories_set requires a list of strings in 'categories'")
            controller.set_categories(categories)
        elif event is MapEventType.CATEGORIES_CLEARED:
            controller.clear_categories()
        elif event is MapEventType.LOAD_MORE:
            controller.load_more()
        elif event is MapEventType.CLUSTER_SELECTED:
            controller.select_cluster(self._parse_cluster(message.get("cluster")))
        elif event is MapEventType.POINT_SELECTED:
            try:
                source = SelectionSource(message.get("source", SelectionSource.MARKER.value))
            except ValueError:
                raise InvalidMessageError(f"Unknown selection source: {message.get('source')!r}")
            controller.select_point(self._parse_restaurant(message.get("restaurant")), source)
        elif event is MapEventType.POINT_DESELECTED:
            controller.deselect_point()
        elif event is MapEventType.LIST_PANEL_TOGGLED:
            controller.set_mobile_list_open(bool(message.get("open")))

    @staticmethod
    def _parse_cluster(data: Optional[Dict[str, Any]]) -> Cluster:
        if not isinstance(data, dict):
            raise InvalidMessageError("cluster_selected requires a 'cluster' object")
        try:
            cluster = Cluster(lat=float(data["lat"]), lng=float(data["lng"]), count=int(data.get("count", 0)))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidMessageError(f"Invalid cluster payload: {e}")
        if not is_valid_coordinate(cluster.lat, cluster.lng):
            raise InvalidMessageError(f"Cluster centroid ({cluster.lat}, {cluster.lng}) outside WGS84 range")
        return cluster

    @staticmethod
    def _parse_restaurant(data: Optional[Dict[str, Any]]) -> Restaurant:
        if not isinstance(data, dict):
            raise InvalidMessageError("point_selected requires a 'restaurant' object")
        restaurant = Restaurant.from_record(data)
        if restaurant is None:
            raise InvalidMessageError("Selected restaurant has no valid coordinate")
        return restaurant
