"""
View-sync controller for one map session.

Owns the session's ``ViewState`` and reconciles it with the results of the
bounds, cluster and nearest-neighbor queries. Transitions are plain methods
that run to completion on the event loop; fetches run as asyncio tasks and
only touch state if their generation is still current when they complete.

Callers are expected to debounce viewport events (~200 ms of quiescence);
the controller itself issues one fetch per transition.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from app.core.config import MapViewConfig
from app.core.exceptions import InvalidBoundsError, InvalidQueryError
from app.domain.mapping.entities.restaurant import Cluster, Restaurant
from app.domain.mapping.services.clustering import MAX_ZOOM, MIN_ZOOM, is_cluster_mode
from app.domain.mapping.services.geometry import filter_by_categories
from app.domain.mapping.value_objects.coordinates import Bounds
from app.services.spatial_query_service import NearbyPage, SpatialQueryService

logger = logging.getLogger(__name__)


class QueryShape(str, Enum):
    """Independently cancelable fetch categories."""
    BOUNDS = "bounds"
    CLUSTERS = "clusters"
    LIST = "list"
    CELL = "cell"  # members of the selected cluster


class SelectionSource(str, Enum):
    MARKER = "marker"
    LIST = "list"
    SEARCH = "search"


@dataclass
class QueryGeneration:
    """Monotonic tag of the latest query issued for one shape."""

    shape: QueryShape
    current: int = 0

    def begin(self) -> int:
        self.current += 1
        return self.current

    def invalidate(self) -> None:
        self.current += 1

    def is_current(self, ticket: int) -> bool:
        return ticket == self.current


@dataclass(frozen=True)
class PanRequest:
    """Instruction for the map widget to recentre (and optionally zoom)."""

    lat: float
    lng: float
    zoom: Optional[int] = None


@dataclass(frozen=True)
class ViewState:
    """Read-only projection of a session's view state."""

    current_bounds: Optional[Bounds] = None
    current_zoom: int = 16
    selected_categories: FrozenSet[str] = frozenset()
    selected_point: Optional[Restaurant] = None
    selected_cluster: Optional[Cluster] = None
    list_offset: int = 0
    list_has_more: bool = False
    list_loading: bool = False
    # UI signals
    pan_to: Optional[PanRequest] = None
    mobile_list_open: bool = False
    last_refresh_failed: bool = False


StateListener = Callable[["MapViewController"], None]


class MapViewController:
    """
    State machine reconciling map events, category filters and list content.

    One instance per active map session; nothing here is shared between
    sessions.
    """

    def __init__(
        self,
        query_service: SpatialQueryService,
        config: Optional[MapViewConfig] = None,
        initial_restaurants: Sequence[Restaurant] = (),
    ):
        self.query_service = query_service
        self.config = config or query_service.config
        self._state = ViewState(current_zoom=self.config.default_zoom)

        self._markers: Tuple[Restaurant, ...] = tuple(initial_restaurants)
        self._clusters: Tuple[Cluster, ...] = ()
        self._cluster_members: Tuple[Restaurant, ...] = ()
        self._list_items: Tuple[Restaurant, ...] = tuple(initial_restaurants)
        # bumped whenever the matching collection is replaced; keys the memo
        self._markers_version = 0
        self._members_version = 0

        self._generations: Dict[QueryShape, QueryGeneration] = {
            shape: QueryGeneration(shape) for shape in QueryShape
        }
        self._failed_shapes: Set[QueryShape] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []
        self._memo: Dict[str, Tuple[Any, Any]] = {}
        self._closed = False

    # --- Read side ---

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def is_cluster_mode(self) -> bool:
        return is_cluster_mode(self._state.current_zoom, self.config.cluster_zoom_threshold)

    @property
    def category_filtered_markers(self) -> Sequence[Restaurant]:
        """Viewport markers narrowed client-side by the selected categories."""
        key = (self._markers_version, self._state.selected_categories)
        return self._memoized(
            "markers", key, lambda: tuple(filter_by_categories(self._markers, self._state.selected_categories))
        )

    @property
    def clusters(self) -> Tuple[Cluster, ...]:
        return self._clusters if self.is_cluster_mode else ()

    @property
    def showing_cluster_members(self) -> bool:
        return self.is_cluster_mode and self._state.selected_cluster is not None

    @property
    def list_items(self) -> Sequence[Restaurant]:
        """List panel content: the selected cluster's members, or the paginated nearest list."""
        if self.showing_cluster_members:
            key = (self._members_version, self._state.selected_categories)
            return self._memoized(
                "cluster_list",
                key,
                lambda: tuple(filter_by_categories(self._cluster_members, self._state.selected_categories)),
            )
        return self._list_items

    @property
    def list_has_more(self) -> bool:
        return False if self.showing_cluster_members else self._state.list_has_more

    @property
    def list_loading(self) -> bool:
        return self._state.list_loading

    def generation(self, shape: QueryShape) -> int:
        return self._generations[shape].current

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready projection of state and derived collections."""
        state = self._state
        return {
            "current_bounds": state.current_bounds.to_dict() if state.current_bounds else None,
            "current_zoom": state.current_zoom,
            "is_cluster_mode": self.is_cluster_mode,
            "selected_categories": sorted(state.selected_categories),
            "selected_point": state.selected_point.to_dict() if state.selected_point else None,
            "selected_cluster": state.selected_cluster.to_dict() if state.selected_cluster else None,
            "list_offset": state.list_offset,
            "list_has_more": self.list_has_more,
            "list_loading": self.list_loading,
            "pan_to": asdict(state.pan_to) if state.pan_to else None,
            "mobile_list_open": state.mobile_list_open,
            "last_refresh_failed": state.last_refresh_failed,
            "markers": [r.to_dict() for r in self.category_filtered_markers],
            "clusters": [c.to_dict() for c in self.clusters],
            "list_items": [r.to_dict() for r in self.list_items],
        }

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Transitions ---

    def change_viewport(self, bounds: Bounds) -> None:
        """New viewport from the map: refetch markers (and clusters), reset the list."""
        if not isinstance(bounds, Bounds):
            raise InvalidBoundsError(f"Expected Bounds, got {type(bounds).__name__}")
        self._set_state(current_bounds=bounds)
        self._issue_bounds_query()
        if self.is_cluster_mode:
            self._issue_cluster_query()
        else:
            self._generations[QueryShape.CLUSTERS].invalidate()
        self._reset_list()
        self._notify()

    def change_zoom(self, zoom: int) -> None:
        if isinstance(zoom, bool) or not isinstance(zoom, int) or not (MIN_ZOOM <= zoom <= MAX_ZOOM):
            raise InvalidQueryError(f"Zoom must be an integer in [{MIN_ZOOM}, {MAX_ZOOM}], got {zoom!r}")
        if zoom == self._state.current_zoom:
            return
        was_cluster_mode = self.is_cluster_mode
        self._set_state(current_zoom=zoom)
        if self.is_cluster_mode:
            if self._state.current_bounds is not None:
                self._issue_cluster_query()
        elif was_cluster_mode:
            # Individual markers from here on: the cluster panel no longer applies.
            self._generations[QueryShape.CLUSTERS].invalidate()
            self._generations[QueryShape.CELL].invalidate()
            self._apply_cluster_members(())
            self._set_state(selected_cluster=None)
        self._notify()

    def toggle_category(self, category: str) -> None:
        selected = set(self._state.selected_categories)
        if category in selected:
            selected.remove(category)
        else:
            selected.add(category)
        self.set_categories(selected)

    def set_categories(self, categories: Iterable[str]) -> None:
        selected = frozenset(c for c in categories if c)
        if selected == self._state.selected_categories:
            return
        self._set_state(selected_categories=selected)
        self._reset_list()
        self._notify()

    def clear_categories(self) -> None:
        self.set_categories(())

    def load_more(self) -> bool:
        """
        Request the next list page; results append to the accumulated list.
        ``list_offset`` advances only once that page has landed.

        Returns False (and does nothing) when there is no viewport, no further
        page, or a list page is already loading.
        """
        state = self._state
        if state.current_bounds is None or not state.list_has_more or state.list_loading:
            return False
        self._issue_list_query(state.list_offset + self.config.page_size)
        self._notify()
        return True

    def select_cluster(self, cluster: Cluster) -> None:
        """Show a cluster's members in the list panel and open it on mobile."""
        self._apply_cluster_members(())
        self._set_state(selected_cluster=cluster, mobile_list_open=True)
        zoom = self._state.current_zoom
        self._spawn(
            QueryShape.CELL,
            lambda: self.query_service.fetch_cell(cluster, zoom),
            self._apply_cluster_members,
        )
        self._notify()

    def select_point(self, point: Restaurant, source: SelectionSource = SelectionSource.MARKER) -> None:
        """Record the selection and ask the map to recentre on it."""
        source = SelectionSource(source)
        pan_zoom = self.config.cluster_zoom_threshold if source is SelectionSource.SEARCH else None
        updates: Dict[str, Any] = {
            "selected_point": point,
            "pan_to": PanRequest(lat=point.lat, lng=point.lng, zoom=pan_zoom),
        }
        if source is SelectionSource.LIST:
            updates["mobile_list_open"] = False
        self._set_state(**updates)
        self._notify()

    def deselect_point(self) -> None:
        if self._state.selected_point is None:
            return
        self._set_state(selected_point=None)
        self._notify()

    def set_mobile_list_open(self, is_open: bool) -> None:
        self._set_state(mobile_list_open=bool(is_open))
        self._notify()

    # --- Lifecycle ---

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel in-flight fetches; no result lands after this returns."""
        self._closed = True
        for generation in self._generations.values():
            generation.invalidate()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._listeners.clear()

    # --- Internals ---

    def _set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    def _memoized(self, name: str, key: Any, compute: Callable[[], Any]) -> Any:
        cached = self._memo.get(name)
        if cached is not None and cached[0] == key:
            return cached[1]
        value = compute()
        self._memo[name] = (key, value)
        return value

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"View state listener failed: {e}", exc_info=True)

    def _reset_list(self) -> None:
        """Drop accumulated list items and fetch page one for the current query shape."""
        if self._state.current_bounds is None:
            return
        self._list_items = ()
        self._set_state(list_offset=0, list_has_more=False)
        self._issue_list_query()

    def _issue_bounds_query(self) -> None:
        bounds = self._state.current_bounds
        self._spawn(QueryShape.BOUNDS, lambda: self.query_service.fetch_bounds(bounds), self._apply_markers)

    def _issue_cluster_query(self) -> None:
        bounds = self._state.current_bounds
        zoom = self._state.current_zoom
        self._spawn(
            QueryShape.CLUSTERS, lambda: self.query_service.fetch_clusters(bounds, zoom), self._apply_clusters
        )

    def _issue_list_query(self, offset: int = 0) -> None:
        bounds = self._state.current_bounds
        categories = self._state.selected_categories
        spawned = self._spawn(
            QueryShape.LIST,
            lambda: self.query_service.fetch_nearby(bounds, categories, offset),
            self._apply_list_page,
        )
        if spawned:
            self._set_state(list_loading=True)

    def _spawn(
        self,
        shape: QueryShape,
        fetch: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], None],
    ) -> bool:
        if self._closed:
            logger.debug(f"Ignoring {shape.value} query on closed controller")
            return False
        ticket = self._generations[shape].begin()
        task = asyncio.get_running_loop().create_task(self._run(shape, ticket, fetch, apply))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(
        self,
        shape: QueryShape,
        ticket: int,
        fetch: Callable[[], Awaitable[Any]],
        apply: Callable[[Any], None],
    ) -> None:
        generation = self._generations[shape]
        try:
            result = await fetch()
        except asyncio.CancelledError:
            logger.debug(f"{shape.value} query generation {ticket} cancelled")
            raise
        except Exception as e:
            if not generation.is_current(ticket):
                logger.debug(f"Ignoring failure of superseded {shape.value} query generation {ticket}: {e}")
                return
            logger.error(f"{shape.value} query failed, keeping last displayed data: {e}", exc_info=True)
            self._failed_shapes.add(shape)
            updates: Dict[str, Any] = {"last_refresh_failed": True}
            if shape is QueryShape.LIST:
                updates["list_loading"] = False
            self._set_state(**updates)
            self._notify()
            return

        if not generation.is_current(ticket):
            logger.debug(
                f"Discarding stale {shape.value} result (generation {ticket}, current {generation.current})"
            )
            return

        apply(result)
        self._failed_shapes.discard(shape)
        self._set_state(last_refresh_failed=bool(self._failed_shapes))
        self._notify()

    def _apply_markers(self, restaurants: List[Restaurant]) -> None:
        self._markers = tuple(restaurants)
        self._markers_version += 1

    def _apply_clusters(self, clusters: List[Cluster]) -> None:
        self._clusters = tuple(clusters)

    def _apply_cluster_members(self, restaurants: List[Restaurant]) -> None:
        self._cluster_members = tuple(restaurants)
        self._members_version += 1

    def _apply_list_page(self, page: NearbyPage) -> None:
        if page.offset == 0:
            self._list_items = tuple(page.items)
        else:
            self._list_items = self._list_items + tuple(page.items)
        self._set_state(list_offset=page.offset, list_has_more=page.has_more, list_loading=False)
