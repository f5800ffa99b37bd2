"""Keeps the property dataset, the rendering surface and the drawn search shape in sync."""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..client.spatial_query_client import SpatialQueryClient
from ..config.settings import PropMapSettings, require_backend_url, settings
from ..errors import (
    ClusterLookupError,
    ConfigurationError,
    DecodeError,
    GeometryError,
    NetworkError,
)
from ..mapping.drawing import InMemoryDrawingTool
from ..mapping.geometry_utils import extract_search_polygon, get_bounding_box, validate_polygon
from ..mapping.headless_surface import HeadlessSurface
from ..mapping.styles import render_popup_html
from ..mapping.surface import (
    CLUSTER_CLICK,
    POINT_CLICK,
    ClusterClickEvent,
    DrawingTool,
    PointClickEvent,
    RenderingSurface,
)
from ..models.schemas import PropertyRecord
from ..store.dataset_store import DatasetStore

logger = logging.getLogger(__name__)

RESULT_ORDERINGS = ("generation", "completion")


class ControllerState(str, Enum):
    UNMOUNTED = "unmounted"
    INITIALIZING = "initializing"
    READY = "ready"
    CLOSED = "closed"


class MapSyncController:
    """
    Orchestrates fetches, the dataset store and the rendering surface.

    Every fetch is tagged with an increasing generation. With the
    "generation" ordering a completion older than the newest applied result
    is dropped; with "completion" ordering whichever fetch finishes last
    wins. Applying a result is serialized by a lock, so the surface only
    ever sees collections derived from a fully replaced dataset.

    Owns the client and the surface for its lifetime: ``close()`` (or
    leaving ``async with``) releases both.
    """

    def __init__(
        self,
        client: SpatialQueryClient,
        surface: RenderingSurface,
        drawing_tool: DrawingTool,
        store: Optional[DatasetStore] = None,
        result_ordering: str = "generation",
    ):
        if result_ordering not in RESULT_ORDERINGS:
            raise ConfigurationError(
                f"result_ordering must be one of {RESULT_ORDERINGS}, got {result_ordering!r}"
            )
        self._client = client
        self._surface = surface
        self._drawing_tool = drawing_tool
        self._store = store or DatasetStore()
        self.result_ordering = result_ordering

        self.state = ControllerState.UNMOUNTED
        self.degraded = False
        self.last_error: Optional[Exception] = None

        self._issued_generation = 0
        self._applied_generation = 0
        self._in_flight = 0
        self._pending: Optional[Dict[str, Any]] = None
        self._write_lock = asyncio.Lock()
        self._unsubscribers: List[Callable[[], None]] = []

    @classmethod
    def from_settings(
        cls,
        config: Optional[PropMapSettings] = None,
        drawing_tool: Optional[DrawingTool] = None,
        surface: Optional[RenderingSurface] = None,
    ) -> "MapSyncController":
        """Build a controller with a headless surface from settings."""
        config = config or settings
        client = SpatialQueryClient(require_backend_url(config), timeout=config.HTTP_TIMEOUT)
        return cls(
            client=client,
            surface=surface or HeadlessSurface.from_settings(config, loaded=True),
            drawing_tool=drawing_tool or InMemoryDrawingTool(),
            result_ordering=config.RESULT_ORDERING,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def store(self) -> DatasetStore:
        return self._store

    @property
    def surface(self) -> RenderingSurface:
        return self._surface

    @property
    def drawing_tool(self) -> DrawingTool:
        return self._drawing_tool

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def has_pending_update(self) -> bool:
        return self._pending is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Load the full dataset, initialize the surface source and subscribe to clicks."""
        if self.state is not ControllerState.UNMOUNTED:
            raise RuntimeError(f"Cannot mount from state {self.state.value}")
        self.state = ControllerState.INITIALIZING
        logger.info("Mounting map: loading all properties")

        # Tag the initial load now so actions issued while initializing count as newer
        generation = self._next_generation()
        loaded, _ = await asyncio.gather(
            self._run_fetch(generation, "Initial load", self._client.fetch_all),
            self._surface.wait_until_loaded(),
        )
        if self.state is ControllerState.CLOSED:
            return
        if not loaded and self._store.version == 0:
            self.degraded = True
            logger.warning("Initial load failed; continuing with an empty dataset")

        async with self._write_lock:
            # Flush the update deferred while initializing; a failed load has none
            collection = self._pending if self._pending is not None else self._store.derive()
            self._surface.initialize_source(collection)
            self._pending = None
            self._unsubscribers = [
                self._surface.on(CLUSTER_CLICK, self.on_cluster_clicked),
                self._surface.on(POINT_CLICK, self.on_point_clicked),
            ]
            self.state = ControllerState.READY

        logger.info(f"Map ready with {len(self._store)} properties")

    async def close(self) -> None:
        if self.state is ControllerState.CLOSED:
            return
        self.state = ControllerState.CLOSED
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._pending = None
        self._surface.remove()
        await self._client.aclose()
        logger.debug("Controller closed")

    async def __aenter__(self) -> "MapSyncController":
        try:
            await self.mount()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_open(self) -> None:
        if self.state is ControllerState.CLOSED:
            raise RuntimeError("Controller is closed")

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def on_search_requested(self) -> bool:
        """
        Search within the drawn polygon.

        Returns:
            True if the search result was applied. Nothing drawn is a
            silent no-op that returns False without calling the backend.
        """
        self._ensure_open()
        try:
            polygon = extract_search_polygon(self._drawing_tool.get_drawn_geometries())
        except GeometryError:
            logger.debug("Search requested with no polygon drawn; ignoring")
            return False

        try:
            validate_polygon(polygon)
        except GeometryError as e:
            logger.warning(f"Drawn polygon cannot be searched: {e}")
            self.last_error = e
            return False

        min_lon, min_lat, max_lon, max_lat = get_bounding_box([polygon])
        logger.info(
            f"Searching within polygon bounds "
            f"({min_lon:.5f}, {min_lat:.5f}) - ({max_lon:.5f}, {max_lat:.5f})"
        )
        return await self._run_fetch(
            self._next_generation(), "Polygon search", self._client.fetch_within, polygon
        )

    async def on_clear_requested(self) -> bool:
        """Delete drawn geometry and reload the unfiltered dataset."""
        self._ensure_open()
        self._drawing_tool.delete_all()
        return await self._run_fetch(
            self._next_generation(), "Clear search", self._client.fetch_all
        )

    # ------------------------------------------------------------------
    # Surface interactions
    # ------------------------------------------------------------------

    async def on_cluster_clicked(self, event: ClusterClickEvent) -> None:
        """Zoom into the clicked cluster."""
        point = event.get("point")
        if point is None or self.state is not ControllerState.READY:
            return
        cluster = self._surface.query_cluster_at(point)
        if cluster is None:
            return
        cluster_id = (cluster.get("properties") or {}).get("cluster_id")
        try:
            zoom = await self._surface.get_cluster_expansion_zoom(cluster_id)
        except ClusterLookupError as e:
            logger.debug(f"Cluster lookup failed for {cluster_id!r}: {e}")
            return
        if self.state is not ControllerState.READY:
            return
        self._surface.animate_to(cluster["geometry"]["coordinates"], zoom)

    def on_point_clicked(self, event: PointClickEvent) -> None:
        """Show a popup with the clicked property's title and price."""
        feature = event.get("feature")
        if not feature or self.state is not ControllerState.READY:
            return
        coordinates = (feature.get("geometry") or {}).get("coordinates")
        if not coordinates:
            return
        props = feature.get("properties") or {}
        self._surface.show_popup(
            coordinates, render_popup_html(props.get("title"), props.get("price"))
        )

    # ------------------------------------------------------------------
    # Fetch / apply
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._issued_generation += 1
        return self._issued_generation

    async def _run_fetch(
        self,
        generation: int,
        label: str,
        fetch: Callable[..., Awaitable[List[PropertyRecord]]],
        *args: Any,
    ) -> bool:
        self._in_flight += 1
        try:
            records = await fetch(*args)
        except (NetworkError, DecodeError, GeometryError) as e:
            self.last_error = e
            logger.error(f"{label} failed (generation {generation}): {e}")
            return False
        finally:
            self._in_flight -= 1
        return await self._apply(generation, records, label)

    async def _apply(self, generation: int, records: List[PropertyRecord], label: str) -> bool:
        async with self._write_lock:
            if self.state is ControllerState.CLOSED:
                logger.debug(f"Dropping {label} result: controller closed")
                return False
            if self.result_ordering == "generation" and generation < self._applied_generation:
                logger.debug(
                    f"Discarding stale {label} result "
                    f"(generation {generation} < {self._applied_generation})"
                )
                return False
            self._store.replace(records)
            self._applied_generation = max(self._applied_generation, generation)
            self._publish(self._store.derive())
        logger.info(f"{label}: showing {len(records)} properties")
        return True

    def _publish(self, collection: Dict[str, Any]) -> None:
        if self.state is ControllerState.READY:
            self._surface.update_source(collection)
            self._pending = None
        else:
            self._pending = collection
            logger.debug("Surface not ready; deferring source update")
