"""Headless rendering surface: clustered GeoJSON source, camera, popups and clicks."""

import asyncio
import copy
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config.settings import PropMapSettings
from ..errors import ClusterLookupError
from .clustering import TILE_EXTENT, PointClusterer, lat_to_y, lng_to_x
from .mapbox_client import MapboxClient, MapGenerationResult
from .styles import (
    CLUSTER_STROKE_WIDTH,
    POINT_RADIUS,
    POINT_STROKE_WIDTH,
    build_layers,
    cluster_tier,
)
from .surface import CLUSTER_CLICK, POINT_CLICK, EventHandler, LngLat

logger = logging.getLogger(__name__)


@dataclass
class Camera:
    center: Tuple[float, float]
    zoom: float


@dataclass
class Popup:
    coordinates: Tuple[float, float]
    html: str


class HeadlessSurface:
    """
    In-process implementation of the rendering surface.

    Mirrors what a GL map does with a clustered GeoJSON source: it keeps
    the source data, clusters it for the current camera zoom, hit-tests
    clicks against the rendered circles and emits ``cluster_click`` /
    ``point_click`` events to subscribers.
    """

    def __init__(
        self,
        center: Sequence[float] = (-40.0, 25.0),
        zoom: float = 2.0,
        cluster_radius: int = 40,
        cluster_max_zoom: int = 14,
        loaded: bool = True,
        mapbox_client: Optional[MapboxClient] = None,
    ):
        """
        Args:
            center: Initial camera center (lon, lat)
            zoom: Initial camera zoom
            cluster_radius: Cluster radius in pixels
            cluster_max_zoom: Max zoom at which points still cluster
            loaded: Whether the style is loaded at construction; when False
                call ``mark_loaded`` later
            mapbox_client: Client used by ``snapshot``
        """
        self.camera = Camera((float(center[0]), float(center[1])), float(zoom))
        self.layers: List[Dict[str, Any]] = []
        self.popups: List[Popup] = []
        self.source_writes = 0
        self.mapbox_client = mapbox_client
        self._clusterer = PointClusterer(radius=cluster_radius, max_zoom=cluster_max_zoom)
        self._source: Optional[Dict[str, Any]] = None
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._loaded = asyncio.Event()
        self._removed = False
        if loaded:
            self._loaded.set()

    @classmethod
    def from_settings(
        cls, config: PropMapSettings, loaded: bool = True
    ) -> "HeadlessSurface":
        mapbox_client = None
        if config.MAPBOX_ACCESS_TOKEN:
            mapbox_client = MapboxClient(
                access_token=config.MAPBOX_ACCESS_TOKEN,
                style=config.MAPBOX_STYLE,
                timeout=config.HTTP_TIMEOUT,
            )
        return cls(
            center=(config.MAP_CENTER_LON, config.MAP_CENTER_LAT),
            zoom=config.MAP_ZOOM,
            cluster_radius=config.CLUSTER_RADIUS,
            cluster_max_zoom=config.CLUSTER_MAX_ZOOM,
            loaded=loaded,
            mapbox_client=mapbox_client,
        )

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    def mark_loaded(self) -> None:
        """Signal that the style finished loading."""
        self._loaded.set()

    async def wait_until_loaded(self) -> None:
        await self._loaded.wait()

    # ------------------------------------------------------------------
    # Source
    # ------------------------------------------------------------------

    @property
    def source(self) -> Optional[Dict[str, Any]]:
        return self._source

    def _check_usable(self) -> None:
        if self._removed:
            raise RuntimeError("Surface has been removed")

    def _set_data(self, collection: Dict[str, Any]) -> None:
        self._source = copy.deepcopy(collection)
        self._clusterer.load(self._source.get("features") or [])
        self.source_writes += 1

    def initialize_source(self, collection: Dict[str, Any]) -> None:
        self._check_usable()
        if not self.is_loaded:
            raise RuntimeError("Style is not loaded yet")
        if self._source is not None:
            raise RuntimeError("Source already initialized")
        self._set_data(collection)
        self.layers = build_layers()
        logger.debug(f"Source initialized with {len(collection.get('features', []))} features")

    def update_source(self, collection: Dict[str, Any]) -> None:
        self._check_usable()
        if self._source is None:
            raise RuntimeError("Source not initialized")
        self._set_data(collection)
        logger.debug(f"Source updated with {len(collection.get('features', []))} features")

    def rendered_features(self) -> List[Dict[str, Any]]:
        """Clusters and unclustered points at the current camera zoom."""
        if self._source is None:
            return []
        return self._clusterer.get_clusters(self.camera.zoom)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _pixel_distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        scale = TILE_EXTENT * 2 ** self.camera.zoom
        dx = (lng_to_x(a[0]) - lng_to_x(b[0])) * scale
        dy = (lat_to_y(a[1]) - lat_to_y(b[1])) * scale
        return (dx * dx + dy * dy) ** 0.5

    def _hit(self, point: LngLat, clusters: bool) -> Optional[Dict[str, Any]]:
        best = None
        best_distance = None
        for feature in self.rendered_features():
            props = feature.get("properties") or {}
            is_cluster = bool(props.get("cluster"))
            if is_cluster != clusters:
                continue
            if is_cluster:
                radius = cluster_tier(props["point_count"]).radius + CLUSTER_STROKE_WIDTH
            else:
                radius = POINT_RADIUS + POINT_STROKE_WIDTH
            distance = self._pixel_distance(point, feature["geometry"]["coordinates"])
            if distance <= radius and (best_distance is None or distance < best_distance):
                best, best_distance = feature, distance
        return best

    def query_cluster_at(self, point: LngLat) -> Optional[Dict[str, Any]]:
        return self._hit(point, clusters=True)

    def query_point_at(self, point: LngLat) -> Optional[Dict[str, Any]]:
        return self._hit(point, clusters=False)

    async def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        if self._source is None:
            raise ClusterLookupError("Source not initialized")
        return self._clusterer.get_cluster_expansion_zoom(cluster_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def animate_to(self, center: Sequence[float], zoom: float) -> None:
        self._check_usable()
        self.camera = Camera((float(center[0]), float(center[1])), float(zoom))
        logger.debug(f"Camera moved to {self.camera.center} @ z{self.camera.zoom}")

    def show_popup(self, coordinates: Sequence[float], html: str) -> None:
        self._check_usable()
        self.popups.append(Popup((float(coordinates[0]), float(coordinates[1])), html))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        self._check_usable()
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    async def _emit(self, event: str, payload: Dict[str, Any]) -> None:
        for handler in list(self._handlers.get(event, [])):
            result = handler(payload)
            if inspect.isawaitable(result):
                await result

    async def click(self, lng: float, lat: float) -> Optional[str]:
        """
        Simulate a click at (lng, lat).

        Returns:
            The name of the emitted event, or None when nothing was hit
        """
        point = (float(lng), float(lat))
        if self.query_cluster_at(point) is not None:
            await self._emit(CLUSTER_CLICK, {"point": point})
            return CLUSTER_CLICK
        feature = self.query_point_at(point)
        if feature is not None:
            await self._emit(POINT_CLICK, {"point": point, "feature": feature})
            return POINT_CLICK
        return None

    # ------------------------------------------------------------------
    # Snapshot / teardown
    # ------------------------------------------------------------------

    def snapshot(
        self,
        output_path: Optional[str] = None,
        width: int = 800,
        height: int = 450,
        padding: int = 50,
        retina: bool = True,
        fit: bool = False,
    ) -> MapGenerationResult:
        """Render the current source through the Mapbox Static Images API."""
        if self.mapbox_client is None:
            raise RuntimeError("No Mapbox client configured (set MAPBOX_ACCESS_TOKEN)")
        features = (self._source or {}).get("features") or []
        return self.mapbox_client.render_snapshot(
            features,
            self.rendered_features(),
            center=None if fit else self.camera.center,
            zoom=None if fit else self.camera.zoom,
            width=width,
            height=height,
            padding=padding,
            retina=retina,
            output_path=output_path,
        )

    def remove(self) -> None:
        if self._removed:
            return
        self._handlers.clear()
        self._source = None
        self._removed = True
        if self.mapbox_client is not None:
            self.mapbox_client.close()
        logger.debug("Surface removed")
