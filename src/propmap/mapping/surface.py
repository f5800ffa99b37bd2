# src/propmap/mapping/surface.py
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    TypedDict,
    Union,
)

CLUSTER_CLICK = "cluster_click"
POINT_CLICK = "point_click"

LngLat = Tuple[float, float]


class ClusterClickEvent(TypedDict, total=False):
    point: LngLat  # click location


class PointClickEvent(TypedDict, total=False):
    point: LngLat
    feature: Dict[str, Any]  # clicked GeoJSON feature


EventHandler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


# Rendering engine protocol (headless today, a browser bridge later)
class RenderingSurface(Protocol):
    @property
    def is_loaded(self) -> bool:
        """True once the surface can accept source data."""
        ...

    async def wait_until_loaded(self) -> None:
        ...

    def initialize_source(self, collection: Dict[str, Any]) -> None:
        ...

    def update_source(self, collection: Dict[str, Any]) -> None:
        ...

    def query_cluster_at(self, point: LngLat) -> Optional[Dict[str, Any]]:
        """
        Returns the rendered cluster feature under ``point`` (its
        ``properties.cluster_id`` identifies it), or None.
        """
        ...

    async def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """Raises ClusterLookupError when ``cluster_id`` is not a cluster."""
        ...

    def animate_to(self, center: Sequence[float], zoom: float) -> None:
        ...

    def show_popup(self, coordinates: Sequence[float], html: str) -> None:
        ...

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to ``event``; returns a callable that unsubscribes."""
        ...

    def remove(self) -> None:
        ...


class DrawingTool(Protocol):
    def get_drawn_geometries(self) -> Dict[str, Any]:
        """
        Returns:
          {"type": "FeatureCollection", "features": [ {Feature}, ... ]}
        """
        ...

    def delete_all(self) -> None:
        ...
