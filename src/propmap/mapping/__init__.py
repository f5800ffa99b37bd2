"""Map-side collaborators: surface and drawing interfaces, clustering, styling.

The headless surface stands in for a GL map: it holds the clustered
GeoJSON source, answers cluster queries and emits click events.
"""

from .surface import (
    CLUSTER_CLICK,
    POINT_CLICK,
    ClusterClickEvent,
    DrawingTool,
    PointClickEvent,
    RenderingSurface,
)
from .headless_surface import Camera, HeadlessSurface, Popup
from .drawing import InMemoryDrawingTool
from .clustering import PointClusterer
from .map_data_builder import build_feature_collection, record_to_feature
from .mapbox_client import MapboxClient, MapGenerationResult
from .styles import build_layers, format_price, render_popup_html
from .geometry_utils import (
    extract_search_polygon,
    get_bounding_box,
    reduce_coordinate_precision,
    validate_polygon,
    validate_ring,
)

__all__ = [
    "CLUSTER_CLICK",
    "POINT_CLICK",
    "ClusterClickEvent",
    "PointClickEvent",
    "RenderingSurface",
    "DrawingTool",
    "Camera",
    "HeadlessSurface",
    "Popup",
    "InMemoryDrawingTool",
    "PointClusterer",
    "build_feature_collection",
    "record_to_feature",
    "MapboxClient",
    "MapGenerationResult",
    "build_layers",
    "format_price",
    "render_popup_html",
    "extract_search_polygon",
    "get_bounding_box",
    "reduce_coordinate_precision",
    "validate_polygon",
    "validate_ring",
]
