"""Geometry helpers for polygon queries and map rendering."""

import copy
import math
from typing import Any, Dict, List, Sequence, Tuple

from shapely.geometry import shape
from shapely.ops import unary_union

from ..errors import GeometryError

Ring = List[List[float]]


def _validate_position(position: Any) -> List[float]:
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        raise GeometryError(f"Invalid position: {position!r}")
    lon, lat = position[0], position[1]
    for value in (lon, lat):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise GeometryError(f"Non-numeric coordinate in position {position!r}")
        if not math.isfinite(value):
            raise GeometryError(f"Non-finite coordinate in position {position!r}")
    return [float(lon), float(lat)]


def count_distinct_vertices(ring: Sequence[Sequence[float]]) -> int:
    """Number of distinct (lon, lat) pairs in a ring."""
    return len({(p[0], p[1]) for p in ring})


def validate_ring(ring: Any) -> Ring:
    """
    Validate a closed linear ring.

    Args:
        ring: Sequence of [lon, lat] positions

    Returns:
        The ring as a list of [lon, lat] float pairs

    Raises:
        GeometryError: If the ring is too short, not closed, or has fewer
            than 3 distinct vertices
    """
    if not isinstance(ring, (list, tuple)):
        raise GeometryError("Ring must be a sequence of positions")
    positions = [_validate_position(p) for p in ring]

    if len(positions) < 4:
        raise GeometryError(f"Ring needs at least 4 positions, got {len(positions)}")
    if positions[0] != positions[-1]:
        raise GeometryError("Ring is not closed (first position != last position)")
    if count_distinct_vertices(positions) < 3:
        raise GeometryError("Ring is degenerate (fewer than 3 distinct vertices)")
    return positions


def validate_polygon(geometry: Any) -> List[Ring]:
    """
    Validate a GeoJSON Polygon geometry used as a search shape.

    Returns:
        The polygon's rings (outer ring first)

    Raises:
        GeometryError: If the geometry is missing, not a Polygon, or any ring
            is open or degenerate
    """
    if not isinstance(geometry, dict):
        raise GeometryError("Polygon geometry must be a GeoJSON object")
    geom_type = geometry.get("type")
    if geom_type != "Polygon":
        raise GeometryError(f"Unsupported search geometry type: {geom_type}")

    rings = geometry.get("coordinates")
    if not isinstance(rings, (list, tuple)) or not rings:
        raise GeometryError("Polygon has no rings")
    return [validate_ring(r) for r in rings]


def extract_search_polygon(collection: Dict[str, Any]) -> Dict[str, Any]:
    """
    Pick the polygon to search with from the drawing tool's features.

    The first Polygon feature wins; other geometry types are ignored.

    Args:
        collection: GeoJSON FeatureCollection of drawn features

    Returns:
        A snapshot (deep copy) of the polygon geometry

    Raises:
        GeometryError: If no polygon is drawn
    """
    features = (collection or {}).get("features") or []
    for feature in features:
        geometry = (feature or {}).get("geometry") or {}
        if geometry.get("type") == "Polygon":
            return copy.deepcopy(geometry)
    raise GeometryError("No polygon drawn")


def reduce_coordinate_precision(
    geojson: Dict[str, Any], precision: int = 5
) -> Dict[str, Any]:
    """
    Reduce coordinate precision to save URL space.

    Args:
        geojson: GeoJSON geometry object
        precision: Decimal places to keep (5 = ~1m accuracy)

    Returns:
        GeoJSON with reduced precision coordinates
    """

    def round_coords(coords):
        if isinstance(coords[0], (list, tuple)):
            return [round_coords(c) for c in coords]
        return [round(coords[0], precision), round(coords[1], precision)]

    result = geojson.copy()
    result["coordinates"] = round_coords(geojson["coordinates"])
    return result


def get_bounding_box(
    geometries: List[Dict[str, Any]],
) -> Tuple[float, float, float, float]:
    """
    Calculate bounding box for list of geometries.

    Args:
        geometries: List of GeoJSON geometry objects

    Returns:
        (min_lon, min_lat, max_lon, max_lat), or all zeros when empty
    """
    if not geometries:
        return (0.0, 0.0, 0.0, 0.0)
    combined = unary_union([shape(g) for g in geometries])
    return tuple(combined.bounds)
