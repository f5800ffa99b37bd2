"""Point clustering for the headless rendering surface.

Points are projected to Web Mercator world coordinates in [0, 1] and
greedily merged per zoom level: every unassigned point absorbs the
unassigned points within ``radius`` pixels of it. Levels are computed
lazily and cached until the next ``load``.
"""

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from ..errors import ClusterLookupError

logger = logging.getLogger(__name__)

TILE_EXTENT = 512
MAX_LATITUDE = 85.051129

# Cluster ids pack (node index, zoom): id = (index << 5) + (zoom + 1)
_ZOOM_BITS = 5


def lng_to_x(lng: float) -> float:
    return lng / 360.0 + 0.5


def lat_to_y(lat: float) -> float:
    lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
    sin = math.sin(math.radians(lat))
    y = 0.5 - 0.25 * math.log((1 + sin) / (1 - sin)) / math.pi
    return min(max(y, 0.0), 1.0)


def x_to_lng(x: float) -> float:
    return (x - 0.5) * 360.0


def y_to_lat(y: float) -> float:
    y2 = (180.0 - y * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


def abbreviate_count(count: int) -> str:
    """Short label for a cluster size, e.g. 1234 -> "1.2k"."""
    if count >= 10000:
        return f"{round(count / 1000)}k"
    if count >= 1000:
        return f"{round(count / 100) / 10}k"
    return str(count)


@dataclass
class _Node:
    x: float
    y: float
    members: Tuple[int, ...]


class PointClusterer:
    """Cluster GeoJSON point features per integer zoom level."""

    def __init__(
        self,
        radius: int = 40,
        max_zoom: int = 14,
        min_zoom: int = 0,
        extent: int = TILE_EXTENT,
    ):
        if max_zoom >= (1 << _ZOOM_BITS) - 1:
            raise ValueError(f"max_zoom must be below {(1 << _ZOOM_BITS) - 1}")
        self.radius = radius
        self.max_zoom = max_zoom
        self.min_zoom = min_zoom
        self.extent = extent
        self._features: List[Dict[str, Any]] = []
        self._points: List[Tuple[float, float]] = []
        self._levels: Dict[int, List[_Node]] = {}

    def load(self, features: Sequence[Dict[str, Any]]) -> None:
        """Index point features. Features without point geometry are skipped."""
        self._features = []
        self._points = []
        self._levels = {}
        for feature in features or []:
            geometry = (feature or {}).get("geometry") or {}
            coords = geometry.get("coordinates")
            if geometry.get("type") != "Point" or not coords or len(coords) < 2:
                continue
            self._features.append(feature)
            self._points.append((lng_to_x(coords[0]), lat_to_y(coords[1])))
        logger.debug(f"Indexed {len(self._points)} points for clustering")

    def zoom_level(self, zoom: float) -> int:
        """Integer level used for a (possibly fractional) camera zoom."""
        z = int(math.floor(zoom))
        return max(self.min_zoom, min(z, self.max_zoom + 1))

    def _nodes_at(self, z: int) -> List[_Node]:
        cached = self._levels.get(z)
        if cached is not None:
            return cached

        if z > self.max_zoom:
            nodes = [_Node(x, y, (i,)) for i, (x, y) in enumerate(self._points)]
            self._levels[z] = nodes
            return nodes

        r = self.radius / (self.extent * 2 ** z)
        r2 = r * r

        def cell(x: float, y: float) -> Tuple[int, int]:
            return int(math.floor(x / r)), int(math.floor(y / r))

        grid: Dict[Tuple[int, int], List[int]] = {}
        for i, (x, y) in enumerate(self._points):
            grid.setdefault(cell(x, y), []).append(i)

        assigned = [False] * len(self._points)
        nodes = []
        for i, (x, y) in enumerate(self._points):
            if assigned[i]:
                continue
            assigned[i] = True
            members = [i]
            cx, cy = cell(x, y)
            for gx in (cx - 1, cx, cx + 1):
                for gy in (cy - 1, cy, cy + 1):
                    for j in grid.get((gx, gy), ()):
                        if assigned[j]:
                            continue
                        px, py = self._points[j]
                        if (px - x) ** 2 + (py - y) ** 2 <= r2:
                            assigned[j] = True
                            members.append(j)

            if len(members) == 1:
                nodes.append(_Node(x, y, (i,)))
            else:
                mx = sum(self._points[m][0] for m in members) / len(members)
                my = sum(self._points[m][1] for m in members) / len(members)
                nodes.append(_Node(mx, my, tuple(members)))

        self._levels[z] = nodes
        return nodes

    @staticmethod
    def _cluster_id(index: int, z: int) -> int:
        return (index << _ZOOM_BITS) + (z + 1)

    def _cluster_feature(self, node: _Node, cluster_id: int) -> Dict[str, Any]:
        count = len(node.members)
        return {
            "type": "Feature",
            "id": cluster_id,
            "properties": {
                "cluster": True,
                "cluster_id": cluster_id,
                "point_count": count,
                "point_count_abbreviated": abbreviate_count(count),
            },
            "geometry": {
                "type": "Point",
                "coordinates": [x_to_lng(node.x), y_to_lat(node.y)],
            },
        }

    def get_clusters(self, zoom: float) -> List[Dict[str, Any]]:
        """Clusters and unclustered points rendered at ``zoom``."""
        z = self.zoom_level(zoom)
        out = []
        for index, node in enumerate(self._nodes_at(z)):
            if len(node.members) == 1:
                out.append(copy.deepcopy(self._features[node.members[0]]))
            else:
                out.append(self._cluster_feature(node, self._cluster_id(index, z)))
        return out

    def _resolve(self, cluster_id: Any) -> Tuple[int, _Node]:
        if isinstance(cluster_id, bool) or not isinstance(cluster_id, int) or cluster_id < 0:
            raise ClusterLookupError(f"Invalid cluster id: {cluster_id!r}")
        z = (cluster_id % (1 << _ZOOM_BITS)) - 1
        index = cluster_id >> _ZOOM_BITS
        if z < self.min_zoom or z > self.max_zoom:
            raise ClusterLookupError(f"No cluster with the specified id: {cluster_id}")
        nodes = self._nodes_at(z)
        if index >= len(nodes) or len(nodes[index].members) < 2:
            raise ClusterLookupError(f"No cluster with the specified id: {cluster_id}")
        return z, nodes[index]

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """
        First zoom at which the cluster's points no longer render as one.

        Returns ``max_zoom + 1`` when the points only separate once
        clustering stops.

        Raises:
            ClusterLookupError: If ``cluster_id`` does not name a cluster
        """
        z, node = self._resolve(cluster_id)
        members = set(node.members)
        for level in range(z + 1, self.max_zoom + 1):
            holders = sum(1 for n in self._nodes_at(level) if members.intersection(n.members))
            if holders > 1:
                return level
        return self.max_zoom + 1
