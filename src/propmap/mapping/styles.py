"""Layer, marker and popup styling for the property map."""

import html
from dataclasses import dataclass
from typing import Any, Dict, List, Union

SOURCE_ID = "properties"

PRIMARY = "#1F4AFF"
NAVY = "#0B1B3B"


@dataclass
class ClusterTier:
    """Style of clusters whose point count is at least ``min_count``."""

    min_count: int
    color: str
    radius: int


# Ordered by min_count ascending
CLUSTER_TIERS = [
    ClusterTier(min_count=0, color="#1F4AFF", radius=16),
    ClusterTier(min_count=50, color="#2563eb", radius=22),
    ClusterTier(min_count=200, color="#0ea5e9", radius=28),
]

POINT_RADIUS = 6
POINT_STROKE_WIDTH = 2
CLUSTER_STROKE_WIDTH = 2


def cluster_tier(point_count: int) -> ClusterTier:
    """Pick the tier for a cluster size (step expression semantics)."""
    tier = CLUSTER_TIERS[0]
    for candidate in CLUSTER_TIERS:
        if point_count >= candidate.min_count:
            tier = candidate
    return tier


def _step_expression(attr: str) -> List[Any]:
    expr: List[Any] = ["step", ["get", "point_count"], getattr(CLUSTER_TIERS[0], attr)]
    for tier in CLUSTER_TIERS[1:]:
        expr.extend([tier.min_count, getattr(tier, attr)])
    return expr


def build_layers(source_id: str = SOURCE_ID) -> List[Dict[str, Any]]:
    """Mapbox GL layer definitions for clusters, counts and single points."""
    return [
        {
            "id": "clusters",
            "type": "circle",
            "source": source_id,
            "filter": ["has", "point_count"],
            "paint": {
                "circle-color": _step_expression("color"),
                "circle-radius": _step_expression("radius"),
                "circle-stroke-color": "#ffffff",
                "circle-stroke-width": CLUSTER_STROKE_WIDTH,
            },
        },
        {
            "id": "cluster-count",
            "type": "symbol",
            "source": source_id,
            "filter": ["has", "point_count"],
            "layout": {
                "text-field": ["get", "point_count_abbreviated"],
                "text-font": ["DIN Pro Medium", "Arial Unicode MS Bold"],
                "text-size": 12,
            },
            "paint": {"text-color": "#ffffff"},
        },
        {
            "id": "unclustered-point",
            "type": "circle",
            "source": source_id,
            "filter": ["!", ["has", "point_count"]],
            "paint": {
                "circle-color": PRIMARY,
                "circle-radius": POINT_RADIUS,
                "circle-stroke-width": POINT_STROKE_WIDTH,
                "circle-stroke-color": "#ffffff",
            },
        },
    ]


def format_price(price: Union[int, float, str, None]) -> str:
    """Format a price with thousands separators; blank when missing."""
    if price is None or price == "" or isinstance(price, bool):
        return ""
    if isinstance(price, str):
        return price
    if isinstance(price, float):
        if price.is_integer():
            return f"{int(price):,}"
        return f"{round(price, 3):,}"
    return f"{price:,}"


def render_popup_html(title: Any, price: Union[int, float, str, None]) -> str:
    """Popup markup for a single property."""
    safe_title = html.escape("" if title is None else str(title))
    return (
        f'<div style="font-weight:600;color:{NAVY}">{safe_title}</div>'
        f'<div style="color:{PRIMARY}">${html.escape(format_price(price))}</div>'
    )


def marker_color(point_count: int) -> str:
    """Hex (without #) for a static-map marker of the given cluster size."""
    return cluster_tier(point_count).color.lstrip("#")
