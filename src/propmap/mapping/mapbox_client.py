"""Mapbox Static Images API client for map snapshots."""

import json
import urllib.parse
import logging
from typing import List, Dict, Any, Literal, Optional, Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx

from .geometry_utils import reduce_coordinate_precision
from .styles import PRIMARY, marker_color

logger = logging.getLogger(__name__)


@dataclass
class MapGenerationResult:
    """Result of snapshot generation attempt."""

    success: bool
    image_path: Optional[str]
    image_url: Optional[str]
    strategy_used: Literal["geojson", "clustered", "none"]
    error_message: Optional[str]
    features_rendered: int
    url_length: int


class MapboxClient:
    """Client for Mapbox Static Images API."""

    BASE_URL = "https://api.mapbox.com/styles/v1"
    MAX_URL_LENGTH = 8192  # Mapbox CDN limit
    SAFE_URL_LENGTH = 6000  # Conservative threshold for GeoJSON

    def __init__(
        self,
        access_token: str,
        style: str = "light-v11",
        username: str = "mapbox",
        timeout: float = 60.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Initialize Mapbox client.

        Args:
            access_token: Mapbox public access token
            style: Mapbox style ID
            username: Mapbox username (default "mapbox" for standard styles)
            timeout: HTTP request timeout in seconds
            http_client: Preconfigured client (tests inject a mock transport)
        """
        self.access_token = access_token
        self.style = style
        self.username = username
        self.http_client = http_client or httpx.Client(timeout=timeout)

    def render_snapshot(
        self,
        point_features: List[Dict[str, Any]],
        rendered_features: List[Dict[str, Any]],
        center: Optional[Sequence[float]] = None,
        zoom: Optional[float] = None,
        width: int = 800,
        height: int = 450,
        padding: int = 50,
        retina: bool = True,
        output_path: Optional[str] = None,
    ) -> MapGenerationResult:
        """
        Render a static image of the map with automatic strategy selection.

        Args:
            point_features: Every point in the source (GeoJSON overlay)
            rendered_features: Clusters and points as currently rendered,
                used for the marker fallback
            center: (lon, lat) camera center; None fits the features
            zoom: Camera zoom, required with ``center``
            width: Image width in pixels
            height: Image height in pixels
            padding: Padding around features when fitting
            retina: Whether to generate @2x retina image
            output_path: Where to save the image (optional)

        Returns:
            MapGenerationResult with success status and details
        """
        if not point_features:
            return self._failure("No features to render")

        viewport = self._viewport(center, zoom, width, height, padding, retina)

        # Strategy A: every point as a GeoJSON overlay
        overlay_features = [self._styled_point(f) for f in point_features]
        url = self._build_geojson_url(overlay_features, viewport)
        logger.debug(f"GeoJSON URL length: {len(url)}")

        if len(url) <= self.SAFE_URL_LENGTH:
            return self._fetch_and_save(url, output_path, "geojson", len(point_features))

        logger.info("URL too long, trying reduced coordinate precision...")
        reduced = [
            {**f, "geometry": reduce_coordinate_precision(f["geometry"], 5)}
            for f in overlay_features
        ]
        url = self._build_geojson_url(reduced, viewport)
        logger.debug(f"Reduced URL length: {len(url)}")

        if len(url) <= self.SAFE_URL_LENGTH:
            return self._fetch_and_save(url, output_path, "geojson", len(point_features))

        # Strategy B: one marker per rendered cluster or point
        logger.info("Precision reduction insufficient, trying clustered markers...")
        url = self._build_marker_url(rendered_features, viewport)
        logger.debug(f"Marker URL length: {len(url)}")

        if len(url) <= self.MAX_URL_LENGTH:
            return self._fetch_and_save(url, output_path, "clustered", len(point_features))

        return self._failure(
            f"URL too long even with clustered markers ({len(url)} chars). "
            f"Consider zooming out or narrowing the search.",
            url_length=len(url),
        )

    def _viewport(
        self,
        center: Optional[Sequence[float]],
        zoom: Optional[float],
        width: int,
        height: int,
        padding: int,
        retina: bool,
    ) -> str:
        retina_suffix = "@2x" if retina else ""
        if center is not None and zoom is not None:
            position = f"{round(center[0], 5)},{round(center[1], 5)},{round(zoom, 2)}"
            return f"{position}/{width}x{height}{retina_suffix}?"
        return f"auto/{width}x{height}{retina_suffix}?padding={padding}&"

    @staticmethod
    def _styled_point(feature: Dict[str, Any]) -> Dict[str, Any]:
        """Drop data properties, keep only SimpleStyle marker styling."""
        return {
            "type": "Feature",
            "properties": {"marker-color": PRIMARY, "marker-size": "small"},
            "geometry": feature["geometry"],
        }

    def _build_geojson_url(self, features: List[Dict[str, Any]], viewport: str) -> str:
        """Build URL using GeoJSON overlay."""
        feature_collection = {"type": "FeatureCollection", "features": features}

        # Use compact JSON encoding
        geojson_str = json.dumps(feature_collection, separators=(",", ":"))
        encoded_geojson = urllib.parse.quote(geojson_str)

        return (
            f"{self.BASE_URL}/{self.username}/{self.style}/static/"
            f"geojson({encoded_geojson})/{viewport}access_token={self.access_token}"
        )

    def _build_marker_url(self, features: List[Dict[str, Any]], viewport: str) -> str:
        """
        Build URL using pin markers.

        Clusters get their point count as the pin label when it fits (0-99).
        """
        markers = []
        for feat in features:
            coords = (feat.get("geometry") or {}).get("coordinates")
            if not coords:
                continue
            props = feat.get("properties") or {}
            count = props.get("point_count")
            if count:
                label = f"-{count}" if count <= 99 else ""
                color = marker_color(count)
            else:
                label = ""
                color = PRIMARY.lstrip("#")
            markers.append(
                f"pin-s{label}+{color}({round(coords[0], 5)},{round(coords[1], 5)})"
            )

        overlay = ",".join(markers)
        return (
            f"{self.BASE_URL}/{self.username}/{self.style}/static/"
            f"{overlay}/{viewport}access_token={self.access_token}"
        )

    @staticmethod
    def _failure(
        message: str,
        strategy: str = "none",
        url: Optional[str] = None,
        url_length: Optional[int] = None,
    ) -> MapGenerationResult:
        return MapGenerationResult(
            success=False,
            image_path=None,
            image_url=url,
            strategy_used=strategy,
            error_message=message,
            features_rendered=0,
            url_length=url_length if url_length is not None else len(url or ""),
        )

    def _fetch_and_save(
        self,
        url: str,
        output_path: Optional[str],
        strategy: str,
        feature_count: int,
    ) -> MapGenerationResult:
        """
        Fetch the image and optionally write it to ``output_path``.

        HTTP failures come back as an unsuccessful result rather than raising.
        """
        logger.info(f"Fetching map using {strategy} strategy...")
        try:
            response = self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}: {e.response.text[:500]}"
            logger.error(f"Mapbox API error: {error_msg}")
            return self._failure(error_msg, strategy, url)
        except httpx.TimeoutException:
            logger.error("Mapbox API timeout")
            return self._failure("Request timed out", strategy, url)
        except httpx.HTTPError as e:
            logger.error(f"Mapbox API error: {e}")
            return self._failure(str(e), strategy, url)

        content_type = response.headers.get("content-type", "")
        if "image" not in content_type:
            return self._failure(f"Unexpected content type: {content_type}", strategy, url)

        if output_path:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
            Path(output_path).write_bytes(response.content)
            logger.info(f"Map saved to: {output_path}")

        return MapGenerationResult(
            success=True,
            image_path=output_path,
            image_url=url,
            strategy_used=strategy,
            error_message=None,
            features_rendered=feature_count,
            url_length=len(url),
        )

    def close(self):
        """Close HTTP client."""
        self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
