"""Async client for the property backend's list and polygon-search endpoints."""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..errors import ConfigurationError, DecodeError, NetworkError
from ..mapping.geometry_utils import validate_polygon
from ..models.schemas import (
    PolygonGeometry,
    PolygonSearchRequest,
    PropertyListResponse,
    PropertyRecord,
)

logger = logging.getLogger(__name__)


def parse_property_list(payload: Any) -> List[PropertyRecord]:
    """
    Decode a ``{"items": [...]}`` envelope into records.

    A missing or null ``items`` decodes to an empty list.

    Raises:
        DecodeError: If the payload is not an object or any item is malformed
    """
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return PropertyListResponse.model_validate(payload).items
    except ValidationError as e:
        raise DecodeError(f"Malformed property list: {e.error_count()} validation error(s)") from e


class SpatialQueryClient:
    """Client for the property backend."""

    PROPERTIES_PATH = "/api/properties"
    SEARCH_PATH = "/api/properties/search"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Backend base URL, e.g. "https://api.example.com"
            timeout: HTTP request timeout in seconds
            http_client: Preconfigured async client (tests inject a mock transport)
        """
        if not base_url or not base_url.strip():
            raise ConfigurationError("Backend base URL is required")
        self.base_url = base_url.strip().rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    async def fetch_all(self) -> List[PropertyRecord]:
        """Fetch the unfiltered dataset."""
        records = await self._request_items("GET", self.PROPERTIES_PATH)
        logger.info(f"Fetched {len(records)} properties")
        return records

    async def fetch_within(self, polygon: Dict[str, Any]) -> List[PropertyRecord]:
        """
        Fetch properties intersecting ``polygon``, evaluated server-side.

        Args:
            polygon: GeoJSON Polygon geometry with closed rings

        Raises:
            GeometryError: If the polygon is open or degenerate (no request is made)
            NetworkError: On transport failure or error status
            DecodeError: If the response cannot be decoded
        """
        rings = validate_polygon(polygon)
        request = PolygonSearchRequest(polygon=PolygonGeometry(coordinates=rings))
        records = await self._request_items(
            "POST", self.SEARCH_PATH, json=request.to_payload()
        )
        logger.info(f"Polygon search returned {len(records)} properties")
        return records

    async def _request_items(
        self, method: str, path: str, json: Optional[Dict[str, Any]] = None
    ) -> List[PropertyRecord]:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.request(
                method, url, json=json, headers={"Accept": "application/json"}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise NetworkError(f"{method} {url} failed with HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON payload from {url}") from e

        return parse_property_list(payload)

    async def aclose(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()

    async def __aenter__(self) -> "SpatialQueryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
