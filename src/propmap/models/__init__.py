from .schemas import (
    PointGeometry,
    PolygonGeometry,
    PolygonSearchRequest,
    PropertyListResponse,
    PropertyRecord,
)

__all__ = [
    "PointGeometry",
    "PolygonGeometry",
    "PolygonSearchRequest",
    "PropertyListResponse",
    "PropertyRecord",
]
