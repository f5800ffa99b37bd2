# src/propmap/models/schemas.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PointGeometry(BaseModel):
    """GeoJSON Point in WGS84 (lon, lat)."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(min_length=2)

    @property
    def lon(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]


class PolygonGeometry(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]


class PropertyRecord(BaseModel):
    """A single property as returned by the backend. Never patched in place."""

    model_config = ConfigDict(frozen=True, extra="ignore", allow_inf_nan=False)

    id: str
    title: str
    price: Optional[Union[int, float]] = None
    location: PointGeometry

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        """Backends sometimes send numeric ids; keep them as strings"""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class PropertyListResponse(BaseModel):
    """Envelope shared by the list and search endpoints."""

    items: List[PropertyRecord] = []

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, v):
        return [] if v is None else v


class PolygonSearchRequest(BaseModel):
    polygon: PolygonGeometry

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
