"""Build GeoJSON features for map rendering."""

from typing import Any, Dict, Iterable

from ..models.schemas import PropertyRecord


def record_to_feature(record: PropertyRecord) -> Dict[str, Any]:
    """
    Project one property record into a renderable point feature.

    Args:
        record: Property record from the backend

    Returns:
        GeoJSON Feature with id/title/price properties. A missing price
        becomes an empty string so popups render it blank.
    """
    return {
        "type": "Feature",
        "properties": {
            "id": record.id,
            "title": record.title,
            "price": record.price if record.price is not None else "",
        },
        "geometry": {
            "type": "Point",
            "coordinates": list(record.location.coordinates),
        },
    }


def build_feature_collection(records: Iterable[PropertyRecord]) -> Dict[str, Any]:
    """Build the FeatureCollection shown on the map, preserving record order."""
    return {
        "type": "FeatureCollection",
        "features": [record_to_feature(r) for r in records],
    }
