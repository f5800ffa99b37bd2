# src/propmap/__init__.py
from .controller.map_sync_controller import ControllerState, MapSyncController
from .client.spatial_query_client import SpatialQueryClient
from .store.dataset_store import DatasetStore
from .models.schemas import PropertyRecord
from .errors import (
    ClusterLookupError,
    ConfigurationError,
    DecodeError,
    GeometryError,
    NetworkError,
    PropMapError,
)

__all__ = [
    "ControllerState",
    "MapSyncController",
    "SpatialQueryClient",
    "DatasetStore",
    "PropertyRecord",
    "PropMapError",
    "ConfigurationError",
    "NetworkError",
    "DecodeError",
    "GeometryError",
    "ClusterLookupError",
]
