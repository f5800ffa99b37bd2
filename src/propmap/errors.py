"""Error hierarchy for propmap."""

from typing import Optional


class PropMapError(Exception):
    """Base class for all propmap errors."""


class ConfigurationError(PropMapError):
    """Raised for missing or invalid configuration."""


class NetworkError(PropMapError):
    """Raised when the backend cannot be reached or answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(PropMapError):
    """Raised when a backend response does not have the expected shape."""


class GeometryError(PropMapError):
    """Raised for a missing, open or degenerate query polygon."""


class ClusterLookupError(PropMapError):
    """Raised when a clicked feature cannot be resolved to a cluster."""
