# src/propmap/config/settings.py
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError

# .env is at repo root
# This file: <repo>/src/propmap/config/settings.py (4 levels deep)
_ENV_FILE = Path(__file__).parent.parent.parent.parent / ".env"


class PropMapSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_ENV_FILE, extra="ignore")

    # Backend
    BACKEND_URL: Optional[str] = Field(
        default=None, description="Base URL of the property search backend"
    )
    HTTP_TIMEOUT: float = Field(default=30.0, description="Per-request timeout in seconds")

    # Result ordering for concurrent fetches
    RESULT_ORDERING: Literal["generation", "completion"] = "generation"

    # Map defaults
    MAP_CENTER_LON: float = -40.0
    MAP_CENTER_LAT: float = 25.0
    MAP_ZOOM: float = 2.0

    # Clustering
    CLUSTER_MAX_ZOOM: int = Field(default=14, description="Max zoom at which points cluster")
    CLUSTER_RADIUS: int = Field(default=40, description="Cluster radius in pixels")

    # Static snapshot settings
    MAPBOX_ACCESS_TOKEN: str = Field(default="", description="Mapbox public access token")
    MAPBOX_STYLE: str = Field(default="light-v11", description="Mapbox style ID")
    MAP_WIDTH: int = Field(default=800, description="Snapshot width in pixels")
    MAP_HEIGHT: int = Field(default=450, description="Snapshot height in pixels")
    MAP_PADDING: int = Field(default=50, description="Padding around features in pixels")
    MAP_RETINA: bool = Field(default=True, description="Generate @2x retina snapshots")

    LOG_LEVEL: str = "INFO"


settings = PropMapSettings()


def require_backend_url(config: Optional[PropMapSettings] = None) -> str:
    """Return the configured backend URL or raise ConfigurationError."""
    config = config or settings
    url = (config.BACKEND_URL or "").strip()
    if not url:
        raise ConfigurationError(
            "BACKEND_URL must be set to the property backend base URL. "
            "Add it to your .env file."
        )
    return url.rstrip("/")
