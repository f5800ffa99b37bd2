"""In-memory drawing tool holding user-drawn geometries."""

import copy
import logging
import uuid
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class InMemoryDrawingTool:
    """Keeps drawn features in draw order. Snapshots are deep copies."""

    def __init__(self):
        self._features: List[Dict[str, Any]] = []

    def add(self, geometry: Dict[str, Any], feature_id: Optional[str] = None) -> str:
        """Add a drawn geometry and return its feature id."""
        fid = feature_id or uuid.uuid4().hex
        self._features.append(
            {
                "id": fid,
                "type": "Feature",
                "properties": {},
                "geometry": copy.deepcopy(geometry),
            }
        )
        logger.debug(f"Drew {geometry.get('type')} feature {fid}")
        return fid

    def delete(self, feature_id: str) -> bool:
        before = len(self._features)
        self._features = [f for f in self._features if f["id"] != feature_id]
        return len(self._features) < before

    def delete_all(self) -> None:
        self._features = []

    def get_drawn_geometries(self) -> Dict[str, Any]:
        return {"type": "FeatureCollection", "features": copy.deepcopy(self._features)}

    def __len__(self) -> int:
        return len(self._features)
