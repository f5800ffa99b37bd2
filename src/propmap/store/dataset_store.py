"""Holds the current property dataset and its derived point collection."""

import copy
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from ..mapping.map_data_builder import build_feature_collection
from ..models.schemas import PropertyRecord

logger = logging.getLogger(__name__)


class DatasetStore:
    """
    Single owner of the current dataset.

    The dataset is an immutable tuple that is swapped wholesale on
    ``replace``; readers always see either the old or the new tuple.
    """

    def __init__(self, records: Iterable[PropertyRecord] = ()):
        self._records: Tuple[PropertyRecord, ...] = tuple(records)
        self._derived: Optional[Dict[str, Any]] = None
        self._version = 0

    @property
    def version(self) -> int:
        """Incremented on every replace."""
        return self._version

    def __len__(self) -> int:
        return len(self._records)

    def replace(self, records: Iterable[PropertyRecord]) -> None:
        """Atomically swap the current dataset."""
        # Materialize before swapping so a failing iterable leaves the store intact
        snapshot = tuple(records)
        self._records = snapshot
        self._derived = None
        self._version += 1
        logger.debug(f"Dataset replaced: {len(snapshot)} records (version {self._version})")

    def current(self) -> Tuple[PropertyRecord, ...]:
        return self._records

    def derive(self) -> Dict[str, Any]:
        """
        Return the renderable FeatureCollection for the current dataset.

        Cached until the next replace. Callers get a copy, so the cached
        collection is only ever produced from the dataset.
        """
        if self._derived is None:
            self._derived = build_feature_collection(self._records)
        return copy.deepcopy(self._derived)
