from .map_sync_controller import ControllerState, MapSyncController

__all__ = ["ControllerState", "MapSyncController"]
