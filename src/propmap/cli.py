"""Command line entry point: list properties or run a polygon search."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .config.settings import PropMapSettings
from .controller.map_sync_controller import MapSyncController
from .errors import ConfigurationError, GeometryError
from .mapping.drawing import InMemoryDrawingTool
from .mapping.styles import format_price
from .utils.logging import setup_logging


def load_polygon_geometries(path: Path) -> List[Dict[str, Any]]:
    """
    Read geometries from a GeoJSON file.

    Accepts a bare geometry, a Feature or a FeatureCollection.
    """
    with open(path) as f:
        data = json.load(f)

    kind = data.get("type") if isinstance(data, dict) else None
    if kind == "FeatureCollection":
        return [f.get("geometry") for f in data.get("features", []) if f.get("geometry")]
    if kind == "Feature":
        return [data["geometry"]] if data.get("geometry") else []
    if kind:
        return [data]
    raise GeometryError(f"{path} is not GeoJSON")


def print_dataset(controller: MapSyncController, limit: int) -> None:
    records = controller.store.current()
    print(f"📦 {len(records)} properties")
    for record in records[:limit]:
        lon, lat = record.location.lon, record.location.lat
        price = format_price(record.price)
        print(f"   {record.id:>8}  {record.title[:40]:<40}  ${price:<12} ({lon:.5f}, {lat:.5f})")
    if len(records) > limit:
        print(f"   ... {len(records) - limit} more")


def write_snapshot(controller: MapSyncController, config: PropMapSettings, output: str) -> bool:
    if not config.MAPBOX_ACCESS_TOKEN:
        print("❌ MAPBOX_ACCESS_TOKEN not set; cannot render snapshot")
        return False
    result = controller.surface.snapshot(
        output_path=output,
        width=config.MAP_WIDTH,
        height=config.MAP_HEIGHT,
        padding=config.MAP_PADDING,
        retina=config.MAP_RETINA,
        fit=True,
    )
    if result.success:
        print(f"🗺️  Snapshot saved to {result.image_path} ({result.strategy_used} strategy)")
    else:
        print(f"❌ Snapshot failed: {result.error_message}")
    return result.success


async def run(args: argparse.Namespace, config: PropMapSettings) -> int:
    drawing_tool = InMemoryDrawingTool()
    controller = MapSyncController.from_settings(config, drawing_tool=drawing_tool)

    async with controller:
        if controller.degraded:
            print(f"⚠️  Initial load failed: {controller.last_error}")

        if args.command == "search":
            for geometry in load_polygon_geometries(Path(args.polygon)):
                drawing_tool.add(geometry)
            applied = await controller.on_search_requested()
            if not applied:
                reason = controller.last_error or "no polygon found in file"
                print(f"❌ Search not applied: {reason}")
                return 1

        print_dataset(controller, args.limit)

        if args.snapshot and not write_snapshot(controller, config, args.snapshot):
            return 1

    return 1 if controller.degraded and args.command == "list" else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="propmap", description="Property map sync tool")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Load and print all properties")
    search_cmd = sub.add_parser("search", help="Search properties within a polygon")
    search_cmd.add_argument("--polygon", required=True, help="GeoJSON file with the search polygon")

    for cmd in (list_cmd, search_cmd):
        cmd.add_argument("--limit", type=int, default=20, help="Max rows to print")
        cmd.add_argument("--snapshot", default=None, help="Write a static map PNG here")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    config = PropMapSettings()

    setup_logging(args.log_level or config.LOG_LEVEL, "json" if args.json_logs else "standard")

    try:
        return asyncio.run(run(args, config))
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}")
        return 2
    except (GeometryError, OSError, json.JSONDecodeError) as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
