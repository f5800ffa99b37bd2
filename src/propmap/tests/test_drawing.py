"""Tests for the in-memory drawing tool."""

from propmap.mapping.drawing import InMemoryDrawingTool
from propmap.mapping.geometry_utils import extract_search_polygon

from conftest import square


def test_features_kept_in_draw_order():
    tool = InMemoryDrawingTool()
    tool.add(square(0, 0), feature_id="first")
    tool.add(square(5, 5), feature_id="second")

    collection = tool.get_drawn_geometries()
    assert collection["type"] == "FeatureCollection"
    assert [f["id"] for f in collection["features"]] == ["first", "second"]
    assert extract_search_polygon(collection) == square(0, 0)


def test_generated_ids_are_unique():
    tool = InMemoryDrawingTool()
    assert tool.add(square()) != tool.add(square())
    assert len(tool) == 2


def test_snapshot_is_independent():
    tool = InMemoryDrawingTool()
    geometry = square()
    tool.add(geometry)
    geometry["coordinates"][0][0] = [9, 9]

    snapshot = tool.get_drawn_geometries()
    snapshot["features"][0]["geometry"]["coordinates"].clear()
    assert tool.get_drawn_geometries()["features"][0]["geometry"] == square()


def test_delete():
    tool = InMemoryDrawingTool()
    fid = tool.add(square())
    assert tool.delete(fid)
    assert not tool.delete(fid)
    assert len(tool) == 0


def test_delete_all():
    tool = InMemoryDrawingTool()
    tool.add(square())
    tool.add(square(1, 1))
    tool.delete_all()
    assert tool.get_drawn_geometries()["features"] == []
