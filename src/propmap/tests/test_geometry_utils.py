"""Tests for polygon validation and drawn-geometry extraction."""

import pytest

from propmap.errors import GeometryError
from propmap.mapping.geometry_utils import (
    count_distinct_vertices,
    extract_search_polygon,
    get_bounding_box,
    reduce_coordinate_precision,
    validate_polygon,
    validate_ring,
)

from conftest import square


# =============================================================================
# TestValidateRing
# =============================================================================


class TestValidateRing:
    def test_closed_triangle(self):
        ring = validate_ring([[0, 0], [1, 0], [0, 1], [0, 0]])
        assert ring == [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]

    def test_too_few_positions(self):
        with pytest.raises(GeometryError, match="at least 4"):
            validate_ring([[0, 0], [1, 0], [0, 0]])

    def test_open_ring(self):
        with pytest.raises(GeometryError, match="not closed"):
            validate_ring([[0, 0], [1, 0], [1, 1], [0, 1]])

    def test_two_distinct_vertices(self):
        with pytest.raises(GeometryError, match="degenerate"):
            validate_ring([[0, 0], [1, 1], [0, 0], [1, 1], [0, 0]])

    def test_altitude_dropped(self):
        ring = validate_ring([[0, 0, 5], [1, 0, 5], [0, 1, 5], [0, 0, 5]])
        assert all(len(p) == 2 for p in ring)

    @pytest.mark.parametrize(
        "bad",
        [
            [["a", 0], [1, 0], [0, 1], ["a", 0]],
            [[float("nan"), 0], [1, 0], [0, 1], [float("nan"), 0]],
            [[True, 0], [1, 0], [0, 1], [True, 0]],
            [[0], [1, 0], [0, 1], [0]],
        ],
    )
    def test_bad_positions(self, bad):
        with pytest.raises(GeometryError):
            validate_ring(bad)

    def test_count_distinct_vertices(self):
        assert count_distinct_vertices([[0, 0], [1, 0], [0, 0]]) == 2


# =============================================================================
# TestValidatePolygon
# =============================================================================


class TestValidatePolygon:
    def test_square(self):
        rings = validate_polygon(square())
        assert len(rings) == 1
        assert len(rings[0]) == 5

    def test_polygon_with_hole(self):
        polygon = square(0, 0, 10)
        polygon["coordinates"].append(square(2, 2, 1)["coordinates"][0])
        assert len(validate_polygon(polygon)) == 2

    def test_open_hole_rejected(self):
        polygon = square(0, 0, 10)
        polygon["coordinates"].append([[2, 2], [3, 2], [3, 3], [2, 3]])
        with pytest.raises(GeometryError):
            validate_polygon(polygon)

    def test_wrong_type(self):
        with pytest.raises(GeometryError, match="Unsupported"):
            validate_polygon({"type": "MultiPolygon", "coordinates": [square()["coordinates"]]})

    def test_no_rings(self):
        with pytest.raises(GeometryError):
            validate_polygon({"type": "Polygon", "coordinates": []})

    def test_not_a_mapping(self):
        with pytest.raises(GeometryError):
            validate_polygon(None)


# =============================================================================
# TestExtractSearchPolygon
# =============================================================================


def _fc(*geometries):
    return {
        "type": "FeatureCollection",
        "features": [{"type": "Feature", "properties": {}, "geometry": g} for g in geometries],
    }


class TestExtractSearchPolygon:
    def test_single_polygon(self):
        assert extract_search_polygon(_fc(square())) == square()

    def test_first_polygon_wins(self):
        assert extract_search_polygon(_fc(square(5, 5), square(9, 9))) == square(5, 5)

    def test_skips_other_geometry_types(self):
        line = {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}
        assert extract_search_polygon(_fc(line, square(3, 3))) == square(3, 3)

    def test_nothing_drawn(self):
        with pytest.raises(GeometryError):
            extract_search_polygon(_fc())

    def test_no_polygon_among_geometries(self):
        with pytest.raises(GeometryError):
            extract_search_polygon(_fc({"type": "Point", "coordinates": [0, 0]}))

    def test_returns_snapshot(self):
        collection = _fc(square())
        polygon = extract_search_polygon(collection)
        polygon["coordinates"][0][0] = [99, 99]
        assert collection["features"][0]["geometry"] == square()


# =============================================================================
# TestBoundsAndPrecision
# =============================================================================


class TestBoundsAndPrecision:
    def test_bounding_box_of_polygon(self):
        assert get_bounding_box([square(1, 2, 3)]) == pytest.approx((1, 2, 4, 5))

    def test_bounding_box_of_points(self):
        points = [
            {"type": "Point", "coordinates": [-3, 4]},
            {"type": "Point", "coordinates": [5, -1]},
        ]
        assert get_bounding_box(points) == pytest.approx((-3, -1, 5, 4))

    def test_bounding_box_empty(self):
        assert get_bounding_box([]) == (0.0, 0.0, 0.0, 0.0)

    def test_reduce_precision_point(self):
        reduced = reduce_coordinate_precision(
            {"type": "Point", "coordinates": [1.23456789, -9.87654321]}, 3
        )
        assert reduced["coordinates"] == [1.235, -9.877]
