"""Tests for layer styling, price formatting and popup markup."""

import pytest

from propmap.mapping.styles import (
    CLUSTER_TIERS,
    build_layers,
    cluster_tier,
    format_price,
    marker_color,
    render_popup_html,
)


class TestFormatPrice:
    @pytest.mark.parametrize(
        "price,expected",
        [
            (None, ""),
            ("", ""),
            (0, "0"),
            (950, "950"),
            (250000, "250,000"),
            (1250000.0, "1,250,000"),
            (1999.5, "1,999.5"),
            ("POA", "POA"),
            (True, ""),
        ],
    )
    def test_format(self, price, expected):
        assert format_price(price) == expected


class TestPopup:
    def test_title_and_price(self):
        markup = render_popup_html("Harbour Loft", 250000)
        assert ">Harbour Loft</div>" in markup
        assert ">$250,000</div>" in markup

    def test_missing_price_renders_blank(self):
        markup = render_popup_html("Garden Flat", None)
        assert markup.endswith('">$</div>')

    def test_missing_title(self):
        markup = render_popup_html(None, 5)
        assert '"></div>' in markup

    def test_markup_escaped(self):
        markup = render_popup_html("<script>alert(1)</script>", "<b>")
        assert "<script>" not in markup
        assert "&lt;script&gt;" in markup
        assert "$&lt;b&gt;" in markup


class TestClusterTiers:
    @pytest.mark.parametrize(
        "count,radius",
        [(2, 16), (49, 16), (50, 22), (199, 22), (200, 28), (5000, 28)],
    )
    def test_tier_radius(self, count, radius):
        assert cluster_tier(count).radius == radius

    def test_marker_color_has_no_hash(self):
        assert marker_color(10) == "1F4AFF"
        assert marker_color(300) == "0ea5e9"


class TestBuildLayers:
    def test_layer_ids(self):
        assert [layer["id"] for layer in build_layers()] == [
            "clusters",
            "cluster-count",
            "unclustered-point",
        ]

    def test_cluster_step_expressions(self):
        clusters = build_layers()[0]
        assert clusters["paint"]["circle-color"] == [
            "step",
            ["get", "point_count"],
            "#1F4AFF",
            50,
            "#2563eb",
            200,
            "#0ea5e9",
        ]
        assert clusters["paint"]["circle-radius"] == [
            "step",
            ["get", "point_count"],
            16,
            50,
            22,
            200,
            28,
        ]

    def test_all_layers_use_source(self):
        assert {layer["source"] for layer in build_layers("homes")} == {"homes"}

    def test_unclustered_filter(self):
        point_layer = build_layers()[2]
        assert point_layer["filter"] == ["!", ["has", "point_count"]]
        assert point_layer["paint"]["circle-radius"] == 6

    def test_tiers_ascending(self):
        counts = [t.min_count for t in CLUSTER_TIERS]
        assert counts == sorted(counts)
