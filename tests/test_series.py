"""
Series Index and render scale tests (pytest compatible)

Run with:
    pytest tests/test_series.py -v
"""

import math

import pytest

from simnet.core.graph import Edge, Graph, Node, Record
from simnet.core.scales import PALETTE, RenderScales, category_colors, edge_width, node_radii, value_extent
from simnet.core.series import available_years, build_series_index, to_frame, year_range


class TestSeriesIndex:

    def test_groups_by_entity(self, scenario_index):
        assert list(scenario_index) == ["AAA", "BBB", "CCC", "DDD"]
        assert scenario_index["AAA"].entity_name == "Country AAA"
        assert scenario_index["AAA"].years == list(range(2010, 2016))

    def test_last_write_wins(self):
        index = build_series_index([
            Record("FRA", "France", 2000, 70.0),
            Record("FRA", "France (dup)", 2000, 71.0),
        ])
        series = index["FRA"]
        assert series.get(2000) == 71.0
        assert series.entity_name == "France"

    def test_gaps_stay_missing(self):
        index = build_series_index([
            Record("FRA", "France", 2000, 70.0),
            Record("FRA", "France", 2002, 72.0),
        ])
        series = index["FRA"]
        assert series.get(2001) is None
        assert series.years == [2000, 2002]

    def test_series_is_read_only(self, scenario_index):
        with pytest.raises(TypeError):
            scenario_index["AAA"].values_by_year[2010] = 0.0

    def test_years(self, random_index):
        assert year_range(random_index) == (2000, 2020)
        assert available_years(random_index) == list(range(2000, 2021))
        assert year_range({}) is None

    def test_to_frame(self, random_index):
        frame = to_frame(random_index)
        assert frame.index.name == "year"
        assert list(frame.index) == list(range(2000, 2021))
        assert list(frame.columns) == list(random_index)
        assert math.isnan(frame.loc[2010, "EBX"])
        assert math.isnan(frame.loc[2020, "ECX"])
        assert to_frame({}).empty


class TestScales:

    @pytest.fixture
    def graph(self):
        nodes = (
            Node("AAA", "A", "Europe", 60.0),
            Node("BBB", "B", "Asia", 70.0),
            Node("CCC", "C", "Asia", 80.0),
        )
        return Graph(nodes, (Edge(0, 1, 0.9),), 2000, 2010, (2000, 2010))

    def test_category_colors_cycle(self):
        categories = [f"C{i}" for i in range(len(PALETTE) + 1)]
        colors = category_colors(categories)
        assert colors["C0"] == PALETTE[0]
        assert colors[f"C{len(PALETTE)}"] == PALETTE[0]

    def test_node_radii(self, graph):
        assert value_extent(graph) == (60.0, 80.0)
        assert node_radii(graph) == pytest.approx([4.0, 9.0, 14.0])

    def test_flat_extent(self):
        graph = Graph((Node("AAA", "A", "X", 70.0), Node("BBB", "B", "X", 70.0)), (), 2000, 2010)
        assert node_radii(graph) == [9.0, 9.0]

    def test_empty_graph_extent(self):
        assert value_extent(Graph.empty()) == (60.0, 85.0)

    def test_render_scales(self, graph):
        scales = RenderScales.compute(graph)
        assert scales.color_of("Asia") == PALETTE[0]
        assert scales.color_of("Europe") == PALETTE[1]
        assert scales.color_of("Oceania") == "#999999"
        assert scales.edge_widths == pytest.approx((1.2,))

    def test_edge_width(self):
        assert edge_width(0.5) == pytest.approx(0.6)
        assert edge_width(0.9) == pytest.approx(1.2)
