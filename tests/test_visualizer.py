"""Tests for static choropleth rendering."""

import folium
import matplotlib.colors as mcolors
import numpy as np
import pytest

from areamap.datasource import MeasurementTable, RegionTable
from areamap.spatial_ops import filter_regions, join
from areamap.visualizer import (
    MapStyle,
    MapVisualizer,
    compare_maps,
    plot_map,
    tooltip_columns,
)

from conftest import make_measurement_frame


def facecolors(static):
    return static.axes.collections[0].get_facecolor()


class TestChoropleth:
    """Polygon fills follow the palette, one polygon per region."""

    def test_filtered_scenario_draws_three_polygons(self, joined):
        north = filter_regions(joined, "Council", "North")

        static = MapVisualizer().choropleth(north, "Quintile", legend_label="Quintile")

        assert static.polygon_count == 3
        assert static.palette.domain == (1.0, 3.0)
        expected = [mcolors.to_rgba(c) for c in static.fill_colors()]
        np.testing.assert_allclose(facecolors(static), expected)

    def test_region_without_data_uses_missing_color(self, region_table):
        measurements = MeasurementTable(
            make_measurement_frame(ids=["A", "B", "C", "D"]), "DataZone", ["Quintile"]
        )
        joined = join(region_table, measurements)

        style = MapStyle(missing_color="lightgrey")
        static = MapVisualizer().plot(joined, "Quintile", style)

        assert static.polygon_count == 5
        np.testing.assert_allclose(facecolors(static)[4], mcolors.to_rgba("lightgrey"))
        assert static.axes.get_legend() is not None

    def test_legend_uses_display_name(self, joined):
        static = MapVisualizer().choropleth(joined, "Decile", legend_label="Decile")

        assert static.legends == ["Decile"]
        colorbar_axes = [ax for ax in static.figure.axes if ax is not static.axes]
        assert len(colorbar_axes) == 1
        assert colorbar_axes[0].get_ylabel() == "Decile"

    def test_border_from_same_column_shares_one_legend(self, joined):
        static = MapVisualizer().choropleth(joined, "Quintile", border_column="Quintile")

        assert static.border_palette is static.palette
        assert static.legends == ["Quintile"]
        edges = static.axes.collections[0].get_edgecolor()
        np.testing.assert_allclose(edges, facecolors(static))

    def test_border_from_other_column_gets_own_palette(self, joined):
        static = MapVisualizer().choropleth(joined, "Quintile", border_column="Decile")

        assert static.border_palette.domain == (1.0, 10.0)
        assert static.legends == ["Quintile", "Decile"]

    def test_unknown_column(self, joined):
        with pytest.raises(ValueError, match="Column 'Vigintile' not in table"):
            MapVisualizer().choropleth(joined, "Vigintile")

    def test_render_does_not_mutate_table(self, joined):
        before = joined.data.copy()
        MapVisualizer().choropleth(joined, "Quintile", border_column="Decile")
        assert joined.data.equals(before)

    def test_empty_table_renders_without_polygons(self, joined):
        empty = filter_regions(joined, "Council", "Nowhere")
        static = MapVisualizer().choropleth(empty, "Quintile")
        assert static.polygon_count == 0

    def test_title(self, joined):
        static = MapVisualizer().choropleth(joined, "Quintile", title="Deprivation")
        assert static.axes.get_title() == "Deprivation"


class TestArtifacts:
    """Static maps can be written out or converted."""

    def test_plot_map_saves_png(self, joined, tmp_path):
        path = tmp_path / "maps" / "quintile.png"
        plot_map(joined, "Quintile", save_path=str(path))

        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_data_uri(self, joined):
        static = plot_map(joined, "Quintile")
        assert static.to_data_uri().startswith("data:image/png;base64,")

    def test_to_interactive(self, joined):
        static = plot_map(joined, "Quintile", border_column="Quintile")
        m = static.to_interactive(tiles="OpenStreetMap")

        assert isinstance(m, folium.Map)
        html = m.get_root().render()
        assert "Quintile" in html


class TestTooltipColumns:
    """Each column appears once in the tooltip."""

    def test_identifier_then_value(self):
        assert tooltip_columns("DataZone", "Quintile") == ["DataZone", "Quintile"]

    def test_shared_fill_and_border_listed_once(self):
        columns = tooltip_columns("DataZone", "Quintile", border_column="Quintile")
        assert columns == ["DataZone", "Quintile"]

    def test_extra_columns_deduplicated(self):
        columns = tooltip_columns(
            "DataZone", "Quintile", border_column="Decile", extra=["Name", "DataZone"]
        )
        assert columns == ["DataZone", "Quintile", "Decile", "Name"]


def test_compare_maps_uses_per_column_palettes(joined):
    fig, panels = compare_maps(joined, [("Quintile", "Quintile"), ("Decile", "Decile")])

    assert len(panels) == 2
    assert panels[0].palette.domain == (1.0, 5.0)
    assert panels[1].palette.domain == (1.0, 10.0)
    assert all(panel.polygon_count == 5 for panel in panels)
