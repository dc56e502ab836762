"""
Interactive multi-layer choropleth rendering with folium.

Each measurement becomes its own base layer in the layer control, so exactly
one measurement is visible at a time. Every layer carries its own palette,
click popup and legend; a legend is shown only while its layer is selected.
"""

import html
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import folium
import pandas as pd
from branca.element import MacroElement, Template

from areamap.config import Settings, settings as default_settings
from areamap.palette import ColorScale, Palette, colormap_name
from areamap.spatial_ops import JoinedMapTable, region_bounds, require_geographic

logger = logging.getLogger(__name__)

LEGEND_POSITIONS = ("bottomright", "bottomleft", "topright", "topleft")

DEFAULT_LAYER_COLORMAPS = ("viridis", "magma", "YlGnBu", "RdYlGn")


@dataclass
class LayerSpec:
    """One measurement layer of an interactive map.

    Attributes:
        column: Measurement column driving the fill color
        name: Display name used for the group, legend and popup
        colormap: Palette name for this layer (defaults by position)
        legend_position: Corner for this layer's legend (defaults by position)
    """
    column: str
    name: str
    colormap: Union[str, ColorScale, None] = None
    legend_position: Optional[str] = None


class LayerToggle:
    """Mutually exclusive selection of the active layer group.

    The state is the name of the single active group; selecting a group
    replaces it. The first registered group is active initially.
    """

    def __init__(self, groups: Sequence[str]):
        groups = list(groups)
        if not groups:
            raise ValueError("LayerToggle needs at least one group")
        if len(set(groups)) != len(groups):
            raise ValueError(f"Layer group names must be unique: {groups}")
        self._groups = groups
        self._active = groups[0]

    @property
    def groups(self) -> List[str]:
        return list(self._groups)

    @property
    def active(self) -> str:
        return self._active

    def select(self, name: str) -> str:
        if name not in self._groups:
            raise KeyError(f"Unknown layer group '{name}'. Available: {self._groups}")
        self._active = name
        return self._active

    def is_visible(self, name: str) -> bool:
        return name == self._active

    def visible_groups(self) -> List[str]:
        return [self._active]


class GroupLegend(MacroElement):
    """Gradient legend bound to one base layer group.

    Rendered as a Leaflet control in the given corner. It is attached
    whenever its group becomes the active base layer and detached otherwise.
    """

    _template = Template(
        """
        {% macro header(this, kwargs) %}
        <style>
            .areamap-legend {
                background: white;
                padding: 6px 8px;
                border: 1px solid #bbb;
                border-radius: 4px;
                font-size: 12px;
                line-height: 1.3;
            }
            .areamap-legend .bar {
                width: 160px;
                height: 10px;
                margin: 4px 0;
            }
            .areamap-legend .ticks {
                display: flex;
                justify-content: space-between;
            }
        </style>
        {% endmacro %}

        {% macro script(this, kwargs) %}
        var {{ this.get_name() }} = L.control({position: {{ this.position|tojson }}});
        {{ this.get_name() }}.onAdd = function (map) {
            var div = L.DomUtil.create('div', 'areamap-legend');
            div.innerHTML = {{ this.html|tojson }};
            return div;
        };
        {% if this.visible %}
        {{ this.get_name() }}.addTo({{ this._parent.get_name() }});
        {% endif %}
        {{ this._parent.get_name() }}.on('baselayerchange', function (e) {
            if (e.name === {{ this.group|tojson }}) {
                {{ this.get_name() }}.addTo({{ this._parent.get_name() }});
            } else {
                {{ this.get_name() }}.remove();
            }
        });
        {% endmacro %}
        """
    )

    def __init__(
        self,
        palette: Palette,
        group: str,
        position: str = "bottomright",
        visible: bool = True
    ):
        super().__init__()
        if position not in LEGEND_POSITIONS:
            raise ValueError(
                f"Unknown legend position '{position}'. Use one of {LEGEND_POSITIONS}"
            )
        self._name = "GroupLegend"
        self.palette = palette
        self.group = group
        self.position = position
        self.visible = visible

    @property
    def html(self) -> str:
        gradient = ", ".join(self.palette.stops())
        title = html.escape(self.palette.label or self.group)
        return (
            f"<b>{title}</b>"
            f"<div class=\"bar\" style=\"background: linear-gradient(to right, {gradient});\"></div>"
            f"<div class=\"ticks\"><span>{self.palette.vmin:g}</span>"
            f"<span>{self.palette.vmax:g}</span></div>"
            f"<div><span style=\"display:inline-block;width:10px;height:10px;"
            f"background:{self.palette.missing_color};margin-right:4px;\"></span>No data</div>"
        )


@dataclass
class LayerGroup:
    """Folium elements making up one toggleable measurement layer."""
    spec: LayerSpec
    palette: Palette
    feature_group: folium.FeatureGroup
    legend: GroupLegend


@dataclass
class InteractiveMap:
    """A rendered multi-layer interactive map."""
    map: folium.Map
    toggle: LayerToggle
    groups: Dict[str, LayerGroup] = field(default_factory=dict)

    @property
    def active(self) -> str:
        return self.toggle.active

    def select(self, name: str) -> "InteractiveMap":
        """Make name the visible layer; every other layer and legend is hidden."""
        self.toggle.select(name)
        for group_name, group in self.groups.items():
            shown = self.toggle.is_visible(group_name)
            group.feature_group.show = shown
            group.legend.visible = shown
        return self

    def visible_layers(self) -> List[str]:
        return [
            name for name, group in self.groups.items()
            if group.feature_group.show
        ]

    def visible_legends(self) -> List[str]:
        return [
            name for name, group in self.groups.items()
            if group.legend.visible
        ]

    def to_html(self) -> str:
        return self.map.get_root().render()

    def save(self, filepath: Union[str, Path]):
        """Write the map as a standalone HTML page."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.map.save(str(path))
        logger.info("Wrote interactive map to %s", path)


class ActiveLayerSelector(MacroElement):
    """Shows the toggle's active group once the layer control exists.

    Adding a base layer fires Leaflet's ``baselayerchange`` event, which
    also brings the matching GroupLegend into view.
    """

    _template = Template(
        """
        {% macro script(this, kwargs) %}
        {% for name, layer in this.layers.items() %}
        {% if name != this.toggle.active %}
        {{ layer.get_name() }}.remove();
        {% endif %}
        {% endfor %}
        {{ this.layers[this.toggle.active].get_name() }}.addTo({{ this._parent.get_name() }});
        {% endmacro %}
        """
    )

    def __init__(self, toggle: LayerToggle, layers: Dict[str, folium.FeatureGroup]):
        super().__init__()
        self._name = "ActiveLayerSelector"
        self.toggle = toggle
        self.layers = layers


def format_value(value) -> str:
    if value is None or pd.isna(value):
        return "No data"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def popup_text(region_id, display_name: str, value) -> str:
    """Two-line popup body: identifier, then the labelled value."""
    return (
        f"<b>{html.escape(str(region_id))}</b><br>"
        f"{html.escape(display_name)}: {html.escape(format_value(value))}"
    )


class InteractiveRenderer:
    """Builds pannable folium maps with one exclusive layer per measurement."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def render(
        self,
        table: JoinedMapTable,
        layers: Sequence[Union[LayerSpec, Tuple[str, str]]],
        tiles: Optional[str] = None
    ) -> InteractiveMap:
        """Render the table as an interactive multi-layer map.

        Args:
            table: Joined table in a geographic CRS
            layers: LayerSpec or (column, display name) pairs
            tiles: Base tile layer; defaults to the configured tiles

        Returns:
            InteractiveMap with the first layer active

        Raises:
            ProjectionError: If the table is not in a geographic CRS
            ValueError: If no layers are given, a column is missing, or
                display names repeat
        """
        require_geographic(table)
        specs = [s if isinstance(s, LayerSpec) else LayerSpec(*s) for s in layers]
        if not specs:
            raise ValueError("At least one measurement layer is required")
        for spec in specs:
            if spec.column not in table.data.columns:
                raise ValueError(
                    f"Column '{spec.column}' not in table. "
                    f"Available columns: {list(table.data.columns)}"
                )

        toggle = LayerToggle([spec.name for spec in specs])

        bounds = region_bounds(table)
        location = None
        if bounds is not None:
            (south, west), (north, east) = bounds
            location = [(south + north) / 2, (west + east) / 2]

        m = folium.Map(location=location, tiles=None, zoom_start=self.settings.zoom_start)
        folium.TileLayer(tiles or self.settings.tiles, control=False).add_to(m)
        if bounds is not None:
            m.fit_bounds(bounds)

        interactive = InteractiveMap(map=m, toggle=toggle)
        for i, spec in enumerate(specs):
            group = self._add_layer(m, table, spec, i, toggle.is_visible(spec.name))
            interactive.groups[spec.name] = group

        folium.LayerControl(collapsed=False).add_to(m)
        ActiveLayerSelector(
            toggle,
            {name: group.feature_group for name, group in interactive.groups.items()}
        ).add_to(m)
        logger.info(
            "Rendered interactive map with %d regions and layers %s",
            len(table), toggle.groups
        )
        return interactive

    def _add_layer(
        self,
        m: folium.Map,
        table: JoinedMapTable,
        spec: LayerSpec,
        index: int,
        visible: bool
    ) -> LayerGroup:
        colormap = colormap_name(
            spec.colormap or DEFAULT_LAYER_COLORMAPS[index % len(DEFAULT_LAYER_COLORMAPS)]
        )
        palette = Palette.from_values(
            table.data[spec.column],
            colormap=colormap,
            missing_color=self.settings.missing_color,
            label=spec.name
        )

        popup_column = f"_popup_{index}"
        data = table.data[[table.id_column, spec.column, table.data.geometry.name]].copy()
        data[popup_column] = [
            popup_text(region_id, spec.name, value)
            for region_id, value in zip(data[table.id_column], data[spec.column])
        ]

        column = spec.column

        def style_fn(feature):
            return {
                "fillColor": palette(feature["properties"].get(column)),
                "color": "#444444",
                "weight": 0.6,
                "fillOpacity": 0.7,
            }

        feature_group = folium.FeatureGroup(name=spec.name, overlay=False, show=visible)
        # folium validates style functions against the first feature
        if len(data):
            folium.GeoJson(
                data.to_json(default=str),
                name=spec.name,
                style_function=style_fn,
                highlight_function=lambda _: {"weight": 2, "color": "#000000"},
                popup=folium.GeoJsonPopup(fields=[popup_column], labels=False),
            ).add_to(feature_group)
        feature_group.add_to(m)

        position = spec.legend_position or LEGEND_POSITIONS[index % len(LEGEND_POSITIONS)]
        legend = GroupLegend(palette, spec.name, position=position, visible=visible)
        legend.add_to(m)

        return LayerGroup(
            spec=spec,
            palette=palette,
            feature_group=feature_group,
            legend=legend
        )


def render_interactive(
    table: JoinedMapTable,
    layers: Sequence[Union[LayerSpec, Tuple[str, str]]],
    tiles: Optional[str] = None,
    save_path: Optional[str] = None
) -> InteractiveMap:
    """Convenience function to render and optionally save an interactive map.

    Example:
        >>> interactive = render_interactive(
        ...     to_geographic(glasgow),
        ...     [("SIMD2020v2_Quintile", "Quintile"), ("SIMD2020v2_Decile", "Decile")]
        ... )
        >>> interactive.select("Decile")
    """
    interactive = InteractiveRenderer().render(table, layers, tiles=tiles)
    if save_path:
        interactive.save(save_path)
    return interactive
