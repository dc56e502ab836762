"""
Static choropleth rendering for joined region tables.

This module draws one polygon per region with matplotlib, filling each from a
continuous palette over a measurement column, and can convert the result into
a single-layer interactive map with hover tooltips.
"""

import base64
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import folium
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from areamap.config import Settings, settings as default_settings
from areamap.palette import ColorScale, Palette, colormap_name
from areamap.spatial_ops import JoinedMapTable

logger = logging.getLogger(__name__)


@dataclass
class MapStyle:
    """Configuration for map styling.

    Attributes:
        colormap: Color scale for the fill column
        border_colormap: Color scale for the border column, if one is used
        edge_color: Polygon border color when no border column is given
        edge_width: Width of polygon boundaries
        alpha: Transparency (0-1)
        missing_color: Fill for regions with no data
        figsize: Figure size in inches (width, height)
        title: Map title
        legend: Whether to show the colorbar legend
        legend_label: Label for the colorbar
    """
    colormap: Union[str, ColorScale] = ColorScale.VIRIDIS
    border_colormap: Union[str, ColorScale] = ColorScale.REDS
    edge_color: str = "black"
    edge_width: float = 0.5
    alpha: float = 1.0
    missing_color: str = "lightgrey"
    figsize: Tuple[int, int] = (12, 8)
    title: Optional[str] = None
    legend: bool = True
    legend_label: Optional[str] = None

    def get_colormap_name(self) -> str:
        return colormap_name(self.colormap)


def tooltip_columns(
    id_column: str,
    value_column: str,
    border_column: Optional[str] = None,
    extra: Optional[Sequence[str]] = None
) -> List[str]:
    """Ordered tooltip fields with each column listed once.

    Fill and border may share a column; it is shown a single time.
    """
    columns: List[str] = []
    for column in [id_column, value_column, border_column, *(extra or [])]:
        if column and column not in columns:
            columns.append(column)
    return columns


@dataclass
class StaticMap:
    """A rendered static choropleth.

    Attributes:
        figure: Matplotlib figure holding the map
        axes: Axes the polygons were drawn on
        table: Table that was rendered
        value_column: Column driving the fill color
        palette: Fill palette
        border_column: Column driving the border color, if any
        border_palette: Border palette, if any
    """
    figure: Figure
    axes: Axes
    table: JoinedMapTable
    value_column: str
    palette: Palette
    border_column: Optional[str] = None
    border_palette: Optional[Palette] = None
    legends: List[str] = field(default_factory=list)

    @property
    def polygon_count(self) -> int:
        if not self.axes.collections:
            return 0
        return len(self.axes.collections[0].get_paths())

    def fill_colors(self) -> List[str]:
        return self.palette.colors(self.table.data[self.value_column])

    def save(self, filepath: Union[str, Path], dpi: int = 150, **kwargs):
        """Save the figure, creating the parent directory if needed."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.figure.savefig(path, dpi=dpi, bbox_inches="tight", **kwargs)
        logger.info("Wrote static map to %s", path)

    def to_bytes(self, format: str = "png", dpi: int = 150) -> bytes:
        buffer = io.BytesIO()
        self.figure.savefig(buffer, format=format, dpi=dpi, bbox_inches="tight")
        return buffer.getvalue()

    def to_data_uri(self, format: str = "png", dpi: int = 100) -> str:
        mime = "image/svg+xml" if format == "svg" else f"image/{format}"
        encoded = base64.b64encode(self.to_bytes(format, dpi)).decode("ascii")
        return f"data:{mime};base64,{encoded}"

    def to_interactive(
        self,
        tooltip: Optional[Sequence[str]] = None,
        tiles: Optional[str] = None
    ) -> folium.Map:
        """Convert to a single-layer interactive map with hover tooltips.

        Args:
            tooltip: Extra columns to list after the identifier and value
            tiles: Tile layer name; defaults to the configured tiles
        """
        return explore(
            self.table,
            self.value_column,
            palette=self.palette,
            border_column=self.border_column,
            border_palette=self.border_palette,
            tooltip=tooltip,
            tiles=tiles or default_settings.tiles
        )

    def close(self):
        plt.close(self.figure)


class MapVisualizer:
    """Creates static choropleth maps from joined region tables."""

    def __init__(
        self,
        style: Optional[MapStyle] = None,
        settings: Optional[Settings] = None
    ):
        """Initialize the visualizer.

        Args:
            style: Default style settings for maps
            settings: Runtime settings supplying colormap and missing color
        """
        self.settings = settings or default_settings
        self.default_style = style or MapStyle(
            colormap=self.settings.colormap,
            missing_color=self.settings.missing_color
        )

    def plot(
        self,
        table: JoinedMapTable,
        value_column: str,
        style: Optional[MapStyle] = None,
        border_column: Optional[str] = None,
        ax: Optional[Axes] = None
    ) -> StaticMap:
        """Draw the table as a choropleth.

        Regions with a null value are filled with the missing color,
        never dropped.

        Args:
            table: Joined table to draw
            value_column: Column mapped onto the fill color
            style: Styling options
            border_column: Optional column mapped onto the border color
            ax: Existing axes to plot on (creates new if None)

        Returns:
            StaticMap wrapping the figure and palettes
        """
        style = style or self.default_style
        for column in filter(None, (value_column, border_column)):
            if column not in table.data.columns:
                raise ValueError(
                    f"Column '{column}' not in table. "
                    f"Available columns: {list(table.data.columns)}"
                )

        label = style.legend_label or value_column
        palette = Palette.from_values(
            table.data[value_column],
            colormap=style.get_colormap_name(),
            missing_color=style.missing_color,
            label=label
        )

        border_palette = None
        if border_column == value_column:
            border_palette = palette
        elif border_column is not None:
            border_palette = Palette.from_values(
                table.data[border_column],
                colormap=colormap_name(style.border_colormap),
                missing_color=style.edge_color,
                label=border_column
            )

        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=style.figsize)
        else:
            fig = ax.get_figure()

        plot_kwargs: Dict[str, Any] = {
            "ax": ax,
            "color": palette.colors(table.data[value_column]),
            "linewidth": style.edge_width,
            "alpha": style.alpha,
        }
        if border_palette is not None:
            plot_kwargs["edgecolor"] = border_palette.colors(table.data[border_column])
        else:
            plot_kwargs["edgecolor"] = style.edge_color

        if len(table):
            table.data.plot(**plot_kwargs)

        legends: List[str] = []
        if style.legend:
            fig.colorbar(palette.scalar_mappable(), ax=ax, label=label, shrink=0.7)
            legends.append(label)
            if border_palette is not None and border_palette is not palette:
                fig.colorbar(
                    border_palette.scalar_mappable(),
                    ax=ax,
                    label=border_palette.label,
                    shrink=0.7
                )
                legends.append(border_palette.label)
            if table.data[value_column].isna().any():
                ax.legend(
                    handles=[Patch(facecolor=style.missing_color, edgecolor=style.edge_color, label="No data")],
                    loc="lower left"
                )

        if style.title:
            ax.set_title(style.title, fontsize=14, fontweight='bold')

        ax.set_axis_off()
        logger.debug("Rendered %d regions for %s", len(table), value_column)

        return StaticMap(
            figure=fig,
            axes=ax,
            table=table,
            value_column=value_column,
            palette=palette,
            border_column=border_column,
            border_palette=border_palette,
            legends=legends
        )

    def choropleth(
        self,
        table: JoinedMapTable,
        value_column: str,
        title: Optional[str] = None,
        colormap: Union[str, ColorScale, None] = None,
        legend_label: Optional[str] = None,
        border_column: Optional[str] = None,
        figsize: Tuple[int, int] = (12, 8)
    ) -> StaticMap:
        """Create a choropleth map with minimal configuration.

        Example:
            >>> viz = MapVisualizer()
            >>> static = viz.choropleth(
            ...     glasgow,
            ...     value_column="SIMD2020v2_Quintile",
            ...     title="Deprivation in Glasgow",
            ...     legend_label="Quintile"
            ... )
        """
        style = MapStyle(
            colormap=colormap or self.settings.colormap,
            missing_color=self.settings.missing_color,
            title=title,
            legend_label=legend_label or value_column,
            figsize=figsize
        )
        return self.plot(table, value_column, style, border_column=border_column)


def explore(
    table: JoinedMapTable,
    value_column: str,
    palette: Optional[Palette] = None,
    border_column: Optional[str] = None,
    border_palette: Optional[Palette] = None,
    tooltip: Optional[Sequence[str]] = None,
    tiles: Optional[str] = None
) -> folium.Map:
    """Single-layer interactive choropleth with a hover tooltip.

    The tooltip lists the identifier and value column first; a column used
    for both fill and border is listed once.
    """
    palette = palette or Palette.from_values(table.data[value_column], label=value_column)
    fields = tooltip_columns(table.id_column, value_column, border_column, tooltip)

    style_kwds: Dict[str, Any] = {"weight": 1}
    if border_column is not None:
        border_palette = border_palette or Palette.from_values(table.data[border_column])

        def border_style(feature):
            return {"color": border_palette(feature["properties"].get(border_column))}

        style_kwds["style_function"] = border_style

    return table.data.explore(
        column=value_column,
        cmap=palette.colormap,
        vmin=palette.vmin,
        vmax=palette.vmax if palette.vmax > palette.vmin else palette.vmin + 1,
        tooltip=fields,
        tiles=tiles or default_settings.tiles,
        legend=True,
        legend_kwds={"caption": palette.label or value_column},
        missing_kwds={"color": palette.missing_color},
        style_kwds=style_kwds,
    )


def plot_map(
    table: JoinedMapTable,
    value_column: str,
    title: Optional[str] = None,
    colormap: str = "viridis",
    legend_label: Optional[str] = None,
    border_column: Optional[str] = None,
    figsize: Tuple[int, int] = (12, 8),
    save_path: Optional[str] = None
) -> StaticMap:
    """Convenience function to quickly plot a choropleth map.

    The figure is only written to save_path once it is fully drawn.
    """
    viz = MapVisualizer()
    static = viz.choropleth(
        table,
        value_column=value_column,
        title=title,
        colormap=colormap,
        legend_label=legend_label,
        border_column=border_column,
        figsize=figsize
    )

    if save_path:
        static.save(save_path)

    return static


def compare_maps(
    table: JoinedMapTable,
    columns: Sequence[Tuple[str, str]],
    ncols: int = 2,
    figsize: Optional[Tuple[int, int]] = None,
    colormap: str = "viridis"
) -> Tuple[Figure, List[StaticMap]]:
    """Draw one panel per measurement column, each with its own palette.

    Args:
        table: Joined table to draw
        columns: (value_column, title) pairs
        ncols: Number of columns in the grid
        figsize: Figure size (auto-calculated if None)
        colormap: Colormap shared by name; each domain is per column

    Example:
        >>> fig, panels = compare_maps(
        ...     glasgow,
        ...     [("SIMD2020v2_Quintile", "Quintile"), ("SIMD2020v2_Decile", "Decile")]
        ... )
    """
    n = len(columns)
    nrows = (n + ncols - 1) // ncols

    if figsize is None:
        figsize = (6 * ncols, 5 * nrows)

    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, squeeze=False)
    axes = axes.flatten()

    viz = MapVisualizer()
    panels = []
    for i, (value_col, title) in enumerate(columns):
        style = MapStyle(
            colormap=colormap,
            title=title,
            legend_label=title,
            figsize=figsize
        )
        panels.append(viz.plot(table, value_col, style, ax=axes[i]))

    # Hide unused axes
    for i in range(n, len(axes)):
        axes[i].set_visible(False)

    plt.tight_layout()
    return fig, panels
