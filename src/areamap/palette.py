"""
Continuous colour palettes bound to a measurement column's observed range.

A Palette is built once per column from that column's own min/max, so two
layers never share a colour domain. Calling a palette maps a value to a hex
colour; null values map to the palette's missing colour.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

import matplotlib
import matplotlib.colors as mcolors
import numpy as np
import pandas as pd
from branca.colormap import LinearColormap
from matplotlib.cm import ScalarMappable


class ColorScale(Enum):
    """Pre-defined color scales for map visualization."""
    VIRIDIS = "viridis"
    PLASMA = "plasma"
    INFERNO = "inferno"
    MAGMA = "magma"
    CIVIDIS = "cividis"
    BLUES = "Blues"
    GREENS = "Greens"
    REDS = "Reds"
    PURPLES = "Purples"
    YELLOW_GREEN_BLUE = "YlGnBu"
    YELLOW_ORANGE_RED = "YlOrRd"
    RED_YELLOW_GREEN = "RdYlGn"
    SPECTRAL = "Spectral"


def colormap_name(colormap: Union[str, ColorScale]) -> str:
    """Get the colormap name as a string."""
    if isinstance(colormap, ColorScale):
        return colormap.value
    return colormap


@dataclass(frozen=True)
class Palette:
    """Maps numeric values in [vmin, vmax] onto a named colormap.

    Attributes:
        colormap: Matplotlib colormap name
        vmin: Lower bound of the observed data range
        vmax: Upper bound of the observed data range
        missing_color: Color returned for null values
        label: Display name used for legends
    """
    colormap: str
    vmin: float
    vmax: float
    missing_color: str = "lightgrey"
    label: Optional[str] = None

    def __post_init__(self):
        if self.colormap not in matplotlib.colormaps:
            raise ValueError(f"Unknown colormap '{self.colormap}'")
        if self.vmin > self.vmax:
            raise ValueError(f"Palette domain is inverted: {self.vmin} > {self.vmax}")

    @classmethod
    def from_values(
        cls,
        values: Iterable,
        colormap: Union[str, ColorScale] = ColorScale.VIRIDIS,
        missing_color: str = "lightgrey",
        label: Optional[str] = None
    ) -> "Palette":
        """Build a palette whose domain is the observed range of values.

        An all-null column falls back to the unit interval.
        """
        series = pd.to_numeric(pd.Series(list(values), dtype=object), errors="coerce").dropna()
        if series.empty:
            vmin, vmax = 0.0, 1.0
        else:
            vmin, vmax = float(series.min()), float(series.max())
        return cls(
            colormap=colormap_name(colormap),
            vmin=vmin,
            vmax=vmax,
            missing_color=missing_color,
            label=label
        )

    @property
    def domain(self) -> Tuple[float, float]:
        return (self.vmin, self.vmax)

    @property
    def norm(self) -> mcolors.Normalize:
        return mcolors.Normalize(vmin=self.vmin, vmax=self.vmax)

    @property
    def cmap(self) -> mcolors.Colormap:
        return matplotlib.colormaps[self.colormap]

    def is_missing(self, value) -> bool:
        if value is None:
            return True
        try:
            return bool(np.isnan(float(value)))
        except (TypeError, ValueError):
            return True

    def __call__(self, value) -> str:
        """Return the hex colour for value."""
        if self.is_missing(value):
            return mcolors.to_hex(self.missing_color)
        return mcolors.to_hex(self.cmap(self.norm(float(value))))

    def colors(self, values: Iterable) -> List[str]:
        return [self(v) for v in values]

    def stops(self, n: int = 6) -> List[str]:
        """Evenly spaced colours from the low to the high end of the scale."""
        return [mcolors.to_hex(self.cmap(x)) for x in np.linspace(0.0, 1.0, n)]

    def scalar_mappable(self) -> ScalarMappable:
        """ScalarMappable for drawing a matplotlib colorbar."""
        mappable = ScalarMappable(norm=self.norm, cmap=self.cmap)
        mappable.set_array([])
        return mappable

    def to_branca(self, n: int = 6) -> LinearColormap:
        """Equivalent branca colormap for folium legends."""
        vmax = self.vmax if self.vmax > self.vmin else self.vmin + 1.0
        return LinearColormap(
            self.stops(n),
            vmin=self.vmin,
            vmax=vmax,
            caption=self.label or ""
        )
