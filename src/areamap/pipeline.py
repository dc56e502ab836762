"""
End-to-end choropleth workflow.

ChoroplethMapper chains the pipeline stages: load boundaries and
measurements, join them, restrict to an area, then render.

Example usage:
    >>> from areamap.pipeline import ChoroplethMapper
    >>>
    >>> mapper = ChoroplethMapper()
    >>> mapper.load_boundaries_from_config("datazones")
    >>> mapper.load_measurements_from_config("simd")
    >>> mapper.join().filter("Council_area", "Glasgow City")
    >>> static = mapper.render_static("SIMD2020v2_Quintile", legend_label="Quintile")
    >>> interactive = mapper.render_interactive(
    ...     [("SIMD2020v2_Quintile", "Quintile"), ("SIMD2020v2_Decile", "Decile")]
    ... )
"""

import logging
from typing import Any, Optional, Sequence, Tuple, Union

from areamap.config import Settings, get_dataset_config, settings as default_settings
from areamap.datasource import (
    BoundaryDataSource,
    DatasetConfig,
    MeasurementTable,
    RegionTable,
    ValueDataSource,
)
from areamap.interactive import InteractiveMap, InteractiveRenderer, LayerSpec
from areamap.spatial_ops import JoinedMapTable, filter_regions, join, to_geographic
from areamap.visualizer import MapStyle, MapVisualizer, StaticMap

logger = logging.getLogger(__name__)


class ChoroplethMapper:
    """Runs the load, join, filter and render stages in order.

    Attributes:
        regions: Loaded boundary table
        measurements: Loaded measurement table
        joined: Join result, replaced by the filtered table after filter()
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.regions: Optional[RegionTable] = None
        self.measurements: Optional[MeasurementTable] = None
        self.joined: Optional[JoinedMapTable] = None

    def load_boundaries(
        self,
        path: str,
        id_column: str,
        layer: Optional[str] = None
    ) -> "ChoroplethMapper":
        """Load region boundaries.

        Returns:
            Self for method chaining
        """
        self.regions = BoundaryDataSource(path, id_column, layer=layer).load()
        return self

    def load_boundaries_from_config(self, config: Union[str, DatasetConfig]) -> "ChoroplethMapper":
        if isinstance(config, str):
            config = get_dataset_config(config)
        self.regions = BoundaryDataSource(config).load()
        return self

    def load_measurements(
        self,
        path: str,
        id_column: str,
        value_columns: Optional[Sequence[str]] = None,
        rename_to: Optional[str] = None
    ) -> "ChoroplethMapper":
        """Load measurements, renaming the key to the boundary identifier.

        When rename_to is omitted and boundaries are already loaded, the
        boundary identifier name is used.
        """
        if rename_to is None and self.regions is not None:
            rename_to = self.regions.id_column
        self.measurements = ValueDataSource(
            path,
            id_column,
            value_columns=value_columns,
            rename_to=rename_to
        ).load()
        return self

    def load_measurements_from_config(self, config: Union[str, DatasetConfig]) -> "ChoroplethMapper":
        if isinstance(config, str):
            config = get_dataset_config(config)
        self.measurements = ValueDataSource(config).load()
        return self

    def join(self) -> "ChoroplethMapper":
        """Left-join measurements onto the regions.

        Raises:
            ValueError: If either table has not been loaded
        """
        if self.regions is None:
            raise ValueError("Boundaries not loaded. Call load_boundaries() first.")
        if self.measurements is None:
            raise ValueError("Measurements not loaded. Call load_measurements() first.")
        self.joined = join(self.regions, self.measurements)
        return self

    def filter(self, column: str, value: Any) -> "ChoroplethMapper":
        """Restrict the joined table to rows where column equals value."""
        self.joined = filter_regions(self._require_joined(), column, value)
        return self

    def render_static(
        self,
        value_column: str,
        title: Optional[str] = None,
        legend_label: Optional[str] = None,
        border_column: Optional[str] = None,
        style: Optional[MapStyle] = None,
        save_path: Optional[str] = None
    ) -> StaticMap:
        """Render a static choropleth, saving it only once fully drawn."""
        viz = MapVisualizer(settings=self.settings)
        if style is None:
            static = viz.choropleth(
                self._require_joined(),
                value_column,
                title=title,
                legend_label=legend_label,
                border_column=border_column
            )
        else:
            static = viz.plot(self._require_joined(), value_column, style, border_column=border_column)
        if save_path:
            static.save(save_path)
        return static

    def render_interactive(
        self,
        layers: Sequence[Union[LayerSpec, Tuple[str, str]]],
        save_path: Optional[str] = None
    ) -> InteractiveMap:
        """Reproject to longitude/latitude and render the layered map."""
        table = to_geographic(self._require_joined())
        interactive = InteractiveRenderer(self.settings).render(table, layers)
        if save_path:
            interactive.save(save_path)
        return interactive

    def _require_joined(self) -> JoinedMapTable:
        if self.joined is None:
            raise ValueError("Tables not joined. Call join() first.")
        return self.joined
