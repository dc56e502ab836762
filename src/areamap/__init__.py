"""
Areal choropleth pipeline.

Load region boundaries and a per-region measurement table, join them with
the boundaries as the left operand, filter to an area of interest and render
static or interactive choropleth maps.

Modules:
    datasource: Boundary and measurement loaders
    spatial_ops: Join, filter and reprojection of region tables
    palette: Per-column continuous colour palettes
    visualizer: Static choropleth rendering
    interactive: Multi-layer interactive maps with exclusive layer toggling
    pipeline: End-to-end ChoroplethMapper
    config: Dataset presets and runtime settings

Example:
    >>> from areamap import load_boundaries, load_measurements, join, filter_regions, plot_map
    >>>
    >>> zones = load_boundaries("data/SG_DataZone_Bdry_2011.shp", "DataZone")
    >>> simd = load_measurements(
    ...     "data/SIMD2020v2_ranks.csv",
    ...     id_column="Data_Zone",
    ...     value_columns=["SIMD2020v2_Quintile"],
    ...     rename_to="DataZone"
    ... )
    >>> glasgow = filter_regions(join(zones, simd), "Council_area", "Glasgow City")
    >>> static = plot_map(glasgow, "SIMD2020v2_Quintile", legend_label="Quintile")
"""

from areamap.errors import (
    PipelineError,
    LoadError,
    OrderViolation,
    ProjectionError,
    JoinKeyMismatch,
    DuplicateKeyWarning,
)

from areamap.datasource import (
    DatasetConfig,
    DataSource,
    BoundaryDataSource,
    ValueDataSource,
    RegionTable,
    MeasurementTable,
    load_boundaries,
    load_measurements,
)

from areamap.spatial_ops import (
    JoinedMapTable,
    join,
    merge_on_key,
    filter_regions,
    to_geographic,
)

from areamap.palette import (
    ColorScale,
    Palette,
)

from areamap.visualizer import (
    MapStyle,
    MapVisualizer,
    StaticMap,
    plot_map,
    compare_maps,
)

from areamap.interactive import (
    LayerSpec,
    LayerToggle,
    InteractiveMap,
    InteractiveRenderer,
    render_interactive,
)

from areamap.pipeline import ChoroplethMapper

from areamap.config import (
    DatasetRegistry,
    Settings,
    registry,
    get_dataset_config,
    register_dataset,
    list_datasets,
    DATAZONES_2011,
    SIMD_2020V2,
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "PipelineError",
    "LoadError",
    "OrderViolation",
    "ProjectionError",
    "JoinKeyMismatch",
    "DuplicateKeyWarning",
    # Data loading
    "DatasetConfig",
    "DataSource",
    "BoundaryDataSource",
    "ValueDataSource",
    "RegionTable",
    "MeasurementTable",
    "load_boundaries",
    "load_measurements",
    # Join and filter
    "JoinedMapTable",
    "join",
    "merge_on_key",
    "filter_regions",
    "to_geographic",
    # Visualization
    "ColorScale",
    "Palette",
    "MapStyle",
    "MapVisualizer",
    "StaticMap",
    "plot_map",
    "compare_maps",
    "LayerSpec",
    "LayerToggle",
    "InteractiveMap",
    "InteractiveRenderer",
    "render_interactive",
    "ChoroplethMapper",
    # Configuration
    "DatasetRegistry",
    "Settings",
    "registry",
    "get_dataset_config",
    "register_dataset",
    "list_datasets",
    "DATAZONES_2011",
    "SIMD_2020V2",
]
