"""
Attribute join and filtering of region and measurement tables.

The join is a left join keyed on the region identifier. Only a frame with
geometry on the left-hand side keeps its GeoDataFrame type through a merge;
with the operands reversed pandas returns a plain DataFrame whose geometry is
an inert column that cannot be plotted. ``join`` therefore takes the region
table as its first argument and checks the result before returning it.
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, List, Optional

import geopandas as gpd
import pandas as pd

from areamap.datasource import MeasurementTable, RegionTable
from areamap.errors import (
    DuplicateKeyWarning,
    JoinKeyMismatch,
    OrderViolation,
    ProjectionError,
)

logger = logging.getLogger(__name__)

GEOGRAPHIC_CRS = "EPSG:4326"

MEASUREMENT_SUFFIX = "_measurement"


@dataclass(frozen=True)
class JoinedMapTable:
    """Regions with their measurements attached.

    Attributes:
        data: GeoDataFrame with one row per region
        id_column: Column name for region identifiers
        value_columns: Measurement columns carried over from the join
    """
    data: gpd.GeoDataFrame
    id_column: str
    value_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        assert_spatial(self.data)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def crs(self):
        return self.data.crs

    @property
    def ids(self) -> List[str]:
        return self.data[self.id_column].tolist()

    def values(self, column: str) -> pd.Series:
        return self.data[column]


def assert_spatial(frame: Any) -> None:
    """Raise OrderViolation unless frame is a GeoDataFrame with active geometry."""
    if not isinstance(frame, gpd.GeoDataFrame):
        raise OrderViolation(
            f"Join result is a {type(frame).__name__}, not a GeoDataFrame; "
            "the region table must be the left operand of the join"
        )
    try:
        frame.geometry
    except AttributeError as exc:
        raise OrderViolation(
            "Join result has no active geometry column"
        ) from exc


def merge_on_key(
    left: pd.DataFrame,
    right: pd.DataFrame,
    key: str
) -> pd.DataFrame:
    """Left-merge two frames on key.

    The result type follows the left operand: a GeoDataFrame on the left
    gives a GeoDataFrame, a plain DataFrame on the left gives a DataFrame.
    """
    left = left.copy()
    right = right.copy()
    left[key] = left[key].astype(str)
    right[key] = right[key].astype(str)
    return left.merge(right, on=key, how="left", sort=False)


def join(regions: RegionTable, measurements: MeasurementTable) -> JoinedMapTable:
    """Attach measurements to regions with a left join.

    Args:
        regions: Region table, always the left operand
        measurements: Measurement table keyed by the same identifier

    Returns:
        JoinedMapTable with one row per region, in region order

    Raises:
        OrderViolation: If the operands are swapped, a measurement column
            is already a region attribute, or the result lost its
            geometry typing
    """
    if not isinstance(regions, RegionTable):
        raise OrderViolation(
            f"join() expects a RegionTable as its first argument, "
            f"got {type(regions).__name__}"
        )
    if not isinstance(measurements, MeasurementTable):
        raise OrderViolation(
            f"join() expects a MeasurementTable as its second argument, "
            f"got {type(measurements).__name__}"
        )

    key = regions.id_column
    if measurements.id_column != key:
        raise OrderViolation(
            f"Join key mismatch: regions use '{key}', measurements use "
            f"'{measurements.id_column}'; rename the measurement key on load"
        )

    right = _deduplicate(measurements.data, key)

    if len(regions) and len(right):
        overlap = set(regions.data[key].astype(str)) & set(right[key].astype(str))
        if not overlap:
            message = (
                f"No identifiers in '{key}' overlap between regions and "
                "measurements; check the key column naming"
            )
            logger.warning(message)
            warnings.warn(message, JoinKeyMismatch, stacklevel=2)

    value_columns = [c for c in measurements.value_columns if c != key]
    clashes = [
        c for c in right.columns
        if c != key and c in regions.data.columns
    ]
    shadowed = [c for c in clashes if c in value_columns]
    if shadowed:
        raise OrderViolation(
            f"Measurement columns {shadowed} also exist on the regions; "
            "rename them on one side before joining"
        )
    if clashes:
        right = right.rename(columns={c: f"{c}{MEASUREMENT_SUFFIX}" for c in clashes})
        logger.warning(
            "Measurement attributes already on regions were suffixed with '%s': %s",
            MEASUREMENT_SUFFIX, clashes
        )

    merged = merge_on_key(regions.data, right, key)
    assert_spatial(merged)
    merged.index = regions.data.index

    matched = merged[value_columns].notna().any(axis=1).sum() if value_columns else 0
    logger.info(
        "Joined %d regions with %d measurement rows (%d matched)",
        len(merged), len(right), matched
    )
    return JoinedMapTable(data=merged, id_column=key, value_columns=value_columns)


def _deduplicate(df: pd.DataFrame, key: str) -> pd.DataFrame:
    """Keep the first row per key, warning about any repeats."""
    duplicated = df[key].duplicated(keep="first")
    if duplicated.any():
        repeated = df.loc[duplicated, key].unique().tolist()
        message = (
            f"Measurement identifiers repeat in '{key}': {repeated[:10]}; "
            "keeping the first row for each"
        )
        logger.warning(message)
        warnings.warn(message, DuplicateKeyWarning, stacklevel=3)
        return df.loc[~duplicated]
    return df


def filter_regions(
    table: JoinedMapTable,
    column: str,
    value: Any
) -> JoinedMapTable:
    """Keep the rows whose column equals value.

    Args:
        table: Joined table to filter
        column: Attribute column to test
        value: Value to match, or a list/tuple/set of accepted values

    Returns:
        JoinedMapTable with the matching rows in their original order

    Raises:
        ValueError: If column does not exist
    """
    if column not in table.data.columns:
        raise ValueError(
            f"Cannot filter on missing column '{column}'. "
            f"Available columns: {list(table.data.columns)}"
        )

    if isinstance(value, (list, tuple, set, frozenset)):
        mask = table.data[column].isin(list(value))
    else:
        mask = table.data[column] == value

    subset = table.data.loc[mask]
    logger.info(
        "Filtered %d of %d regions on %s", len(subset), len(table), column
    )
    return JoinedMapTable(
        data=subset,
        id_column=table.id_column,
        value_columns=list(table.value_columns)
    )


def to_geographic(table: JoinedMapTable) -> JoinedMapTable:
    """Reproject to longitude/latitude (EPSG:4326).

    Raises:
        ProjectionError: If the table has no coordinate reference system
    """
    if table.crs is None:
        raise ProjectionError(
            "Cannot reproject regions without a coordinate reference system"
        )
    return JoinedMapTable(
        data=table.data.to_crs(GEOGRAPHIC_CRS),
        id_column=table.id_column,
        value_columns=list(table.value_columns)
    )


def require_geographic(table: JoinedMapTable) -> None:
    """Raise ProjectionError unless the table is in a geographic CRS."""
    if table.crs is None:
        raise ProjectionError(
            "Regions have no coordinate reference system; "
            "reproject with to_geographic() before rendering"
        )
    if not table.crs.is_geographic:
        raise ProjectionError(
            f"Regions use projected CRS {table.crs.to_string()}; "
            "reproject with to_geographic() before rendering"
        )


def region_bounds(table: JoinedMapTable) -> Optional[List[List[float]]]:
    """[[south, west], [north, east]] of the table, or None when empty."""
    if len(table) == 0:
        return None
    minx, miny, maxx, maxy = table.data.total_bounds
    return [[float(miny), float(minx)], [float(maxy), float(maxx)]]
