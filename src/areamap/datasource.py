"""
Data source abstraction for loading boundary and measurement datasets.

Boundaries are read into a RegionTable (a GeoDataFrame with one polygon per
region), measurements into a MeasurementTable (a plain DataFrame keyed by the
same identifiers). Both are validated on load so the later join stage can rely
on unique identifiers and present geometries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

import fiona
import geopandas as gpd
import pandas as pd

from areamap.errors import LoadError

logger = logging.getLogger(__name__)

# Files that must sit next to a .shp for it to be readable
SHAPEFILE_SIDECARS = (".shx", ".dbf")

TABULAR_DELIMITERS = {
    ".csv": ",",
    ".tsv": "\t",
    ".txt": None,
}


@dataclass
class DatasetConfig:
    """Configuration for a boundary or measurement dataset.

    Attributes:
        path: Path to the data file
        id_column: Column name containing unique region identifiers
        value_columns: Measurement columns to load (empty for boundaries)
        rename_to: Name the identifier column is renamed to after loading
        layer: Layer name for multi-layer formats like GeoDatabase
        name: Human-readable name for the dataset
    """
    path: str
    id_column: str
    value_columns: List[str] = field(default_factory=list)
    rename_to: Optional[str] = None
    layer: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.name is None:
            self.name = Path(self.path).stem

    @property
    def key_column(self) -> str:
        """Identifier column name as exposed after loading."""
        return self.rename_to or self.id_column


@dataclass(frozen=True)
class RegionTable:
    """Boundary regions, one geometry per unique identifier."""
    data: gpd.GeoDataFrame
    id_column: str

    def __post_init__(self):
        if not isinstance(self.data, gpd.GeoDataFrame):
            raise TypeError(
                f"RegionTable requires a GeoDataFrame, got {type(self.data).__name__}"
            )

    def __len__(self) -> int:
        return len(self.data)

    @property
    def crs(self):
        return self.data.crs

    @property
    def ids(self) -> List[str]:
        return self.data[self.id_column].tolist()


@dataclass(frozen=True)
class MeasurementTable:
    """Per-region measurements keyed by the region identifier."""
    data: pd.DataFrame
    id_column: str
    value_columns: List[str] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.data, gpd.GeoDataFrame):
            raise TypeError(
                "MeasurementTable holds tabular data only; "
                "geometry-bearing frames belong in a RegionTable"
            )

    def __len__(self) -> int:
        return len(self.data)

    @property
    def ids(self) -> List[str]:
        return self.data[self.id_column].tolist()


class DataSource(ABC):
    """Abstract base class for pipeline data sources."""

    @abstractmethod
    def load(self):
        """Load and return the validated table."""
        pass

    @abstractmethod
    def get_config(self) -> DatasetConfig:
        """Return the dataset configuration."""
        pass


class BoundaryDataSource(DataSource):
    """Loads region boundaries from a shapefile set or other vector format.

    Supports:
    - Shapefile (.shp with .shx and .dbf alongside)
    - GeoDatabase (.gdb, layer selected via fiona)
    - GeoJSON, GeoPackage and other formats readable by GeoPandas
    """

    def __init__(
        self,
        path: Union[str, DatasetConfig],
        id_column: Optional[str] = None,
        name: Optional[str] = None,
        layer: Optional[str] = None
    ):
        """Initialize boundary data source.

        Args:
            path: Path to the boundary file, or a complete DatasetConfig
            id_column: Column containing region identifiers
            name: Human-readable name for the dataset
            layer: Layer name for multi-layer formats
        """
        if isinstance(path, DatasetConfig):
            self.config = path
        else:
            if id_column is None:
                raise ValueError("id_column is required when passing a path")
            self.config = DatasetConfig(
                path=path,
                id_column=id_column,
                layer=layer,
                name=name or "Boundaries"
            )
        self._table: Optional[RegionTable] = None

    def load(self) -> RegionTable:
        """Read and validate the boundaries.

        Returns:
            RegionTable with string identifiers and non-null geometries

        Raises:
            LoadError: If files are missing or unreadable, the identifier
                column is absent or not unique, or a geometry is null
        """
        if self._table is not None:
            return self._table

        path = Path(self.config.path)
        if not path.exists():
            raise LoadError(f"Boundary file not found: {path}")

        if path.suffix.lower() == ".shp":
            self._check_sidecars(path)

        try:
            if path.suffix.lower() == ".gdb":
                gdf = self._load_geodatabase(path)
            else:
                gdf = gpd.read_file(str(path))
        except LoadError:
            raise
        except (fiona.errors.FionaError, OSError, RuntimeError, ValueError) as exc:
            raise LoadError(f"Could not read boundaries from {path}: {exc}") from exc

        self._table = self._validate(gdf)
        logger.info(
            "Loaded %d regions from %s (crs=%s)",
            len(self._table), path, gdf.crs
        )
        return self._table

    def _check_sidecars(self, path: Path):
        """Ensure the index and attribute files linked to a .shp exist."""
        missing = [
            path.with_suffix(suffix).name
            for suffix in SHAPEFILE_SIDECARS
            if not path.with_suffix(suffix).exists()
            and not path.with_suffix(suffix.upper()).exists()
        ]
        if missing:
            raise LoadError(
                f"Shapefile {path.name} is missing linked files: {missing}"
            )

    def _load_geodatabase(self, path: Path) -> gpd.GeoDataFrame:
        available_layers = fiona.listlayers(str(path))

        layer = self.config.layer
        if layer is None:
            if len(available_layers) == 1:
                layer = available_layers[0]
            else:
                raise LoadError(
                    f"GeoDatabase has multiple layers: {available_layers}. "
                    "Please specify a layer in the config."
                )

        if layer not in available_layers:
            raise LoadError(
                f"Layer '{layer}' not found. "
                f"Available layers: {available_layers}"
            )

        return gpd.read_file(str(path), layer=layer)

    def _validate(self, gdf: gpd.GeoDataFrame) -> RegionTable:
        id_col = self.config.id_column
        if id_col not in gdf.columns:
            raise LoadError(
                f"Missing id_column '{id_col}' in boundaries. "
                f"Available columns: {list(gdf.columns)}"
            )

        gdf = gdf.copy()
        gdf[id_col] = gdf[id_col].astype(str)

        duplicated = gdf[id_col][gdf[id_col].duplicated()].unique().tolist()
        if duplicated:
            raise LoadError(
                f"Region identifiers in '{id_col}' are not unique: {duplicated[:10]}"
            )

        null_geom = gdf.geometry.isna() | gdf.geometry.is_empty
        if null_geom.any():
            bad = gdf.loc[null_geom, id_col].tolist()
            raise LoadError(f"Regions without a boundary geometry: {bad[:10]}")

        if self.config.rename_to and self.config.rename_to != id_col:
            gdf = gdf.rename(columns={id_col: self.config.rename_to})

        return RegionTable(data=gdf, id_column=self.config.key_column)

    def get_config(self) -> DatasetConfig:
        """Return the dataset configuration."""
        return self.config

    def list_layers(self) -> List[str]:
        """List available layers for GeoDatabase files.

        Returns:
            List of layer names, or empty list for non-GDB files
        """
        path = Path(self.config.path)
        if path.suffix.lower() == '.gdb':
            return fiona.listlayers(str(path))
        return []


class ValueDataSource(DataSource):
    """Loads a tabular measurement dataset (e.g. deprivation ranks).

    The identifier column is renamed to match the boundary table's
    identifier so that both tables expose the same join key.
    """

    def __init__(
        self,
        path: Union[str, DatasetConfig],
        id_column: Optional[str] = None,
        value_columns: Optional[Sequence[str]] = None,
        rename_to: Optional[str] = None,
        name: Optional[str] = None
    ):
        """Initialize measurement data source.

        Args:
            path: Path to the tabular file, or a complete DatasetConfig
            id_column: Column containing region identifiers in the file
            value_columns: Numeric measurement columns to keep
            rename_to: Boundary identifier name to rename id_column to
            name: Human-readable name for the dataset
        """
        if isinstance(path, DatasetConfig):
            self.config = path
        else:
            if id_column is None:
                raise ValueError("id_column is required when passing a path")
            self.config = DatasetConfig(
                path=path,
                id_column=id_column,
                value_columns=list(value_columns or []),
                rename_to=rename_to,
                name=name or "Measurements"
            )
        self._table: Optional[MeasurementTable] = None

    def load(self) -> MeasurementTable:
        """Read, rename and validate the measurements.

        Raises:
            LoadError: On missing, unreadable or malformed input
        """
        if self._table is not None:
            return self._table

        path = Path(self.config.path)
        if not path.exists():
            raise LoadError(f"Measurement file not found: {path}")

        sep = TABULAR_DELIMITERS.get(path.suffix.lower(), ",")
        try:
            df = pd.read_csv(
                path,
                sep=sep,
                engine="python" if sep is None else "c",
                dtype={self.config.id_column: str},
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as exc:
            raise LoadError(f"Could not read measurements from {path}: {exc}") from exc

        self._table = self._validate(df)
        logger.info(
            "Loaded %d measurement rows from %s (columns=%s)",
            len(self._table), path, self._table.value_columns
        )
        return self._table

    def _validate(self, df: pd.DataFrame) -> MeasurementTable:
        id_col = self.config.id_column
        if id_col not in df.columns:
            raise LoadError(
                f"Missing id_column '{id_col}' in measurements. "
                f"Available columns: {list(df.columns)}"
            )

        value_columns = self.config.value_columns or [
            c for c in df.columns
            if c != id_col and pd.api.types.is_numeric_dtype(df[c])
        ]
        missing = [c for c in value_columns if c not in df.columns]
        if missing:
            raise LoadError(
                f"Missing value columns in measurements: {missing}. "
                f"Available columns: {list(df.columns)}"
            )

        df = df.copy()
        df[id_col] = df[id_col].astype(str)
        for column in value_columns:
            try:
                df[column] = pd.to_numeric(df[column])
            except (TypeError, ValueError) as exc:
                raise LoadError(
                    f"Measurement column '{column}' is not numeric: {exc}"
                ) from exc

        key = self.config.key_column
        if key != id_col:
            if key in df.columns:
                raise LoadError(
                    f"Cannot rename '{id_col}' to '{key}': column already exists"
                )
            df = df.rename(columns={id_col: key})

        return MeasurementTable(data=df, id_column=key, value_columns=list(value_columns))

    def get_config(self) -> DatasetConfig:
        """Return the dataset configuration."""
        return self.config


def load_boundaries(
    path: str,
    id_column: str,
    layer: Optional[str] = None,
    name: Optional[str] = None
) -> RegionTable:
    """Convenience function to load a boundary dataset.

    Example:
        >>> zones = load_boundaries(
        ...     path="data/SG_DataZone_Bdry_2011.shp",
        ...     id_column="DataZone"
        ... )
    """
    return BoundaryDataSource(path, id_column, name=name, layer=layer).load()


def load_measurements(
    path: str,
    id_column: str,
    value_columns: Optional[Sequence[str]] = None,
    rename_to: Optional[str] = None,
    name: Optional[str] = None
) -> MeasurementTable:
    """Convenience function to load a measurement dataset.

    Example:
        >>> simd = load_measurements(
        ...     path="data/SIMD2020v2.csv",
        ...     id_column="Data_Zone",
        ...     value_columns=["SIMD2020v2_Quintile", "SIMD2020v2_Decile"],
        ...     rename_to="DataZone"
        ... )
    """
    return ValueDataSource(
        path,
        id_column,
        value_columns=value_columns,
        rename_to=rename_to,
        name=name
    ).load()
