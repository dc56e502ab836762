"""
Configuration presets and runtime settings.

Dataset presets describe the boundary and measurement files used by the
Scottish Index of Multiple Deprivation walkthrough; runtime settings are read
from ``AREAMAP_*`` environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Dict

from areamap.datasource import DatasetConfig


# 2011 data zone boundaries published by the Scottish Government
DATAZONES_2011 = DatasetConfig(
    path="./data/SG_DataZoneBdry_2011/SG_DataZone_Bdry_2011.shp",
    id_column="DataZone",
    name="Scottish Data Zones (2011)"
)

# SIMD 2020v2 ranks; the key column is renamed to match the boundaries
SIMD_2020V2 = DatasetConfig(
    path="./data/SIMD2020v2_ranks.csv",
    id_column="Data_Zone",
    value_columns=["SIMD2020v2_Quintile", "SIMD2020v2_Decile"],
    rename_to="DataZone",
    name="SIMD 2020v2 Ranks"
)

SIMD_DISPLAY_NAMES = {
    "SIMD2020v2_Quintile": "Quintile",
    "SIMD2020v2_Decile": "Decile",
}


class DatasetRegistry:
    """Registry for managing dataset configurations."""

    def __init__(self):
        """Initialize with pre-defined datasets."""
        self._datasets: Dict[str, DatasetConfig] = {}
        self._load_defaults()

    def _load_defaults(self):
        self.register("datazones", DATAZONES_2011)
        self.register("simd", SIMD_2020V2)
        self.register("simd2020v2", SIMD_2020V2)  # Alias

    def register(self, name: str, config: DatasetConfig):
        """Register a dataset configuration.

        Args:
            name: Unique identifier for the dataset
            config: Dataset configuration
        """
        self._datasets[name.lower()] = config

    def get(self, name: str) -> DatasetConfig:
        """Retrieve a dataset configuration.

        Raises:
            KeyError: If dataset not found
        """
        name = name.lower()
        if name not in self._datasets:
            available = list(self._datasets.keys())
            raise KeyError(
                f"Dataset '{name}' not found. Available datasets: {available}"
            )
        return self._datasets[name]

    def list_datasets(self) -> Dict[str, str]:
        """Map registered dataset names to their descriptions."""
        return {
            name: config.name or config.path
            for name, config in self._datasets.items()
        }


# Global registry instance
registry = DatasetRegistry()


def get_dataset_config(name: str) -> DatasetConfig:
    """Get a dataset configuration from the global registry.

    Example:
        >>> config = get_dataset_config("simd")
        >>> print(config.rename_to)
        DataZone
    """
    return registry.get(name)


def register_dataset(name: str, config: DatasetConfig):
    """Register a dataset in the global registry."""
    registry.register(name, config)


def list_datasets() -> Dict[str, str]:
    """List all datasets in the global registry."""
    return registry.list_datasets()


@dataclass
class Settings:
    """Rendering and runtime settings."""

    tiles: str = field(
        default_factory=lambda: os.getenv("AREAMAP_TILES", "OpenStreetMap")
    )
    colormap: str = field(
        default_factory=lambda: os.getenv("AREAMAP_COLORMAP", "viridis")
    )
    missing_color: str = field(
        default_factory=lambda: os.getenv("AREAMAP_MISSING_COLOR", "lightgrey")
    )
    output_dir: str = field(
        default_factory=lambda: os.getenv("AREAMAP_OUTPUT_DIR", "./output")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("AREAMAP_LOG_LEVEL", "INFO")
    )
    zoom_start: int = field(
        default_factory=lambda: int(os.getenv("AREAMAP_ZOOM_START", "11"))
    )


def load_settings_from_env() -> Settings:
    """Build settings from the current environment."""
    return Settings()


settings = Settings()
