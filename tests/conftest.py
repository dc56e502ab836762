"""Shared fixtures: a five-region grid (A..E) in British National Grid."""

import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
import pytest
from shapely.geometry import box

from areamap.datasource import MeasurementTable, RegionTable
from areamap.spatial_ops import join

BNG = "EPSG:27700"
REGION_IDS = ["A", "B", "C", "D", "E"]


def make_region_frame(ids=REGION_IDS, crs=BNG):
    """One 1 km square per identifier, laid out west to east near Glasgow."""
    return gpd.GeoDataFrame(
        {
            "DataZone": list(ids),
            "Name": [f"Zone {i}" for i in ids],
            "Council": ["North" if i in ("A", "B", "C") else "South" for i in ids],
        },
        geometry=[
            box(258000 + n * 1000, 665000, 259000 + n * 1000, 666000)
            for n in range(len(ids))
        ],
        crs=crs,
    )


def make_measurement_frame(ids=REGION_IDS, key="DataZone"):
    quintiles = {"A": 1, "B": 2, "C": 3, "D": 4, "E": 5}
    deciles = {"A": 1, "B": 3, "C": 5, "D": 8, "E": 10}
    return pd.DataFrame(
        {
            key: list(ids),
            "Quintile": [quintiles[i] for i in ids],
            "Decile": [deciles[i] for i in ids],
        }
    )


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture
def region_frame():
    return make_region_frame()


@pytest.fixture
def region_table(region_frame):
    return RegionTable(data=region_frame, id_column="DataZone")


@pytest.fixture
def measurement_table():
    return MeasurementTable(
        data=make_measurement_frame(),
        id_column="DataZone",
        value_columns=["Quintile", "Decile"],
    )


@pytest.fixture
def joined(region_table, measurement_table):
    return join(region_table, measurement_table)


@pytest.fixture
def shapefile_path(tmp_path, region_frame):
    path = tmp_path / "zones.shp"
    region_frame.to_file(path)
    return path


@pytest.fixture
def csv_path(tmp_path):
    """SIMD-style ranks with the key under a different column name."""
    frame = make_measurement_frame(key="Data_Zone")
    frame["Council_area"] = ["North", "North", "North", "South", "South"]
    path = tmp_path / "simd.csv"
    frame.to_csv(path, index=False)
    return path
