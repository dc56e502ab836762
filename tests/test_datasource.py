"""Tests for boundary and measurement loading."""

import geopandas as gpd
import pandas as pd
import pytest

from areamap.datasource import (
    BoundaryDataSource,
    DatasetConfig,
    MeasurementTable,
    RegionTable,
    ValueDataSource,
    load_boundaries,
    load_measurements,
)
from areamap.errors import LoadError

from conftest import make_region_frame

pytestmark = pytest.mark.integration


class TestBoundaryLoader:
    """Boundary files load into validated RegionTables."""

    def test_loads_shapefile_set(self, shapefile_path):
        regions = load_boundaries(str(shapefile_path), "DataZone")

        assert isinstance(regions, RegionTable)
        assert isinstance(regions.data, gpd.GeoDataFrame)
        assert regions.ids == ["A", "B", "C", "D", "E"]
        assert regions.crs.to_epsg() == 27700

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="not found"):
            load_boundaries(str(tmp_path / "nothing.shp"), "DataZone")

    @pytest.mark.parametrize("sidecar", [".dbf", ".shx"])
    def test_missing_linked_file(self, shapefile_path, sidecar):
        shapefile_path.with_suffix(sidecar).unlink()

        with pytest.raises(LoadError, match="missing linked files") as excinfo:
            load_boundaries(str(shapefile_path), "DataZone")
        assert excinfo.value.stage == "load"

    def test_missing_id_column(self, shapefile_path):
        with pytest.raises(LoadError, match="Missing id_column 'Data_Zone'"):
            load_boundaries(str(shapefile_path), "Data_Zone")

    def test_duplicate_identifiers(self, tmp_path):
        frame = make_region_frame(ids=["A", "B", "A"])
        path = tmp_path / "dupes.shp"
        frame.to_file(path)

        with pytest.raises(LoadError, match="not unique"):
            load_boundaries(str(path), "DataZone")

    def test_null_geometry(self, tmp_path):
        frame = make_region_frame()
        frame.loc[1, "geometry"] = None
        path = tmp_path / "zones.geojson"
        frame.to_file(path, driver="GeoJSON")

        with pytest.raises(LoadError, match="without a boundary geometry"):
            load_boundaries(str(path), "DataZone")

    def test_identifiers_become_strings(self, tmp_path):
        frame = make_region_frame()
        frame["Code"] = range(100, 105)
        path = tmp_path / "coded.geojson"
        frame.to_file(path, driver="GeoJSON")

        regions = BoundaryDataSource(str(path), "Code").load()
        assert regions.ids == ["100", "101", "102", "103", "104"]

    def test_load_is_cached(self, shapefile_path):
        source = BoundaryDataSource(str(shapefile_path), "DataZone")
        assert source.load() is source.load()

    def test_accepts_dataset_config(self, shapefile_path):
        config = DatasetConfig(path=str(shapefile_path), id_column="DataZone")
        source = BoundaryDataSource(config)

        assert source.get_config() is config
        assert len(source.load()) == 5
        assert source.list_layers() == []


class TestMeasurementLoader:
    """Tabular measurements load, rename their key, and validate."""

    def test_renames_key_to_boundary_identifier(self, csv_path):
        measurements = load_measurements(
            str(csv_path),
            id_column="Data_Zone",
            value_columns=["Quintile", "Decile"],
            rename_to="DataZone",
        )

        assert measurements.id_column == "DataZone"
        assert "Data_Zone" not in measurements.data.columns
        assert measurements.ids == ["A", "B", "C", "D", "E"]
        assert measurements.value_columns == ["Quintile", "Decile"]

    def test_infers_numeric_value_columns(self, csv_path):
        measurements = load_measurements(str(csv_path), "Data_Zone")
        assert measurements.value_columns == ["Quintile", "Decile"]

    def test_reads_tab_separated(self, tmp_path):
        path = tmp_path / "ranks.tsv"
        path.write_text("zone\tQuintile\nA\t1\nB\t2\n")

        measurements = load_measurements(str(path), "zone", ["Quintile"], rename_to="DataZone")
        assert measurements.data["Quintile"].tolist() == [1, 2]

    def test_keeps_leading_zeros_in_identifiers(self, tmp_path):
        path = tmp_path / "ranks.csv"
        path.write_text("code,Quintile\n0101,1\n0102,2\n")

        measurements = load_measurements(str(path), "code", ["Quintile"])
        assert measurements.ids == ["0101", "0102"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="not found"):
            load_measurements(str(tmp_path / "missing.csv"), "Data_Zone")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")

        with pytest.raises(LoadError, match="Could not read"):
            load_measurements(str(path), "Data_Zone")

    def test_missing_id_column(self, csv_path):
        with pytest.raises(LoadError, match="Missing id_column 'Zone'"):
            load_measurements(str(csv_path), "Zone")

    def test_missing_value_column(self, csv_path):
        with pytest.raises(LoadError, match="Missing value columns"):
            load_measurements(str(csv_path), "Data_Zone", ["Vigintile"])

    def test_non_numeric_values(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("Data_Zone,Quintile\nA,1\nB,high\n")

        with pytest.raises(LoadError, match="not numeric"):
            load_measurements(str(path), "Data_Zone", ["Quintile"])

    def test_rename_collision(self, tmp_path):
        path = tmp_path / "clash.csv"
        path.write_text("Data_Zone,DataZone,Quintile\nA,x,1\n")

        with pytest.raises(LoadError, match="already exists"):
            load_measurements(str(path), "Data_Zone", ["Quintile"], rename_to="DataZone")

    def test_accepts_dataset_config(self, csv_path):
        config = DatasetConfig(
            path=str(csv_path),
            id_column="Data_Zone",
            value_columns=["Decile"],
            rename_to="DataZone",
        )
        measurements = ValueDataSource(config).load()

        assert measurements.id_column == "DataZone"
        assert measurements.value_columns == ["Decile"]


class TestTableTypes:
    """Region and measurement tables only accept their own frame kind."""

    def test_region_table_rejects_plain_dataframe(self):
        with pytest.raises(TypeError, match="GeoDataFrame"):
            RegionTable(data=pd.DataFrame({"DataZone": ["A"]}), id_column="DataZone")

    def test_measurement_table_rejects_geodataframe(self, region_frame):
        with pytest.raises(TypeError, match="tabular data only"):
            MeasurementTable(data=region_frame, id_column="DataZone")
