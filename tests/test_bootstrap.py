# Grid Features - Dataset Bootstrap Tests
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for building datasets from xarray (netCDF and GRIB layouts).
"""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
import xarray as xr

from gridfeatures.bootstrap import (
    dataset_from_xarray,
    generate_mock_xarray,
    open_dataset,
    vertical_crs_for,
)
from gridfeatures.core import HorizontalPosition
from gridfeatures.params import RequestParameters


def grib_like_dataset() -> xr.Dataset:
    """cfgrib layout: descending latitude, 0..360 longitude, forecast steps"""
    lats = np.linspace(90.0, -90.0, 19)
    lons = np.arange(36) * 10.0
    steps = np.array([0, 6, 12], dtype="timedelta64[h]").astype("timedelta64[ns]")
    base = np.datetime64("2024-06-01T00:00", "ns")
    data = np.broadcast_to(lats[None, :, None], (3, 19, 36)).astype(np.float32)
    return xr.Dataset(
        {
            "t2m": (("step", "latitude", "longitude"), data, {"units": "K", "long_name": "2 metre temperature"}),
            "lsm": (("latitude", "longitude"), np.zeros((19, 36), dtype=np.float32)),
        },
        coords={
            "time": base,
            "step": ("step", steps),
            "valid_time": ("step", base + steps),
            "latitude": ("latitude", lats, {"units": "degrees_north", "standard_name": "latitude"}),
            "longitude": ("longitude", lons, {"units": "degrees_east", "standard_name": "longitude"}),
        },
    )


class TestDatasetFromXarray:
    """Test coordinate detection and metadata construction"""

    def test_mock_dataset(self, dataset):
        """Test the synthetic dataset axes"""
        assert dataset.vertical_axis.size == 11
        assert dataset.time_axis.size == 10
        assert dataset.time_axis[0] == datetime(2000, 1, 1, tzinfo=timezone.utc)
        grid = dataset.get_variable_metadata("vLon").horizontal_domain
        assert grid.x_axis.is_longitude
        assert grid.shape == (19, 36)

    def test_grib_layout(self):
        """Test step/valid_time forecasts with descending latitude"""
        ds = dataset_from_xarray(grib_like_dataset(), "ifs")

        assert ds.vertical_axis is None
        assert ds.get_dataset_vertical_crs() is None
        assert ds.time_axis.name == "step"
        assert ds.time_axis[1] == datetime(2024, 6, 1, 6, tzinfo=timezone.utc)

        t2m = ds.get_variable_metadata("t2m")
        assert t2m.has_temporal_domain and not t2m.has_vertical_domain
        assert t2m.units == "K"
        assert t2m.description == "2 metre temperature"

        lsm = ds.get_variable_metadata("lsm")
        assert not lsm.has_temporal_domain

    def test_descending_latitude_map(self):
        """Test a map over a north-to-south grid comes back south-to-north"""
        ds = dataset_from_xarray(grib_like_dataset(), "ifs")
        feature = ds.extract_map_features(["t2m"], RequestParameters.for_grid(36, 19))[0]
        values = feature.get_values("t2m")
        np.testing.assert_allclose(values.values[:, 0], np.linspace(-90.0, 90.0, 19))

    def test_longitudes_0_360(self):
        """Test western longitudes resolve on a 0..360 grid"""
        ds = dataset_from_xarray(grib_like_dataset(), "ifs")
        grid = ds.get_variable_metadata("t2m").horizontal_domain
        coords = grid.find_index_of(HorizontalPosition(-10.0, 45.0))
        assert coords.x == 35
        # 45N lies on the boundary between the 50N and 40N rows
        assert coords.y == 4
        assert grid.y_axis[coords.y] == 50.0

    def test_variable_without_depth_or_time(self):
        """Test profile and series requests skip 2D variables"""
        ds = dataset_from_xarray(grib_like_dataset(), "ifs")
        request = RequestParameters.for_grid(1, 1, target_position=HorizontalPosition(0.0, 0.0))
        assert ds.extract_profile_features(["lsm"], request) == []
        assert ds.extract_timeseries_features(["lsm"], request) == []

        grid_feature = ds.read_feature("lsm")
        assert grid_feature.get_values("lsm").shape == (1, 1, 19, 36)

    def test_missing_values(self):
        """Test NaN cells come back missing"""
        source = generate_mock_xarray()
        source["vLon"][:, :, 0, 0] = np.nan
        ds = dataset_from_xarray(source, "holes")
        feature = ds.extract_map_features(["vLon"], RequestParameters.for_grid(36, 19))[0]
        values = feature.get_values("vLon")
        assert values.count_missing() == 1
        assert values.get(0, 0) is None

    def test_no_horizontal_grid(self):
        """Test that a dataset without lon/lat is rejected"""
        ds = xr.Dataset({"v": (("a", "b"), np.zeros((2, 2)))})
        with pytest.raises(ValueError, match="longitude/latitude"):
            dataset_from_xarray(ds, "bad")


def calendar_dataset(calendar: str, start: str) -> xr.Dataset:
    """Three daily steps decoded as cftime dates"""
    times = xr.date_range(start, periods=3, freq="D", calendar=calendar, use_cftime=True)
    data = np.broadcast_to(np.arange(3.0)[:, None, None], (3, 3, 4)).copy()
    return xr.Dataset(
        {"sst": (("time", "lat", "lon"), data)},
        coords={
            "time": times,
            "lat": ("lat", [-10.0, 0.0, 10.0], {"standard_name": "latitude"}),
            "lon": ("lon", [0.0, 10.0, 20.0, 30.0], {"standard_name": "longitude"}),
        },
    )


class TestCalendars:
    """Test time axes decoded with non-standard CF calendars"""

    def test_noleap_time_axis(self):
        """Test a noleap dataset keeps its time axis and calendar"""
        ds = dataset_from_xarray(calendar_dataset("noleap", "2000-02-27"), "model")

        assert ds.get_dataset_chronology() == "noleap"
        assert list(ds.time_axis) == [
            datetime(2000, 2, 27, tzinfo=timezone.utc),
            datetime(2000, 2, 28, tzinfo=timezone.utc),
            datetime(2000, 3, 1, tzinfo=timezone.utc),
        ]
        assert ds.get_variable_metadata("sst").has_temporal_domain

    def test_noleap_series(self):
        """Test a time series reads every step of a noleap dataset"""
        ds = dataset_from_xarray(calendar_dataset("noleap", "2000-02-27"), "model")
        request = RequestParameters.for_grid(1, 1, target_position=HorizontalPosition(10.0, 0.0))
        features = ds.extract_timeseries_features(["sst"], request)
        assert len(features) == 1
        np.testing.assert_allclose(features[0].get_values("sst").values, [0.0, 1.0, 2.0])

    def test_unrepresentable_date(self):
        """Test a 360_day date with no Gregorian label is rejected"""
        with pytest.raises(ValueError, match="360_day"):
            dataset_from_xarray(calendar_dataset("360_day", "2000-02-28"), "model")


class TestProjectedGrid:
    """Test horizontal axes in a projected CRS"""

    def test_eastings_do_not_wrap(self):
        """Test x values beyond 360 are not folded back onto the grid"""
        source = xr.Dataset(
            {"h": (("y", "x"), np.zeros((2, 3)))},
            coords={"y": ("y", [0.0, 1000.0]), "x": ("x", [0.0, 1000.0, 2000.0])},
        )
        ds = dataset_from_xarray(source, "utm", crs="EPSG:32633")
        grid = ds.get_variable_metadata("h").horizontal_domain

        assert not grid.x_axis.is_longitude
        assert grid.find_index_of(HorizontalPosition(640.0, 0.0)).x == 1
        assert grid.find_index_of(HorizontalPosition(2860.0, 0.0)) is None


class TestVerticalCrs:
    """Test vertical CRS detection from coordinate attributes"""

    def test_pressure_levels(self):
        """Test isobaric levels are pressure axes"""
        coord = xr.DataArray([1000, 850, 500], dims="isobaricInhPa", name="isobaricInhPa",
                             attrs={"units": "hPa", "positive": "down"})
        crs = vertical_crs_for(coord)
        assert crs.is_pressure
        assert not crs.is_positive_up
        assert not crs.is_dimensionless

    def test_height(self):
        """Test positive-up height axes"""
        coord = xr.DataArray([2.0, 10.0], dims="height", name="height",
                             attrs={"units": "m", "positive": "up"})
        assert vertical_crs_for(coord).is_positive_up

    def test_model_levels(self):
        """Test unitless model levels are dimensionless"""
        coord = xr.DataArray([1, 2, 3], dims="lev", name="lev", attrs={"axis": "Z"})
        assert vertical_crs_for(coord).is_dimensionless


class TestOpenDataset:
    """Test engine selection when opening files"""

    def test_grib_uses_cfgrib(self):
        """Test GRIB files are opened with the cfgrib engine"""
        source = generate_mock_xarray()
        with patch("gridfeatures.bootstrap.xr.open_dataset") as mock_open:
            mock_open.return_value = source
            ds = open_dataset("forecast.grib2")

        mock_open.assert_called_once_with(Path("forecast.grib2"), engine="cfgrib")
        assert ds.dataset_id == "forecast"

    def test_netcdf_uses_default_engine(self):
        """Test netCDF files leave engine selection to xarray"""
        source = generate_mock_xarray()
        with patch("gridfeatures.bootstrap.xr.open_dataset") as mock_open:
            mock_open.return_value = source
            ds = open_dataset(Path("ocean.nc"), dataset_id="ocean-model")

        mock_open.assert_called_once_with(Path("ocean.nc"), engine=None)
        assert ds.dataset_id == "ocean-model"
        assert ds.variable_ids == ["vLon", "vLat", "vDepth", "vTime"]
