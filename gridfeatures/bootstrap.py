# Grid Features - Dataset Bootstrap
# SPDX-License-Identifier: Apache-2.0

"""
Builds GriddedDataset instances from xarray datasets.

This module handles:
1. Detection of longitude, latitude, depth and time coordinates from
   CF names and attributes (netCDF and cfgrib conventions)
2. Conversion of coordinate values into axes, vertical CRS and calendar
3. Opening files through xarray (cfgrib engine for GRIB)
4. The synthetic test dataset used by the test suite and offline CLI
"""

from datetime import datetime, timedelta, timezone
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import xarray as xr

from gridfeatures.axis import ReferenceableAxis, TimeAxis, VerticalAxis
from gridfeatures.core import DEFAULT_CRS, VerticalCrs, is_geographic
from gridfeatures.dataset import CrsTransform, GriddedDataset
from gridfeatures.grid import RectilinearGrid
from gridfeatures.source import XarrayValueSource
from gridfeatures.variables import TemporalDomain, VariableMetadata, VerticalDomain

logger = logging.getLogger(__name__)

LON_NAMES = ("longitude", "lon", "nav_lon", "x")
LAT_NAMES = ("latitude", "lat", "nav_lat", "y")
DEPTH_NAMES = ("depth", "deptht", "lev", "level", "z", "height", "isobaricInhPa", "pressure")

PRESSURE_UNITS = frozenset({"pa", "hpa", "mbar", "millibar", "millibars", "bar"})
DIMENSIONLESS_UNITS = frozenset({"", "1", "level", "layer", "sigma"})

GRIB_SUFFIXES = frozenset({".grib", ".grib2", ".grb", ".grb2"})


def _find_dimension(ds: xr.Dataset, names: tuple, standard_name: str, units: tuple = ()) -> Optional[str]:
    """First dimension coordinate matching a CF standard name, units or name"""
    for dim in ds.dims:
        if dim not in ds.coords:
            continue
        attrs = ds[dim].attrs
        if attrs.get("standard_name") == standard_name:
            return dim
        if units and attrs.get("units") in units:
            return dim
    for name in names:
        if name in ds.dims and name in ds.coords:
            return name
    return None


def _find_vertical(ds: xr.Dataset) -> Optional[str]:
    for dim in ds.dims:
        if dim not in ds.coords:
            continue
        attrs = ds[dim].attrs
        if attrs.get("axis") == "Z" or "positive" in attrs:
            return dim
    for name in DEPTH_NAMES:
        if name in ds.dims and name in ds.coords:
            return name
    return None


def _calendar_of(coord: xr.DataArray) -> str:
    return coord.encoding.get("calendar") or coord.attrs.get("calendar", "standard")


def _find_time(ds: xr.Dataset) -> tuple[Optional[str], Optional[list[datetime]], str]:
    """Time dimension, its values as UTC datetimes and its calendar"""
    for dim in ds.dims:
        if dim not in ds.coords:
            continue
        index = ds.indexes.get(dim)
        # Non-standard CF calendars decode to cftime objects
        if isinstance(index, xr.CFTimeIndex):
            return dim, cftime_to_datetimes(index), index.calendar
        if np.issubdtype(ds[dim].dtype, np.datetime64):
            return dim, to_datetimes(ds[dim].values), _calendar_of(ds[dim])
    # cfgrib forecasts: a step dimension with a valid_time coordinate along it
    if "step" in ds.dims and "valid_time" in ds.coords and ds["valid_time"].dims == ("step",):
        return "step", to_datetimes(ds["valid_time"].values), _calendar_of(ds["valid_time"])
    return None, None, "standard"


def to_datetimes(values: np.ndarray) -> list[datetime]:
    """datetime64 values as timezone-aware UTC datetimes"""
    return [
        v.astype("datetime64[us]").item().replace(tzinfo=timezone.utc)
        for v in np.asarray(values)
    ]


def cftime_to_datetimes(index: xr.CFTimeIndex) -> list[datetime]:
    """
    cftime dates as UTC datetimes carrying the same labels.

    Raises:
        ValueError: If a date has no Gregorian equivalent (e.g. 30 February
            in a 360_day calendar)
    """
    try:
        return [
            datetime(v.year, v.month, v.day, v.hour, v.minute, v.second, v.microsecond,
                     tzinfo=timezone.utc)
            for v in index
        ]
    except ValueError as e:
        raise ValueError(f"Unsupported {index.calendar!r} calendar date on time axis: {e}") from e


def vertical_crs_for(coord: xr.DataArray) -> VerticalCrs:
    """Vertical CRS from a coordinate's units and positive attributes"""
    units = str(coord.attrs.get("units", ""))
    lowered = units.lower()
    is_pressure = lowered in PRESSURE_UNITS or coord.name == "isobaricInhPa"
    positive = str(coord.attrs.get("positive", "")).lower()
    return VerticalCrs(
        units=units,
        is_pressure=is_pressure,
        is_dimensionless=lowered in DIMENSIONLESS_UNITS and not is_pressure,
        is_positive_up=positive == "up",
    )


def dataset_from_xarray(
    ds: xr.Dataset,
    dataset_id: str,
    crs: str = DEFAULT_CRS,
    crs_transform: Optional[CrsTransform] = None,
) -> GriddedDataset:
    """
    Build a GriddedDataset over the gridded variables of an xarray Dataset.

    Every data variable with both horizontal dimensions is exposed. It
    gets a vertical and/or temporal domain when it spans the dataset's
    depth and time dimensions.

    Args:
        ds: Source dataset (values are read lazily through it)
        dataset_id: Identifier of the resulting dataset
        crs: CRS of the horizontal coordinates
        crs_transform: Optional converter for positions in other CRSs

    Raises:
        ValueError: If no rectilinear longitude/latitude pair is found
    """
    lon_dim = _find_dimension(ds, LON_NAMES, "longitude", ("degrees_east", "degree_east"))
    lat_dim = _find_dimension(ds, LAT_NAMES, "latitude", ("degrees_north", "degree_north"))
    if lon_dim is None or lat_dim is None:
        raise ValueError(
            f"Dataset {dataset_id} has no rectilinear longitude/latitude dimensions "
            f"(dims: {', '.join(map(str, ds.dims))})"
        )

    # Projected eastings do not wrap
    grid = RectilinearGrid(
        ReferenceableAxis(
            lon_dim, ds[lon_dim].values.astype(float).tolist(), is_longitude=is_geographic(crs)
        ),
        ReferenceableAxis(lat_dim, ds[lat_dim].values.astype(float).tolist()),
        crs=crs,
    )

    z_dim = _find_vertical(ds)
    vertical_axis = None
    if z_dim is not None:
        vertical_axis = VerticalAxis(
            z_dim, ds[z_dim].values.astype(float).tolist(), vertical_crs_for(ds[z_dim])
        )

    t_dim, t_values, calendar = _find_time(ds)
    time_axis = None
    if t_dim is not None:
        time_axis = TimeAxis(t_dim, t_values, calendar=calendar)

    variables = {}
    dimensions = {}
    for name, da in ds.data_vars.items():
        if lon_dim not in da.dims or lat_dim not in da.dims:
            logger.debug(f"Skipping {name}: not on the {lon_dim}/{lat_dim} grid")
            continue
        var_id = str(name)
        roles = {"x": lon_dim, "y": lat_dim}
        vertical_domain = temporal_domain = None
        if vertical_axis is not None and z_dim in da.dims:
            roles["z"] = z_dim
            vertical_domain = VerticalDomain(vertical_axis.extent, vertical_axis.vertical_crs)
        if time_axis is not None and t_dim in da.dims:
            roles["t"] = t_dim
            temporal_domain = TemporalDomain(time_axis.extent, time_axis.calendar)

        variables[var_id] = VariableMetadata(
            id=var_id,
            horizontal_domain=grid,
            vertical_domain=vertical_domain,
            temporal_domain=temporal_domain,
            description=str(da.attrs.get("long_name", "")),
            units=str(da.attrs.get("units", "")),
        )
        dimensions[var_id] = roles

    logger.info(
        f"Dataset {dataset_id}: {len(variables)} variable(s) on {grid}, "
        f"depth={vertical_axis.size if vertical_axis else 0}, time={time_axis.size if time_axis else 0}"
    )
    return GriddedDataset(
        dataset_id,
        variables,
        XarrayValueSource(ds, dimensions),
        vertical_axis=vertical_axis,
        time_axis=time_axis,
        crs_transform=crs_transform,
    )


def open_dataset(
    path: Union[str, Path],
    dataset_id: Optional[str] = None,
    engine: Optional[str] = None,
    **kwargs,
) -> GriddedDataset:
    """
    Open a netCDF or GRIB file as a GriddedDataset.

    GRIB files (by suffix) are opened with the cfgrib engine; anything
    else uses xarray's default engine selection.
    """
    path = Path(path)
    if engine is None and path.suffix.lower() in GRIB_SUFFIXES:
        engine = "cfgrib"
    logger.info(f"Opening {path} (engine={engine or 'auto'})")
    ds = xr.open_dataset(path, engine=engine)
    return dataset_from_xarray(ds, dataset_id or path.stem, **kwargs)


def generate_mock_xarray(
    x_size: int = 36,
    y_size: int = 19,
    z_size: int = 11,
    t_size: int = 10,
    start: Optional[datetime] = None,
) -> xr.Dataset:
    """
    Synthetic global dataset with analytically known values.

    Longitudes step 360 / x_size from -180, latitudes span -90..90,
    depths step 10 from 0, times step one day from start (2000-01-01 UTC).
    Each variable varies along a single dimension:

        vLon[t, z, y, x]   = 100 * x / (x_size - 1)
        vLat[t, z, y, x]   = 100 * y / (y_size - 1)
        vDepth[t, z, y, x] = depth value
        vTime[t, z, y, x]  = 100 * t / (t_size - 1)
    """
    start = start or datetime(2000, 1, 1, tzinfo=timezone.utc)
    naive_start = start.astimezone(timezone.utc).replace(tzinfo=None)

    lons = -180.0 + np.arange(x_size) * (360.0 / x_size)
    lats = np.linspace(-90.0, 90.0, y_size) if y_size > 1 else np.array([0.0])
    depths = np.arange(z_size) * 10.0
    times = np.array(
        [np.datetime64(naive_start + timedelta(days=i), "ns") for i in range(t_size)]
    )

    shape = (t_size, z_size, y_size, x_size)

    def ramp(n: int, axis: int) -> np.ndarray:
        step = 100.0 / (n - 1) if n > 1 else 0.0
        values = np.arange(n) * step
        expand = [1, 1, 1, 1]
        expand[axis] = n
        return np.broadcast_to(values.reshape(expand), shape).astype(np.float32)

    dims = ("time", "depth", "lat", "lon")
    return xr.Dataset(
        {
            "vLon": (dims, ramp(x_size, 3), {"long_name": "Longitude index ramp", "units": "1"}),
            "vLat": (dims, ramp(y_size, 2), {"long_name": "Latitude index ramp", "units": "1"}),
            "vDepth": (
                dims,
                np.broadcast_to(depths.reshape(1, -1, 1, 1), shape).astype(np.float32),
                {"long_name": "Depth", "units": "m"},
            ),
            "vTime": (dims, ramp(t_size, 0), {"long_name": "Time index ramp", "units": "1"}),
        },
        coords={
            "time": ("time", times),
            "depth": ("depth", depths, {"units": "m", "positive": "down", "axis": "Z"}),
            "lat": ("lat", lats, {"standard_name": "latitude", "units": "degrees_north"}),
            "lon": ("lon", lons, {"standard_name": "longitude", "units": "degrees_east"}),
        },
    )


def generate_mock_dataset(dataset_id: str = "mock", **kwargs) -> GriddedDataset:
    """The synthetic dataset of generate_mock_xarray as a GriddedDataset"""
    return dataset_from_xarray(generate_mock_xarray(**kwargs), dataset_id)
