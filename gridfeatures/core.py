# Grid Features - Core Coordinate Types
# SPDX-License-Identifier: Apache-2.0

"""
Coordinate primitives shared by the grid, axis and extraction modules.

This module handles:
1. Horizontal positions in a named coordinate reference system
2. Bounding boxes that may cross the antimeridian or exceed 360 degrees
3. Vertical coordinate reference systems for depth/height/pressure axes
"""

from dataclasses import dataclass
import math
from typing import Optional

import numpy as np

from gridfeatures.extent import Extent

# Longitudes are periodic with this period (degrees)
LONGITUDE_PERIOD = 360.0

DEFAULT_CRS = "CRS:84"

# Names under which lon/lat WGS84 is commonly referenced
GEOGRAPHIC_CRS = frozenset({"CRS:84", "EPSG:4326", "WGS84", "OGC:CRS84"})


def is_geographic(crs: str) -> bool:
    """True if the CRS code denotes longitude/latitude on WGS84"""
    return crs.upper() in GEOGRAPHIC_CRS


def same_crs(a: str, b: str) -> bool:
    """CRS codes equal, treating all geographic aliases as one"""
    if is_geographic(a) and is_geographic(b):
        return True
    return a.upper() == b.upper()


def wrap_longitude(lon: float, reference: float = -180.0) -> float:
    """Shift a longitude by whole periods into [reference, reference + 360)"""
    return reference + (lon - reference) % LONGITUDE_PERIOD


@dataclass(frozen=True)
class HorizontalPosition:
    """A point in a horizontal coordinate reference system (x = lon, y = lat)"""

    x: float
    y: float
    crs: str = DEFAULT_CRS

    def __str__(self) -> str:
        return f"({self.x:.4f}, {self.y:.4f} {self.crs})"


@dataclass(frozen=True)
class VerticalCrs:
    """
    Vertical coordinate reference system of a depth/height axis.

    Positive-up axes measure height, positive-down axes measure depth.
    """

    units: str
    is_pressure: bool = False
    is_dimensionless: bool = False
    is_positive_up: bool = False


@dataclass(frozen=True)
class BoundingBox:
    """
    Horizontal box in a grid's reference frame.

    The box is not normalised: for geographic CRSs the x range may lie
    outside [-180, 180], straddle the antimeridian or span more than 360
    degrees. Consumers reconcile it against their own axes modulo 360.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    crs: str = DEFAULT_CRS

    def __post_init__(self):
        """Validate coordinate ranges"""
        if self.min_x > self.max_x:
            raise ValueError(f"Invalid x range: {self.min_x} to {self.max_x}")
        if self.min_y > self.max_y:
            raise ValueError(f"Invalid y range: {self.min_y} to {self.max_y}")

    @classmethod
    def from_center(
        cls,
        lat: float,
        lon: float,
        radius_nm: float = 500,
    ) -> "BoundingBox":
        """
        Create a geographic bounding box from center point and radius.

        Args:
            lat: Center latitude in degrees
            lon: Center longitude in degrees
            radius_nm: Radius in nautical miles (default: 500nm)

        Returns:
            BoundingBox encompassing the circular region
        """
        # 1 degree latitude ≈ 60 nautical miles
        lat_degrees = radius_nm / 60.0

        # Longitude degrees depend on latitude (convergence at poles)
        cos_lat = max(np.cos(np.radians(lat)), 0.01)
        lon_degrees = radius_nm / (60.0 * cos_lat)

        return cls(
            min_x=lon - lon_degrees,
            min_y=max(-90.0, lat - lat_degrees),
            max_x=lon + lon_degrees,
            max_y=min(90.0, lat + lat_degrees),
        )

    @classmethod
    def from_route(
        cls,
        waypoints: list[tuple[float, float]],
        buffer_nm: float = 200,
    ) -> "BoundingBox":
        """
        Create a geographic bounding box encompassing a route with buffer.

        Longitudes are unwrapped along the route so that a leg crossing the
        antimeridian takes the short way round; the resulting box may then
        extend beyond 180 degrees.

        Args:
            waypoints: List of (lat, lon) tuples
            buffer_nm: Buffer around route in nautical miles
        """
        if not waypoints:
            raise ValueError("A route needs at least one waypoint")

        lats = [wp[0] for wp in waypoints]
        lons = [waypoints[0][1]]
        for _, lon in waypoints[1:]:
            previous = lons[-1]
            lons.append(previous + (lon - previous + 180.0) % LONGITUDE_PERIOD - 180.0)

        center_lat = (max(lats) + min(lats)) / 2
        cos_lat = max(np.cos(np.radians(center_lat)), 0.01)

        lat_buffer = buffer_nm / 60.0
        lon_buffer = buffer_nm / (60.0 * cos_lat)

        return cls(
            min_x=min(lons) - lon_buffer,
            min_y=max(-90.0, min(lats) - lat_buffer),
            max_x=max(lons) + lon_buffer,
            max_y=min(90.0, max(lats) + lat_buffer),
        )

    @property
    def x_extent(self) -> Extent[float]:
        return Extent(self.min_x, self.max_x)

    @property
    def y_extent(self) -> Extent[float]:
        return Extent(self.min_y, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def crosses_antimeridian(self) -> bool:
        """True if a geographic box extends past the +/-180 meridian"""
        return is_geographic(self.crs) and (self.min_x < -180.0 or self.max_x > 180.0)

    def contains(self, position: HorizontalPosition) -> bool:
        """
        Test whether a position lies in the box (edges inclusive).

        Geographic x coordinates are compared modulo 360.
        """
        if not self.y_extent.contains(position.y):
            return False
        if not is_geographic(self.crs):
            return self.x_extent.contains(position.x)
        if self.width >= LONGITUDE_PERIOD:
            return True
        x = position.x + math.ceil((self.min_x - position.x) / LONGITUDE_PERIOD) * LONGITUDE_PERIOD
        return x <= self.max_x

    def to_dict(self) -> dict:
        """Serialize to dictionary"""
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "crs": self.crs,
        }


def parse_bbox(text: str, crs: Optional[str] = None) -> BoundingBox:
    """Parse a "minx,miny,maxx,maxy" string (WMS BBOX order)"""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise ValueError(f"Bounding box needs 4 comma-separated numbers, got: {text!r}")
    try:
        min_x, min_y, max_x, max_y = (float(p) for p in parts)
    except ValueError as e:
        raise ValueError(f"Invalid bounding box {text!r}: {e}") from e
    return BoundingBox(min_x, min_y, max_x, max_y, crs=crs or DEFAULT_CRS)
