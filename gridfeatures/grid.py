# Grid Features - Horizontal Grids
# SPDX-License-Identifier: Apache-2.0

"""
Rectilinear horizontal grids built from independent X and Y axes.

This module handles:
1. Position -> (x index, y index) lookup on both axes
2. Bounding box -> column/row index selection, including longitude
   wraparound when the box crosses the axis' wrap point or spans
   more than a full circle
3. Enumeration of grid cells (the horizontal domain objects)
"""

from dataclasses import dataclass
import logging
import math
from typing import Iterator, Optional

import numpy as np

from gridfeatures.axis import NOT_FOUND, ReferenceableAxis, RegularAxis
from gridfeatures.core import (
    DEFAULT_CRS,
    LONGITUDE_PERIOD,
    BoundingBox,
    HorizontalPosition,
    is_geographic,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridCoordinates:
    """Integer (x, y) index pair into a horizontal grid"""

    x: int
    y: int


@dataclass(frozen=True)
class GridCell:
    """One cell of a horizontal grid"""

    coordinates: GridCoordinates
    centre: HorizontalPosition
    footprint: BoundingBox


class RectilinearGrid:
    """
    Horizontal grid whose cells are the cartesian product of two axes.

    If the X axis is a longitude axis, x coordinates are periodic (360).
    Index arrays produced by this class are in (y, x) row-major order.
    """

    def __init__(self, x_axis: ReferenceableAxis, y_axis: ReferenceableAxis,
                 crs: str = DEFAULT_CRS):
        self.x_axis = x_axis
        self.y_axis = y_axis
        self.crs = crs

    @property
    def x_size(self) -> int:
        return self.x_axis.size

    @property
    def y_size(self) -> int:
        return self.y_axis.size

    @property
    def shape(self) -> tuple[int, int]:
        """(y_size, x_size)"""
        return (self.y_size, self.x_size)

    @property
    def size(self) -> int:
        return self.x_size * self.y_size

    @property
    def bounding_box(self) -> BoundingBox:
        x = self.x_axis.coordinate_extent
        y = self.y_axis.coordinate_extent
        return BoundingBox(x.low, y.low, x.high, y.high, crs=self.crs)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RectilinearGrid):
            return NotImplemented
        # Geometric equality; axis names are not significant
        return (
            self.x_axis.values == other.x_axis.values
            and self.y_axis.values == other.y_axis.values
            and self.x_axis.is_longitude == other.x_axis.is_longitude
            and self.crs == other.crs
        )

    def __hash__(self) -> int:
        return hash((self.x_axis.values, self.y_axis.values, self.crs))

    def __repr__(self) -> str:
        return f"RectilinearGrid({self.x_size} x {self.y_size}, crs={self.crs})"

    # -- point lookup ------------------------------------------------------

    def contains(self, position: HorizontalPosition) -> bool:
        return self.x_axis.contains(position.x) and self.y_axis.contains(position.y)

    def find_index_of(self, position: HorizontalPosition) -> Optional[GridCoordinates]:
        """
        Cell containing a position given in this grid's CRS.

        Returns None when the position is outside either axis.
        """
        x = self.x_axis.find_index_of(position.x)
        y = self.y_axis.find_index_of(position.y)
        if x == NOT_FOUND or y == NOT_FOUND:
            return None
        return GridCoordinates(x, y)

    def cell_centre(self, x_index: int, y_index: int) -> HorizontalPosition:
        return HorizontalPosition(
            float(self.x_axis[x_index]), float(self.y_axis[y_index]), self.crs
        )

    def cell(self, x_index: int, y_index: int) -> GridCell:
        xb = self.x_axis.cell_bounds(x_index)
        yb = self.y_axis.cell_bounds(y_index)
        return GridCell(
            coordinates=GridCoordinates(x_index, y_index),
            centre=self.cell_centre(x_index, y_index),
            footprint=BoundingBox(xb.low, yb.low, xb.high, yb.high, crs=self.crs),
        )

    def domain_objects(self) -> Iterator[GridCell]:
        """All cells, y outer and x inner"""
        for j in range(self.y_size):
            for i in range(self.x_size):
                yield self.cell(i, j)

    # -- bounding box selection --------------------------------------------

    def _column_ranges(self, min_x: float, max_x: float) -> list[tuple[float, float]]:
        """
        Split a longitude range into at most two ranges in the axis' frame.

        The frame is [lo, lo + 360) where lo is the axis' first boundary.
        """
        lo = self.x_axis.coordinate_extent.low
        shift = math.floor((min_x - lo) / LONGITUDE_PERIOD) * LONGITUDE_PERIOD
        low, high = min_x - shift, max_x - shift
        wrap = lo + LONGITUDE_PERIOD
        if high < wrap:
            return [(low, high)]
        return [(low, wrap), (lo, high - LONGITUDE_PERIOD)]

    def x_indices_in(self, bbox: BoundingBox) -> list[int]:
        """
        Columns whose centre lies in the box's x range (edges inclusive).

        For longitude axes the box is reconciled modulo 360 and wrapped
        ranges are unioned without double counting.
        """
        if not self.x_axis.is_longitude:
            return list(self.x_axis.indices_between(bbox.min_x, bbox.max_x))

        if bbox.width > LONGITUDE_PERIOD:
            return list(range(self.x_size))

        selected: set[int] = set()
        for low, high in self._column_ranges(bbox.min_x, bbox.max_x):
            selected.update(self.x_axis.indices_between(low, high))
        return sorted(selected)

    def y_indices_in(self, bbox: BoundingBox) -> list[int]:
        """Rows whose centre lies in the box's y range (edges inclusive)"""
        overlap = bbox.y_extent.intersection(self.y_axis.coordinate_extent)
        if overlap is None:
            return []
        return list(self.y_axis.indices_between(overlap.low, overlap.high))

    def cells_in(self, bbox: BoundingBox) -> Iterator[GridCell]:
        """Cells whose centre lies inside the box, y outer and x inner"""
        columns = self.x_indices_in(bbox)
        rows = self.y_indices_in(bbox)
        logger.debug(f"BBox {bbox.to_dict()} -> {len(columns)} columns x {len(rows)} rows")
        for j in rows:
            for i in columns:
                yield self.cell(i, j)

    # -- grid to grid mapping ----------------------------------------------

    def index_lookup(self, target: "RectilinearGrid") -> tuple[np.ndarray, np.ndarray]:
        """
        Nearest source cell for every cell centre of a target grid.

        Both grids must share a CRS. Returns (y_indices, x_indices) with
        lengths target.y_size and target.x_size; NOT_FOUND (-1) marks
        target rows/columns that fall outside this grid.
        """
        x_idx = self.x_axis.find_indices_of(target.x_axis.values)
        y_idx = self.y_axis.find_indices_of(target.y_axis.values)
        return y_idx, x_idx


def regular_grid(
    bbox: BoundingBox,
    x_size: int,
    y_size: int,
    crs: Optional[str] = None,
) -> RectilinearGrid:
    """
    Regular grid of x_size by y_size cells exactly covering a bounding box.

    Cell centres sit half a cell in from the box edges.
    """
    if x_size < 1 or y_size < 1:
        raise ValueError(f"Grid size must be positive, got {x_size} x {y_size}")
    crs = crs or bbox.crs
    dx = bbox.width / x_size
    dy = bbox.height / y_size
    if dx == 0 or dy == 0:
        raise ValueError(f"Cannot build a regular grid over a degenerate box: {bbox}")
    x_axis = RegularAxis("x", bbox.min_x + dx / 2, dx, x_size, is_longitude=is_geographic(crs))
    y_axis = RegularAxis("y", bbox.min_y + dy / 2, dy, y_size)
    return RectilinearGrid(x_axis, y_axis, crs)
