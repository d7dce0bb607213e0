# Grid Features - Coordinate Axes
# SPDX-License-Identifier: Apache-2.0

"""
One-dimensional coordinate axes with cell boundaries.

An axis is an immutable, strictly monotonic sequence of cell centres.
Cell boundaries are the midpoints between neighbouring centres,
extrapolated by half a cell at either end. Lookups are binary searches
(numpy searchsorted) over numeric keys of the boundaries; datetimes are
keyed by POSIX seconds.

Boundary convention: a value lying exactly on the boundary shared by two
cells belongs to the lower-indexed cell. The two outer boundaries are
inclusive, so every value in [first boundary, last boundary] resolves.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Iterator, Optional, Sequence

import numpy as np

from gridfeatures.core import LONGITUDE_PERIOD, VerticalCrs
from gridfeatures.extent import Extent

logger = logging.getLogger(__name__)

# Index returned by lookups that fall outside the axis
NOT_FOUND = -1


def _midpoint(a, b):
    # Works for floats and for datetimes (a + timedelta / 2)
    return a + (b - a) / 2


def _as_number(value) -> float:
    """Numeric search key; naive datetimes are taken as UTC"""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


class ReferenceableAxis:
    """
    Axis of arbitrary (possibly irregular) cell centres.

    Args:
        name: Axis name (usually the coordinate variable name)
        values: Strictly increasing or strictly decreasing cell centres
        is_longitude: Treat values as periodic with period 360
        bounds: Optional explicit cell boundaries (len(values) + 1 entries,
            monotonic in the same direction as values)
    """

    def __init__(
        self,
        name: str,
        values: Sequence[Any],
        is_longitude: bool = False,
        bounds: Optional[Sequence[Any]] = None,
    ):
        values = tuple(values)
        if not values:
            raise ValueError(f"Axis {name!r} must have at least one value")

        ascending = True
        if len(values) > 1:
            steps = [b > a for a, b in zip(values, values[1:])]
            if all(steps):
                ascending = True
            elif not any(steps) and all(a != b for a, b in zip(values, values[1:])):
                ascending = False
            else:
                raise ValueError(f"Axis {name!r} values must be strictly monotonic")

        self.name = name
        self.is_longitude = is_longitude
        self._values = values
        self._ascending = ascending

        if bounds is not None:
            bounds = tuple(bounds)
            if len(bounds) != len(values) + 1:
                raise ValueError(
                    f"Axis {name!r} needs {len(values) + 1} bounds, got {len(bounds)}"
                )
        else:
            bounds = self._derive_bounds(values)
        self._bounds = bounds

        self._asc_values = values if ascending else values[::-1]
        self._asc_bounds = bounds if ascending else bounds[::-1]

        # Ascending numeric keys for np.searchsorted
        self._value_keys = np.array([_as_number(v) for v in self._asc_values], dtype=np.float64)
        self._bound_keys = np.array([_as_number(b) for b in self._asc_bounds], dtype=np.float64)

    @staticmethod
    def _derive_bounds(values: tuple) -> tuple:
        if len(values) == 1:
            return (values[0], values[0])
        mids = [_midpoint(a, b) for a, b in zip(values, values[1:])]
        first = values[0] - (values[1] - values[0]) / 2
        last = values[-1] + (values[-1] - values[-2]) / 2
        return (first, *mids, last)

    # -- sequence protocol -------------------------------------------------

    @property
    def values(self) -> tuple:
        return self._values

    @property
    def size(self) -> int:
        return len(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int):
        return self._values[index]

    def __iter__(self) -> Iterator:
        return iter(self._values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ReferenceableAxis):
            return NotImplemented
        return (
            self.name == other.name
            and self.is_longitude == other.is_longitude
            and self._values == other._values
        )

    def __hash__(self) -> int:
        return hash((self.name, self._values))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.name!r}, size={self.size}, "
            f"{self._values[0]} .. {self._values[-1]})"
        )

    # -- geometry ----------------------------------------------------------

    @property
    def is_ascending(self) -> bool:
        return self._ascending

    @property
    def bounds(self) -> tuple:
        return self._bounds

    @property
    def extent(self) -> Extent:
        """Extent of the cell centres"""
        return Extent(self._asc_values[0], self._asc_values[-1])

    @property
    def coordinate_extent(self) -> Extent:
        """Extent of the cell boundaries (first to last boundary)"""
        return Extent(self._asc_bounds[0], self._asc_bounds[-1])

    def cell_bounds(self, index: int) -> Extent:
        a, b = self._bounds[index], self._bounds[index + 1]
        return Extent(min(a, b), max(a, b))

    def _normalise(self, value):
        if not self.is_longitude:
            return value
        low = self._asc_bounds[0]
        return low + (value - low) % LONGITUDE_PERIOD

    def contains(self, value) -> bool:
        """True if the value lies within the axis coordinate extent"""
        key = _as_number(self._normalise(value))
        return bool(self._bound_keys[0] <= key <= self._bound_keys[-1])

    def _lookup(self, keys: np.ndarray) -> np.ndarray:
        bounds = self._bound_keys
        n = len(self._values)
        if self._ascending:
            # (b[i], b[i+1]] -> i; the first cell also owns b[0]
            index = np.maximum(np.searchsorted(bounds, keys, side="left") - 1, 0)
        else:
            # Reversed storage: the lower original index is the upper
            # ascending cell, so shared boundaries go right
            j = np.minimum(np.searchsorted(bounds, keys, side="right") - 1, n - 1)
            index = n - 1 - j
        outside = np.isnan(keys) | (keys < bounds[0]) | (keys > bounds[-1])
        return np.where(outside, NOT_FOUND, index).astype(np.int64)

    def find_index_of(self, value) -> int:
        """
        Index of the cell whose boundaries contain the value.

        Returns NOT_FOUND (-1) if the axis does not contain the value.
        """
        key = _as_number(self._normalise(value))
        return int(self._lookup(np.array([key], dtype=np.float64))[0])

    def find_indices_of(self, values) -> np.ndarray:
        """Vectorised find_index_of for numeric values"""
        keys = np.asarray(values, dtype=np.float64)
        return self._lookup(self._normalise(keys))

    def indices_between(self, low, high) -> range:
        """
        Indices of the cells whose centres lie in [low, high].

        No longitude wrapping is applied here; callers split wrapped
        ranges themselves.
        """
        low, high = _as_number(low), _as_number(high)
        if high < low:
            return range(0)
        i0 = int(np.searchsorted(self._value_keys, low, side="left"))
        i1 = int(np.searchsorted(self._value_keys, high, side="right"))
        if i1 <= i0:
            return range(0)
        if self._ascending:
            return range(i0, i1)
        n = len(self._values)
        return range(n - i1, n - i0)

    def indices_intersecting(self, extent: Extent) -> range:
        """
        Indices of the cells whose boundary interval intersects the extent.

        The extent is clipped to the coordinate extent first; an extent
        that misses the axis entirely yields an empty range.
        """
        clipped = extent.intersection(self.coordinate_extent)
        if clipped is None:
            return range(0)
        a = self.find_index_of(clipped.low)
        b = self.find_index_of(clipped.high)
        lo, hi = min(a, b), max(a, b)
        return range(lo, hi + 1)

    def subset(self, indices: range) -> "ReferenceableAxis":
        """A new axis containing only the given contiguous index range"""
        if len(indices) == 0:
            raise ValueError(f"Cannot take an empty subset of axis {self.name!r}")
        values = self._values[indices.start:indices.stop]
        bounds = self._bounds[indices.start:indices.stop + 1]
        return ReferenceableAxis(self.name, values, self.is_longitude, bounds)


class RegularAxis(ReferenceableAxis):
    """Axis of evenly spaced numeric cell centres"""

    def __init__(
        self,
        name: str,
        first_value: float,
        spacing: float,
        size: int,
        is_longitude: bool = False,
    ):
        if size < 1:
            raise ValueError(f"Axis {name!r} must have at least one value")
        if spacing == 0:
            raise ValueError(f"Axis {name!r} spacing cannot be zero")
        values = [first_value + i * spacing for i in range(size)]
        bounds = [first_value + (i - 0.5) * spacing for i in range(size + 1)]
        super().__init__(name, values, is_longitude=is_longitude, bounds=bounds)
        self.spacing = spacing

    @property
    def is_global_longitude(self) -> bool:
        """True if the axis covers a full circle of longitude"""
        return self.is_longitude and abs(self.spacing) * self.size >= LONGITUDE_PERIOD


class VerticalAxis(ReferenceableAxis):
    """Depth, height or pressure axis"""

    def __init__(self, name: str, values: Sequence[float], vertical_crs: VerticalCrs,
                 bounds: Optional[Sequence[float]] = None):
        super().__init__(name, values, bounds=bounds)
        self.vertical_crs = vertical_crs

    def __eq__(self, other) -> bool:
        result = super().__eq__(other)
        if result is NotImplemented or not result:
            return result
        return getattr(other, "vertical_crs", None) == self.vertical_crs

    __hash__ = ReferenceableAxis.__hash__

    def subset(self, indices: range) -> "VerticalAxis":
        base = super().subset(indices)
        return VerticalAxis(self.name, base.values, self.vertical_crs, base.bounds)


class TimeAxis(ReferenceableAxis):
    """
    Axis of datetimes.

    The calendar name follows CF conventions ("standard",
    "proleptic_gregorian", "noleap", ...).
    """

    def __init__(self, name: str, values: Sequence[datetime], calendar: str = "standard",
                 bounds: Optional[Sequence[datetime]] = None):
        if any(not isinstance(v, datetime) for v in values):
            raise ValueError(f"Time axis {name!r} values must be datetimes")
        super().__init__(name, values, bounds=bounds)
        self.calendar = calendar

    def subset(self, indices: range) -> "TimeAxis":
        base = super().subset(indices)
        return TimeAxis(self.name, base.values, self.calendar, base.bounds)
