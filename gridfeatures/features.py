# Grid Features - Feature Types
# SPDX-License-Identifier: Apache-2.0

"""
Result objects returned by the extraction engine.

Every feature carries the same two things: a domain (where/when the
values apply) and a mapping from variable id to a shaped value
container. The kinds differ only in domain type and value shape:

    MapFeature          Array2D (y, x) at one depth and one time
    ProfileFeature      Array1D (z) at one position and one time
    PointSeriesFeature  Array1D (t) at one position and one depth
    TrajectoryFeature   Array1D over an ordered list of points
    GridFeature         Array4D (t, z, y, x), a whole-variable read

Features are immutable and built fresh for every query.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from types import MappingProxyType
from typing import ClassVar, Iterable, Mapping, Optional

import numpy as np

from gridfeatures.arrays import Array, Array2D, take_cells
from gridfeatures.axis import NOT_FOUND, TimeAxis, VerticalAxis
from gridfeatures.core import HorizontalPosition, VerticalCrs, same_crs
from gridfeatures.grid import RectilinearGrid
from gridfeatures.variables import FeatureKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapDomain:
    """A horizontal grid at a fixed depth and time"""

    grid: RectilinearGrid
    z: Optional[float] = None
    vertical_crs: Optional[VerticalCrs] = None
    time: Optional[datetime] = None


@dataclass(frozen=True)
class GridDomain:
    """A horizontal grid crossed with optional depth and time axes"""

    grid: RectilinearGrid
    vertical_axis: Optional[VerticalAxis] = None
    time_axis: Optional[TimeAxis] = None

    @property
    def shape(self) -> tuple[int, int, int, int]:
        """(t, z, y, x); absent axes count as size 1"""
        t = self.time_axis.size if self.time_axis is not None else 1
        z = self.vertical_axis.size if self.vertical_axis is not None else 1
        return (t, z, self.grid.y_size, self.grid.x_size)


@dataclass(frozen=True)
class TrajectoryPoint:
    """One sample location of a trajectory"""

    position: HorizontalPosition
    z: Optional[float] = None
    time: Optional[datetime] = None


@dataclass(frozen=True, kw_only=True, eq=False)
class Feature:
    """Common shape of all features: an id, a name and per-variable values"""

    kind: ClassVar[FeatureKind]

    id: str
    name: str
    description: str = ""
    values: Mapping[str, Array] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only snapshot of the caller's mapping
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def variable_ids(self) -> list[str]:
        return list(self.values)

    def get_values(self, variable_id: str) -> Array:
        try:
            return self.values[variable_id]
        except KeyError:
            raise ValueError(
                f"Variable {variable_id!r} not in feature {self.id!r} "
                f"(has: {', '.join(self.values)})"
            ) from None


@dataclass(frozen=True, kw_only=True, eq=False)
class MapFeature(Feature):
    kind: ClassVar[FeatureKind] = FeatureKind.MAP

    domain: MapDomain


@dataclass(frozen=True, kw_only=True, eq=False)
class ProfileFeature(Feature):
    kind: ClassVar[FeatureKind] = FeatureKind.PROFILE

    domain: VerticalAxis
    horizontal_position: HorizontalPosition
    time: Optional[datetime] = None


@dataclass(frozen=True, kw_only=True, eq=False)
class PointSeriesFeature(Feature):
    kind: ClassVar[FeatureKind] = FeatureKind.POINT_SERIES

    domain: TimeAxis
    horizontal_position: HorizontalPosition
    vertical_position: Optional[float] = None
    vertical_crs: Optional[VerticalCrs] = None


@dataclass(frozen=True, kw_only=True, eq=False)
class TrajectoryFeature(Feature):
    kind: ClassVar[FeatureKind] = FeatureKind.TRAJECTORY

    domain: tuple[TrajectoryPoint, ...]


@dataclass(frozen=True, kw_only=True, eq=False)
class GridFeature(Feature):
    kind: ClassVar[FeatureKind] = FeatureKind.GRID

    domain: GridDomain

    def _resolve_index(self, axis, value, label: str, default: int) -> int:
        if axis is None:
            return 0
        if value is None:
            return default
        index = axis.find_index_of(value)
        if index == NOT_FOUND:
            raise ValueError(
                f"Target {label} {value} is outside the {label} axis {axis.coordinate_extent}"
            )
        return index

    def extract_map_feature(
        self,
        variable_ids: Optional[Iterable[str]],
        target_grid: RectilinearGrid,
        z: Optional[float] = None,
        time: Optional[datetime] = None,
    ) -> MapFeature:
        """
        Slice a map out of the in-memory 4D values.

        Each target cell centre takes the value of the source cell that
        contains it (no interpolation). Without z/time the first depth
        level and the last time step are used; values that resolve
        off-axis raise ValueError.
        """
        ids = list(variable_ids) if variable_ids is not None else self.variable_ids
        for var_id in ids:
            if var_id not in self.values:
                raise ValueError(f"Unknown variable {var_id!r} for feature {self.id!r}")

        grid = self.domain.grid
        if not same_crs(grid.crs, target_grid.crs):
            raise ValueError(f"Target grid CRS {target_grid.crs} differs from {grid.crs}")

        z_axis = self.domain.vertical_axis
        t_axis = self.domain.time_axis
        z_index = self._resolve_index(z_axis, z, "depth", 0)
        t_index = self._resolve_index(t_axis, time, "time", (t_axis.size - 1) if t_axis else 0)

        y_idx, x_idx = grid.index_lookup(target_grid)
        values = {}
        for var_id in ids:
            source = self.values[var_id]
            plane, mask = take_cells(
                source.values[t_index, z_index],
                y_idx,
                x_idx,
                missing=source.missing[t_index, z_index],
            )
            values[var_id] = Array2D(plane, mask=mask)

        # The domain reports the axis values actually sampled
        domain = MapDomain(
            grid=target_grid,
            z=float(z_axis[z_index]) if z_axis else None,
            vertical_crs=z_axis.vertical_crs if z_axis else None,
            time=t_axis[t_index] if t_axis else None,
        )
        return MapFeature(
            id=f"{self.id}:map",
            name=f"{self.name} map",
            description=f"Map slice of {self.id}",
            values=values,
            domain=domain,
        )


# Feature class produced by each kind
FEATURE_TYPES: dict[FeatureKind, type] = {
    FeatureKind.GRID: GridFeature,
    FeatureKind.MAP: MapFeature,
    FeatureKind.PROFILE: ProfileFeature,
    FeatureKind.POINT_SERIES: PointSeriesFeature,
    FeatureKind.TRAJECTORY: TrajectoryFeature,
}


def summarize(feature: Feature) -> dict:
    """Plain-dict summary of a feature (shapes and value ranges)"""
    summary = {
        "id": feature.id,
        "kind": feature.kind.value,
        "variables": {},
    }
    for var_id, array in feature.values.items():
        valid = array.values[~array.missing]
        summary["variables"][var_id] = {
            "shape": list(array.shape),
            "missing": array.count_missing(),
            "min": float(np.min(valid)) if valid.size else None,
            "max": float(np.max(valid)) if valid.size else None,
        }
    return summary
