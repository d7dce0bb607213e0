# Grid Features - Extraction Engine
# SPDX-License-Identifier: Apache-2.0

"""
Feature extraction engine for gridded datasets.

This module handles:
1. Resolving request parameters into axis index ranges
2. Walking those ranges cell by cell for the profile and time series
   strategies, and sampling a regular output grid for maps
3. Pulling raw samples from the injected value source and packaging
   them into shaped value containers

Invalid map targets are request errors (ValueError). Profile and time
series requests whose constraints exclude all data return an empty
list. Failures of the value source or of the CRS transform propagate
unchanged.
"""

import logging
from typing import Callable, Iterable, Iterator, Mapping, Optional, Sequence

import numpy as np

from gridfeatures.arrays import Array1D, Array2D, Array4D, take_cells
from gridfeatures.axis import NOT_FOUND, TimeAxis, VerticalAxis
from gridfeatures.core import BoundingBox, HorizontalPosition, VerticalCrs, same_crs
from gridfeatures.features import (
    FEATURE_TYPES,
    GridDomain,
    GridFeature,
    MapDomain,
    MapFeature,
    PointSeriesFeature,
    ProfileFeature,
    TrajectoryFeature,
    TrajectoryPoint,
)
from gridfeatures.grid import GridCell, RectilinearGrid, regular_grid
from gridfeatures.params import RequestParameters
from gridfeatures.source import ValueSource
from gridfeatures.variables import VariableMetadata

logger = logging.getLogger(__name__)

# (position, target crs) -> position in the target crs
CrsTransform = Callable[[HorizontalPosition, str], HorizontalPosition]


class GriddedDataset:
    """
    A set of gridded variables sharing depth and time axes.

    The dataset holds only immutable structures; every extraction call
    builds its results from scratch, so one instance can serve
    concurrent requests.

    Args:
        dataset_id: Identifier used as prefix of feature ids
        variables: variable id -> metadata
        value_source: Collaborator that reads raw sample blocks
        vertical_axis: Depth axis shared by variables with a vertical domain
        time_axis: Time axis shared by variables with a temporal domain
        crs_transform: Converts positions from a request CRS to a grid CRS
    """

    def __init__(
        self,
        dataset_id: str,
        variables: Mapping[str, VariableMetadata],
        value_source: ValueSource,
        vertical_axis: Optional[VerticalAxis] = None,
        time_axis: Optional[TimeAxis] = None,
        crs_transform: Optional[CrsTransform] = None,
    ):
        for var_id, meta in variables.items():
            if meta.has_vertical_domain and vertical_axis is None:
                raise ValueError(f"Variable {var_id} has a vertical domain but the dataset has no depth axis")
            if meta.has_temporal_domain and time_axis is None:
                raise ValueError(f"Variable {var_id} has a temporal domain but the dataset has no time axis")

        self.dataset_id = dataset_id
        self.variables = dict(variables)
        self.value_source = value_source
        self.vertical_axis = vertical_axis
        self.time_axis = time_axis
        self.crs_transform = crs_transform

    def __repr__(self) -> str:
        return f"GriddedDataset({self.dataset_id!r}, variables={self.variable_ids})"

    # -- metadata ----------------------------------------------------------

    @property
    def variable_ids(self) -> list[str]:
        return list(self.variables)

    def get_variable_metadata(self, variable_id: str) -> VariableMetadata:
        try:
            return self.variables[variable_id]
        except KeyError:
            raise ValueError(
                f"Unknown variable {variable_id!r} in dataset {self.dataset_id!r}"
            ) from None

    def get_dataset_chronology(self) -> Optional[str]:
        """Calendar of the time axis, or None for a dataset without time"""
        return self.time_axis.calendar if self.time_axis is not None else None

    def get_dataset_vertical_crs(self) -> Optional[VerticalCrs]:
        return self.vertical_axis.vertical_crs if self.vertical_axis is not None else None

    def get_map_feature_type(self, variable_id: str) -> type:
        """Feature class a map request yields for this variable"""
        meta = self.get_variable_metadata(variable_id)
        return FEATURE_TYPES[meta.map_feature_kind]

    # -- shared resolution helpers -----------------------------------------

    def _resolve_ids(self, variable_ids: Optional[Iterable[str]]) -> list[str]:
        if variable_ids is None:
            return self.variable_ids
        ids = list(dict.fromkeys(variable_ids))
        for var_id in ids:
            self.get_variable_metadata(var_id)
        return ids

    def _groups(self, variable_ids: Optional[Iterable[str]]) -> list[list[VariableMetadata]]:
        """Variables grouped by domain, in order of first appearance"""
        groups: dict[tuple, list[VariableMetadata]] = {}
        for var_id in self._resolve_ids(variable_ids):
            meta = self.variables[var_id]
            groups.setdefault(meta.domain_key(), []).append(meta)
        return list(groups.values())

    def _in_grid_frame(self, position: HorizontalPosition, grid: RectilinearGrid) -> HorizontalPosition:
        if same_crs(position.crs, grid.crs):
            return position
        if self.crs_transform is None:
            raise ValueError(
                f"Position {position} is in {position.crs} but the grid is in {grid.crs} "
                "and no CRS transform is configured"
            )
        return self.crs_transform(position, grid.crs)

    def _bbox_in_grid_frame(self, bbox: BoundingBox, grid: RectilinearGrid) -> BoundingBox:
        if same_crs(bbox.crs, grid.crs):
            return bbox
        lower = self._in_grid_frame(HorizontalPosition(bbox.min_x, bbox.min_y, bbox.crs), grid)
        upper = self._in_grid_frame(HorizontalPosition(bbox.max_x, bbox.max_y, bbox.crs), grid)
        return BoundingBox(
            min(lower.x, upper.x),
            min(lower.y, upper.y),
            max(lower.x, upper.x),
            max(lower.y, upper.y),
            crs=grid.crs,
        )

    def _select_cells(
        self, grid: RectilinearGrid, params: RequestParameters
    ) -> Iterator[tuple[GridCell, HorizontalPosition]]:
        """
        Horizontal cells selected by a request, with the position to report.

        A target position selects the single cell containing it, a bounding
        box the cells whose centres it contains, and no constraint every
        cell of the grid.
        """
        if params.target_position is not None:
            position = self._in_grid_frame(params.target_position, grid)
            coords = grid.find_index_of(position)
            if coords is None:
                logger.info(f"Target position {params.target_position} is outside the grid")
                return
            yield grid.cell(coords.x, coords.y), params.target_position
            return

        if params.bbox is not None:
            cells = grid.cells_in(self._bbox_in_grid_frame(params.bbox, grid))
        else:
            cells = grid.domain_objects()
        for cell in cells:
            yield cell, cell.centre

    def _map_index(self, axis, target, label: str, default: int) -> Optional[int]:
        if axis is None:
            return None
        if target is None:
            return default
        index = axis.find_index_of(target)
        if index == NOT_FOUND:
            raise ValueError(
                f"Target {label} {target} is outside the {label} axis {axis.coordinate_extent}"
            )
        return index

    def _selected_depths(self, meta: VariableMetadata, params: RequestParameters) -> list[Optional[int]]:
        """Depth indices a time series request iterates over"""
        if not meta.has_vertical_domain:
            return [None]
        z_axis = self.vertical_axis
        if params.target_z is not None:
            index = z_axis.find_index_of(params.target_z)
            if index == NOT_FOUND:
                logger.info(f"Target depth {params.target_z} is off the depth axis {z_axis.coordinate_extent}")
                return []
            return [index]
        if params.z_extent is not None and not params.z_extent.intersects(meta.vertical_domain.extent):
            logger.info(f"Depth extent {params.z_extent} misses {meta.id} coverage {meta.vertical_domain.extent}")
            return []
        return list(range(z_axis.size))

    def _selected_times(self, meta: VariableMetadata, params: RequestParameters) -> list[Optional[int]]:
        """Time indices a profile request iterates over"""
        if not meta.has_temporal_domain:
            return [None]
        t_axis = self.time_axis
        if params.target_t is not None:
            index = t_axis.find_index_of(params.target_t)
            if index == NOT_FOUND:
                logger.info(f"Target time {params.target_t} is off the time axis {t_axis.coordinate_extent}")
                return []
            return [index]
        if params.t_extent is not None:
            if not params.t_extent.intersects(meta.temporal_domain.extent):
                logger.info(f"Time extent {params.t_extent} misses {meta.id} coverage {meta.temporal_domain.extent}")
                return []
            return list(t_axis.indices_intersecting(params.t_extent))
        return list(range(t_axis.size))

    def _feature_id(self, group: Sequence[VariableMetadata], *parts) -> str:
        names = "+".join(m.id for m in group)
        return ":".join([self.dataset_id, names, *(str(p) for p in parts)])

    # -- map ---------------------------------------------------------------

    def extract_map_features(
        self,
        variable_ids: Optional[Iterable[str]],
        params: RequestParameters,
    ) -> list[MapFeature]:
        """
        Extract one map per group of variables sharing a domain.

        The map is sampled on a regular x_request_size by y_request_size
        grid covering the request bbox (or the whole grid), at target_z and
        target_t. Without targets the first depth and the last time step
        are used. Targets that do not resolve on their axis raise ValueError.
        """
        features = [self._extract_map(group, params) for group in self._groups(variable_ids)]
        logger.info(f"Extracted {len(features)} map feature(s) from {self.dataset_id}")
        return features

    def _extract_map(self, group: list[VariableMetadata], params: RequestParameters) -> MapFeature:
        meta = group[0]
        grid = meta.horizontal_domain
        z_axis = self.vertical_axis if meta.has_vertical_domain else None
        t_axis = self.time_axis if meta.has_temporal_domain else None

        z_index = self._map_index(z_axis, params.target_z, "depth", 0)
        t_index = self._map_index(t_axis, params.target_t, "time", t_axis.size - 1 if t_axis else 0)

        bbox = self._bbox_in_grid_frame(params.bbox, grid) if params.bbox is not None else grid.bounding_box
        target = regular_grid(bbox, params.x_request_size, params.y_request_size, crs=grid.crs)
        y_idx, x_idx = grid.index_lookup(target)
        logger.debug(
            f"Map {[m.id for m in group]}: z={z_index} t={t_index} "
            f"{int((x_idx >= 0).sum())}/{target.x_size} columns, "
            f"{int((y_idx >= 0).sum())}/{target.y_size} rows on source grid"
        )

        values = {}
        for var in group:
            values[var.id] = self._read_map_plane(var.id, z_index, t_index, y_idx, x_idx)

        domain = MapDomain(
            grid=target,
            z=float(z_axis[z_index]) if z_axis is not None else None,
            vertical_crs=z_axis.vertical_crs if z_axis is not None else None,
            time=t_axis[t_index] if t_axis is not None else None,
        )
        return MapFeature(
            id=self._feature_id(group, "map", z_index, t_index),
            name=" + ".join(m.id for m in group),
            description=f"Map of {', '.join(m.description or m.id for m in group)}",
            values=values,
            domain=domain,
        )

    def _read_map_plane(
        self,
        variable_id: str,
        z_index: Optional[int],
        t_index: Optional[int],
        y_idx: np.ndarray,
        x_idx: np.ndarray,
    ) -> Array2D:
        valid_y = y_idx[y_idx >= 0]
        valid_x = x_idx[x_idx >= 0]
        if valid_y.size == 0 or valid_x.size == 0:
            # Request box lies entirely off the grid
            return Array2D(np.full((y_idx.size, x_idx.size), np.nan, dtype=np.float32))

        # One block read covering every source cell the map touches
        y0, y1 = int(valid_y.min()), int(valid_y.max())
        x0, x1 = int(valid_x.min()), int(valid_x.max())
        block = self.value_source.read(
            variable_id,
            t=t_index,
            z=z_index,
            y=slice(y0, y1 + 1),
            x=slice(x0, x1 + 1),
        )
        if np.issubdtype(block.dtype, np.integer):
            block = block.astype(np.float64)
        plane, mask = take_cells(
            block,
            np.where(y_idx >= 0, y_idx - y0, NOT_FOUND),
            np.where(x_idx >= 0, x_idx - x0, NOT_FOUND),
        )
        return Array2D(plane, mask=mask)

    # -- profile -----------------------------------------------------------

    def iter_profile_features(
        self,
        variable_ids: Optional[Iterable[str]],
        params: RequestParameters,
    ) -> Iterator[ProfileFeature]:
        """
        Yield one full-depth profile per selected cell and time step.

        target_z and z_extent only decide whether profiles are produced:
        an off-axis target_z or a z_extent missing the vertical coverage
        yields nothing. Time steps come from target_t (must be on-axis),
        else from t_extent (must intersect), else the whole time axis.
        Variables without a vertical domain produce no profiles.
        """
        for group in self._groups(variable_ids):
            meta = group[0]
            if not meta.has_vertical_domain:
                logger.info(f"Variables {[m.id for m in group]} have no depth axis; no profiles")
                continue

            z_axis = self.vertical_axis
            if params.target_z is not None and z_axis.find_index_of(params.target_z) == NOT_FOUND:
                logger.info(f"Target depth {params.target_z} is off the depth axis {z_axis.coordinate_extent}")
                continue
            if params.z_extent is not None and not params.z_extent.intersects(meta.vertical_domain.extent):
                logger.info(f"Depth extent {params.z_extent} misses {meta.id} coverage {meta.vertical_domain.extent}")
                continue

            t_indices = self._selected_times(meta, params)
            if not t_indices:
                continue
            logger.debug(f"Profiles {[m.id for m in group]}: time indices {t_indices}")

            for cell, position in self._select_cells(meta.horizontal_domain, params):
                for t_index in t_indices:
                    yield self._build_profile(group, cell, position, t_index)

    def extract_profile_features(
        self,
        variable_ids: Optional[Iterable[str]],
        params: RequestParameters,
    ) -> list[ProfileFeature]:
        features = list(self.iter_profile_features(variable_ids, params))
        logger.info(f"Extracted {len(features)} profile feature(s) from {self.dataset_id}")
        return features

    def _build_profile(
        self,
        group: list[VariableMetadata],
        cell: GridCell,
        position: HorizontalPosition,
        t_index: Optional[int],
    ) -> ProfileFeature:
        x, y = cell.coordinates.x, cell.coordinates.y
        values = {}
        for var in group:
            column = self.value_source.read(var.id, t=t_index, z=slice(None), y=y, x=x)
            values[var.id] = Array1D(column)

        time = self.time_axis[t_index] if t_index is not None else None
        return ProfileFeature(
            id=self._feature_id(group, "profile", f"{x},{y}", t_index),
            name=f"Profile at {position}",
            description=f"Vertical profile of {', '.join(m.id for m in group)}",
            values=values,
            domain=self.vertical_axis,
            horizontal_position=position,
            time=time,
        )

    # -- time series -------------------------------------------------------

    def iter_timeseries_features(
        self,
        variable_ids: Optional[Iterable[str]],
        params: RequestParameters,
    ) -> Iterator[PointSeriesFeature]:
        """
        Yield one time series per selected cell and depth.

        The series covers the time steps intersecting t_extent, or the
        whole time axis. An off-axis target_t yields nothing. Depths come
        from target_z (must be on-axis), else every depth, unless a
        z_extent misses the vertical coverage. Variables without a
        temporal domain produce no series.
        """
        for group in self._groups(variable_ids):
            meta = group[0]
            if not meta.has_temporal_domain:
                logger.info(f"Variables {[m.id for m in group]} have no time axis; no time series")
                continue

            t_axis = self.time_axis
            if params.target_t is not None and t_axis.find_index_of(params.target_t) == NOT_FOUND:
                logger.info(f"Target time {params.target_t} is off the time axis {t_axis.coordinate_extent}")
                continue

            if params.t_extent is not None:
                if not params.t_extent.intersects(meta.temporal_domain.extent):
                    logger.info(
                        f"Time extent {params.t_extent} misses {meta.id} coverage {meta.temporal_domain.extent}"
                    )
                    continue
                t_range = t_axis.indices_intersecting(params.t_extent)
            else:
                t_range = range(t_axis.size)
            domain = t_axis if len(t_range) == t_axis.size else t_axis.subset(t_range)

            z_indices = self._selected_depths(meta, params)
            if not z_indices:
                continue
            logger.debug(f"Time series {[m.id for m in group]}: times {t_range}, depth indices {z_indices}")

            for cell, position in self._select_cells(meta.horizontal_domain, params):
                for z_index in z_indices:
                    yield self._build_series(group, cell, position, z_index, t_range, domain)

    def extract_timeseries_features(
        self,
        variable_ids: Optional[Iterable[str]],
        params: RequestParameters,
    ) -> list[PointSeriesFeature]:
        features = list(self.iter_timeseries_features(variable_ids, params))
        logger.info(f"Extracted {len(features)} time series feature(s) from {self.dataset_id}")
        return features

    def _build_series(
        self,
        group: list[VariableMetadata],
        cell: GridCell,
        position: HorizontalPosition,
        z_index: Optional[int],
        t_range: range,
        domain: TimeAxis,
    ) -> PointSeriesFeature:
        x, y = cell.coordinates.x, cell.coordinates.y
        values = {}
        for var in group:
            series = self.value_source.read(
                var.id, t=slice(t_range.start, t_range.stop), z=z_index, y=y, x=x
            )
            values[var.id] = Array1D(series)

        z_axis = self.vertical_axis if z_index is not None else None
        return PointSeriesFeature(
            id=self._feature_id(group, "series", f"{x},{y}", z_index),
            name=f"Time series at {position}",
            description=f"Time series of {', '.join(m.id for m in group)}",
            values=values,
            domain=domain,
            horizontal_position=position,
            vertical_position=float(z_axis[z_index]) if z_axis is not None else None,
            vertical_crs=z_axis.vertical_crs if z_axis is not None else None,
        )

    # -- trajectory --------------------------------------------------------

    def extract_trajectory_features(
        self,
        variable_ids: Optional[Iterable[str]],
        points: Iterable[TrajectoryPoint],
    ) -> list[TrajectoryFeature]:
        """
        Sample an ordered sequence of points by nearest cell.

        Points outside the horizontal grid, or whose depth/time is off the
        axis, produce missing samples. A point without depth uses the first
        level; one without time uses the last time step.
        """
        points = tuple(points)
        features = []
        for group in self._groups(variable_ids):
            meta = group[0]
            grid = meta.horizontal_domain
            samples: dict[str, list] = {m.id: [] for m in group}
            for point in points:
                index = self._trajectory_index(meta, grid, point)
                for var in group:
                    if index is None:
                        samples[var.id].append(None)
                        continue
                    t_index, z_index, y_index, x_index = index
                    sample = self.value_source.read(var.id, t=t_index, z=z_index, y=y_index, x=x_index)
                    samples[var.id].append(np.asarray(sample))

            values = {var_id: _stack_samples(seq) for var_id, seq in samples.items()}
            features.append(
                TrajectoryFeature(
                    id=self._feature_id(group, "trajectory", len(points)),
                    name=f"Trajectory of {len(points)} point(s)",
                    description=f"Trajectory of {', '.join(m.id for m in group)}",
                    values=values,
                    domain=points,
                )
            )
        logger.info(f"Extracted {len(features)} trajectory feature(s) from {self.dataset_id}")
        return features

    def _trajectory_index(
        self, meta: VariableMetadata, grid: RectilinearGrid, point: TrajectoryPoint
    ) -> Optional[tuple]:
        coords = grid.find_index_of(self._in_grid_frame(point.position, grid))
        if coords is None:
            return None

        z_index = None
        if meta.has_vertical_domain:
            z_index = 0 if point.z is None else self.vertical_axis.find_index_of(point.z)
            if z_index == NOT_FOUND:
                return None

        t_index = None
        if meta.has_temporal_domain:
            if point.time is None:
                t_index = self.time_axis.size - 1
            else:
                t_index = self.time_axis.find_index_of(point.time)
            if t_index == NOT_FOUND:
                return None

        return t_index, z_index, coords.y, coords.x

    # -- whole grid --------------------------------------------------------

    def read_feature(self, variable_id: str) -> GridFeature:
        """
        Read a whole variable as a (t, z, y, x) grid feature.

        Variables without a depth or time dimension get size 1 there.
        """
        meta = self.get_variable_metadata(variable_id)
        block = self.value_source.read(
            variable_id,
            t=slice(None) if meta.has_temporal_domain else None,
            z=slice(None) if meta.has_vertical_domain else None,
            y=slice(None),
            x=slice(None),
        )
        if not meta.has_temporal_domain:
            block = block[np.newaxis]
        if not meta.has_vertical_domain:
            block = np.expand_dims(block, 1)
        logger.debug(f"Read {variable_id} as {block.shape}")

        return GridFeature(
            id=f"{self.dataset_id}:{variable_id}",
            name=variable_id,
            description=meta.description,
            values={variable_id: Array4D(block)},
            domain=GridDomain(
                grid=meta.horizontal_domain,
                vertical_axis=self.vertical_axis if meta.has_vertical_domain else None,
                time_axis=self.time_axis if meta.has_temporal_domain else None,
            ),
        )


def _stack_samples(samples: list) -> Array1D:
    """Array1D from per-point samples, None marking a missing point"""
    present = [s for s in samples if s is not None]
    dtype = np.result_type(*(s.dtype for s in present), np.float32) if present else np.float32
    values = np.full(len(samples), np.nan, dtype=dtype)
    for i, sample in enumerate(samples):
        if sample is not None:
            values[i] = sample
    return Array1D(values)
