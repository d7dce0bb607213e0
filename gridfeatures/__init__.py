# Grid Features - Gridded Dataset Query Engine
# SPDX-License-Identifier: Apache-2.0

"""
Feature extraction from gridded scientific datasets.

Answers map, vertical profile, time series and trajectory queries
against longitude x latitude x depth x time grids.

Core operations:
1. Index resolution: bounding boxes, depth/time extents and single
   targets resolved into axis index ranges (with longitude wraparound)
2. Extraction: one read per variable and index tuple through an
   injected value source
3. Packaging: shaped, read-only value containers with missing masks
"""

from gridfeatures.extent import Extent
from gridfeatures.core import BoundingBox, HorizontalPosition, VerticalCrs
from gridfeatures.axis import ReferenceableAxis, RegularAxis, TimeAxis, VerticalAxis
from gridfeatures.grid import RectilinearGrid, regular_grid
from gridfeatures.variables import FeatureKind, VariableMetadata
from gridfeatures.params import RequestParameters
from gridfeatures.features import (
    GridFeature,
    MapFeature,
    PointSeriesFeature,
    ProfileFeature,
    TrajectoryFeature,
    TrajectoryPoint,
)
from gridfeatures.dataset import GriddedDataset
from gridfeatures.bootstrap import dataset_from_xarray, generate_mock_dataset, open_dataset

__version__ = "0.1.0"

__all__ = [
    "Extent",
    "BoundingBox",
    "HorizontalPosition",
    "VerticalCrs",
    "ReferenceableAxis",
    "RegularAxis",
    "TimeAxis",
    "VerticalAxis",
    "RectilinearGrid",
    "regular_grid",
    "FeatureKind",
    "VariableMetadata",
    "RequestParameters",
    "GridFeature",
    "MapFeature",
    "PointSeriesFeature",
    "ProfileFeature",
    "TrajectoryFeature",
    "TrajectoryPoint",
    "GriddedDataset",
    "dataset_from_xarray",
    "generate_mock_dataset",
    "open_dataset",
]
