# Grid Features - Variable Metadata
# SPDX-License-Identifier: Apache-2.0

"""
Per-variable description of domain coverage.

A variable always has a horizontal domain (its grid). The vertical and
temporal domains are optional: a variable without one is constant along
that dimension and no iteration happens there.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from gridfeatures.core import VerticalCrs
from gridfeatures.extent import Extent
from gridfeatures.grid import RectilinearGrid


class FeatureKind(Enum):
    """Kinds of feature the engine can produce"""
    GRID = "grid"
    MAP = "map"
    PROFILE = "profile"
    POINT_SERIES = "point_series"
    TRAJECTORY = "trajectory"


@dataclass(frozen=True)
class VerticalDomain:
    """Depth coverage of a variable (extent of the axis values)"""

    extent: Extent[float]
    vertical_crs: VerticalCrs


@dataclass(frozen=True)
class TemporalDomain:
    """Time coverage of a variable (extent of the axis values)"""

    extent: Extent[datetime]
    calendar: str = "standard"


@dataclass(frozen=True)
class VariableMetadata:
    """Definition of a gridded variable exposed by a dataset"""

    # Identifiers
    id: str
    horizontal_domain: RectilinearGrid

    # Optional dimensions
    vertical_domain: Optional[VerticalDomain] = None
    temporal_domain: Optional[TemporalDomain] = None

    # Scalar quantity, as opposed to one component of a vector field
    is_scalar: bool = True

    # Descriptive
    description: str = ""
    units: str = ""

    # The feature type a map request naturally yields for this variable
    map_feature_kind: FeatureKind = FeatureKind.MAP

    @property
    def has_vertical_domain(self) -> bool:
        return self.vertical_domain is not None

    @property
    def has_temporal_domain(self) -> bool:
        return self.temporal_domain is not None

    def domain_key(self) -> tuple:
        """
        Key shared by variables that can be extracted into one feature.

        Variables on the same grid with the same presence of depth and
        time dimensions are grouped together.
        """
        return (
            self.horizontal_domain,
            self.has_vertical_domain,
            self.has_temporal_domain,
        )
