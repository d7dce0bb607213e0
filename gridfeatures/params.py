# Grid Features - Request Parameters
# SPDX-License-Identifier: Apache-2.0

"""
Normalised description of what a caller wants extracted.

Which fields an extraction honours depends on the feature kind:

    map         x/y request size, bbox, target_z, target_t
    profile     bbox or target_position, z_extent/target_z (gate only),
                t_extent or target_t (select instants)
    timeseries  bbox or target_position, z_extent or target_z (select
                depths), t_extent (restricts the series), target_t (gate only)
"""

from datetime import datetime, timezone
from numbers import Real
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, field_validator

from gridfeatures.core import BoundingBox, HorizontalPosition
from gridfeatures.extent import Extent


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class RequestParameters(BaseModel):
    """Request model for feature extraction"""

    model_config = ConfigDict(frozen=True)

    # Output resolution of map features
    x_request_size: int = Field(..., ge=1, description="Output columns for map requests")
    y_request_size: int = Field(..., ge=1, description="Output rows for map requests")

    # Horizontal selection
    bbox: Optional[InstanceOf[BoundingBox]] = Field(None, description="Horizontal box")
    target_position: Optional[InstanceOf[HorizontalPosition]] = Field(
        None, description="Fixed horizontal position (profile/series at a point)"
    )

    # Vertical selection
    z_extent: Optional[InstanceOf[Extent]] = Field(None, description="Depth range")
    target_z: Optional[float] = Field(None, description="Single depth")

    # Temporal selection
    t_extent: Optional[InstanceOf[Extent]] = Field(None, description="Time range")
    target_t: Optional[datetime] = Field(None, description="Single instant")

    @field_validator("z_extent")
    @classmethod
    def check_z_extent(cls, v):
        if v is None:
            return v
        if not (isinstance(v.low, Real) and isinstance(v.high, Real)):
            raise ValueError(f"Depth extent must be numeric, got {v}")
        return v

    @field_validator("t_extent")
    @classmethod
    def check_t_extent(cls, v):
        if v is None:
            return v
        if not (isinstance(v.low, datetime) and isinstance(v.high, datetime)):
            raise ValueError(f"Time extent must be datetimes, got {v}")
        return Extent(as_utc(v.low), as_utc(v.high))

    @field_validator("target_t")
    @classmethod
    def check_target_t(cls, v):
        return as_utc(v)

    @classmethod
    def for_grid(cls, x_size: int, y_size: int, **kwargs) -> "RequestParameters":
        """Shorthand with positional output sizes"""
        return cls(x_request_size=x_size, y_request_size=y_size, **kwargs)
