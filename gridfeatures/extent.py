# Grid Features - Extents
# SPDX-License-Identifier: Apache-2.0

"""
Closed intervals over ordered values (depths, longitudes, datetimes).
"""

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Extent(Generic[T]):
    """
    Closed interval [low, high] over a totally ordered type.

    Touching endpoints count as intersecting, so a single-point extent
    (low == high) intersects every extent that contains that point.
    """

    low: T
    high: T

    def __post_init__(self):
        if self.high < self.low:
            raise ValueError(f"Invalid extent: low {self.low} > high {self.high}")

    @classmethod
    def from_values(cls, values: Iterable[T]) -> "Extent[T]":
        """Smallest extent enclosing all values"""
        values = list(values)
        if not values:
            raise ValueError("Cannot build an extent from no values")
        return cls(min(values), max(values))

    def contains(self, value: T) -> bool:
        return self.low <= value <= self.high

    def intersects(self, other: "Extent[T]") -> bool:
        return self.low <= other.high and other.low <= self.high

    def intersection(self, other: "Extent[T]") -> Optional["Extent[T]"]:
        """Overlap of two extents, or None when they are disjoint"""
        if not self.intersects(other):
            return None
        return Extent(max(self.low, other.low), min(self.high, other.high))

    def clamp(self, value: T) -> T:
        """Nearest value inside this extent"""
        if value < self.low:
            return self.low
        if value > self.high:
            return self.high
        return value

    def __str__(self) -> str:
        return f"[{self.low}, {self.high}]"
