# Grid Features - Raw Value Sources
# SPDX-License-Identifier: Apache-2.0

"""
Storage collaborator that turns resolved indices into raw samples.

The engine never touches files. It asks a ValueSource for one block per
(variable, index tuple), where each of t/z/y/x is an integer (fixed),
a slice (range) or None (the variable has no such dimension). The block
comes back with one dimension per slice, in (t, z, y, x) order.

Read errors propagate unchanged; retry policy belongs to the source.
"""

import logging
from typing import Mapping, Protocol, Union

import numpy as np
import xarray as xr

logger = logging.getLogger(__name__)

Index = Union[int, slice, None]

# Canonical order of index roles
ROLES = ("t", "z", "y", "x")


class ValueSource(Protocol):
    """Anything that can read index blocks of named variables"""

    def read(
        self,
        variable_id: str,
        t: Index = None,
        z: Index = None,
        y: Index = None,
        x: Index = None,
    ) -> np.ndarray:
        ...


class XarrayValueSource:
    """
    Reads blocks from an xarray Dataset.

    Args:
        dataset: Source dataset (lazily opened or in memory)
        dimensions: variable id -> {role: dimension name} for the roles
            ("t", "z", "y", "x") the variable actually has
    """

    def __init__(self, dataset: xr.Dataset, dimensions: Mapping[str, Mapping[str, str]]):
        self.dataset = dataset
        self.dimensions = {k: dict(v) for k, v in dimensions.items()}

    def read(
        self,
        variable_id: str,
        t: Index = None,
        z: Index = None,
        y: Index = None,
        x: Index = None,
    ) -> np.ndarray:
        if variable_id not in self.dimensions:
            raise ValueError(f"Unknown variable: {variable_id}")

        roles = self.dimensions[variable_id]
        requested = dict(zip(ROLES, (t, z, y, x)))

        indexers = {}
        kept = []
        for role in ROLES:
            dim = roles.get(role)
            index = requested[role]
            if dim is None:
                continue
            if index is None:
                # Dimension present but not constrained: first entry
                index = 0
            indexers[dim] = index
            if isinstance(index, slice):
                kept.append(dim)

        da = self.dataset[variable_id].isel(indexers)
        # Any dimension outside the four roles is reduced to its first entry
        extra = {d: 0 for d in da.dims if d not in kept}
        if extra:
            da = da.isel(extra)
        return np.asarray(da.transpose(*kept).values)
