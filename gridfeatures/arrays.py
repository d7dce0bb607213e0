# Grid Features - Value Containers
# SPDX-License-Identifier: Apache-2.0

"""
Fixed-shape, read-only containers over extracted samples.

Index order is (t, z, y, x) or the reduced subset a feature needs:
Array1D for profiles, series and trajectories, Array2D (y, x) for maps,
Array4D (t, z, y, x) for whole-grid reads.

Missing samples are tracked explicitly: a sample is missing if its mask
entry is set or it is NaN (tested with numpy.isnan, never by equality).
"""

from typing import Optional

import numpy as np


class Array:
    """Read-only n-dimensional sample container"""

    ndim: Optional[int] = None

    def __init__(self, values, mask: Optional[np.ndarray] = None):
        data = np.array(values, copy=True)
        if self.ndim is not None and data.ndim != self.ndim:
            raise ValueError(
                f"{type(self).__name__} needs {self.ndim} dimensions, got shape {data.shape}"
            )

        missing = np.zeros(data.shape, dtype=bool)
        if mask is not None:
            mask = np.asarray(mask, dtype=bool)
            if mask.shape != data.shape:
                raise ValueError(f"Mask shape {mask.shape} != values shape {data.shape}")
            missing |= mask
        if np.issubdtype(data.dtype, np.floating):
            missing |= np.isnan(data)

        data.setflags(write=False)
        missing.setflags(write=False)
        self._data = data
        self._missing = missing

    @property
    def shape(self) -> tuple[int, ...]:
        return self._data.shape

    @property
    def size(self) -> int:
        return self._data.size

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def values(self) -> np.ndarray:
        """Underlying (read-only) numpy array, missing samples included"""
        return self._data

    @property
    def missing(self) -> np.ndarray:
        """Boolean array, True where a sample is missing"""
        return self._missing

    def count_missing(self) -> int:
        return int(self._missing.sum())

    def get(self, *index: int) -> Optional[float]:
        """Sample at an index, or None if it is missing"""
        if self._missing[index]:
            return None
        return self._data[index].item()

    def __getitem__(self, index):
        if not isinstance(index, tuple):
            index = (index,)
        return self.get(*index)

    def __len__(self) -> int:
        return self._data.shape[0]

    def to_masked(self) -> np.ma.MaskedArray:
        return np.ma.MaskedArray(self._data, mask=self._missing)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Array):
            return NotImplemented
        return (
            self.shape == other.shape
            and bool(np.array_equal(self._missing, other._missing))
            and bool(np.array_equal(self._data[~self._missing], other._data[~other._missing]))
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(shape={self.shape}, dtype={self.dtype})"


class Array1D(Array):
    ndim = 1


class Array2D(Array):
    """Map values indexed (y, x)"""

    ndim = 2

    @property
    def y_size(self) -> int:
        return self.shape[0]

    @property
    def x_size(self) -> int:
        return self.shape[1]


class Array4D(Array):
    """Whole-grid values indexed (t, z, y, x)"""

    ndim = 4

    @property
    def t_size(self) -> int:
        return self.shape[0]

    @property
    def z_size(self) -> int:
        return self.shape[1]

    @property
    def y_size(self) -> int:
        return self.shape[2]

    @property
    def x_size(self) -> int:
        return self.shape[3]


def take_cells(
    plane: np.ndarray,
    y_indices: np.ndarray,
    x_indices: np.ndarray,
    missing: Optional[np.ndarray] = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Gather plane[y, x] for every (y, x) pair of two index vectors.

    Negative indices mark rows/columns with no source cell; they come
    back as missing. Returns (values, missing_mask), both shaped
    (len(y_indices), len(x_indices)). Float outputs carry NaN where missing.
    """
    y_indices = np.asarray(y_indices, dtype=np.int64)
    x_indices = np.asarray(x_indices, dtype=np.int64)
    valid_y = y_indices >= 0
    valid_x = x_indices >= 0
    rows = np.where(valid_y, y_indices, 0)
    cols = np.where(valid_x, x_indices, 0)

    values = np.array(plane[np.ix_(rows, cols)], copy=True)
    mask = ~np.outer(valid_y, valid_x)
    if missing is not None:
        mask |= np.asarray(missing, dtype=bool)[np.ix_(rows, cols)]
    if np.issubdtype(values.dtype, np.floating):
        values[mask] = np.nan
    return values, mask
