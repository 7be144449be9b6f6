"""
Population matrix helpers.

A population is an ``nvars x P`` matrix whose columns are individuals. The
flattened form is column-major, so gene ``var`` of individual ``ind`` sits at
``var + ind * nvars``.
"""

from typing import Iterable, Union

import numpy as np


IndexLike = Union[int, Iterable[int], np.ndarray]


def flatten(population: np.ndarray) -> np.ndarray:
    """Flatten an ``nvars x P`` population into column-major order."""
    return np.asarray(population).ravel(order="F")


def reshape(flat: np.ndarray, nvars: int) -> np.ndarray:
    """Inverse of :func:`flatten`."""
    flat = np.asarray(flat)
    if flat.size % nvars:
        raise ValueError(f"Cannot reshape {flat.size} genes into {nvars} rows")
    return flat.reshape((nvars, flat.size // nvars), order="F")


def index(rows: IndexLike, cols: IndexLike, nvars: int) -> np.ndarray:
    """
    Flat indices of the ``rows x cols`` sub-matrix.

    Columns vary slowest, matching the column-major layout, so
    ``flatten(pop)[index(rows, cols, nvars)]`` lists the selected genes of
    the first selected individual first.
    """
    rows = np.atleast_1d(np.asarray(rows, dtype=int))
    cols = np.atleast_1d(np.asarray(cols, dtype=int))
    return (rows[None, :] + cols[:, None] * nvars).ravel()
