"""Utilities for handling wavenumber grids.

All grids are 1-D ``float64`` arrays in cm⁻¹, strictly increasing. Matching
between grids is exact (``numpy.isin``) unless a tolerance is given; nothing
here interpolates, see :mod:`specmatch.conform` for that.
"""

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from specmatch.errors import ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "as_grid",
    "check_monotonic",
    "nearest_positions",
    "shared_mask",
    "wavenumber_equal",
]


def check_monotonic(wavenumbers: np.ndarray, *, eps: float = 0.0) -> None:
    """Validate that a wavenumber grid is 1-D and strictly increasing.

    Raises
    ------
    ValidationError
        If the array is not 1-D or contains repeated/decreasing values
        (``diff <= eps``).
    """

    arr = np.asarray(wavenumbers, dtype=np.float64)
    if arr.ndim != 1:
        raise ValidationError("Wavenumber grid must be a 1-D array")
    if arr.size <= 1:
        return
    if not np.all(np.isfinite(arr)):
        raise ValidationError("Wavenumber grid must not contain NaN or infinite values")
    if np.any(np.diff(arr) <= eps):
        raise ValidationError("Wavenumbers must be strictly increasing and unique")


def as_grid(values: np.ndarray | Iterable[float]) -> NDArray[np.float64]:
    """Return a validated copy of ``values`` as a wavenumber grid."""

    arr = np.atleast_1d(np.array(values, dtype=np.float64))
    check_monotonic(arr)
    return arr


def shared_mask(a: np.ndarray, b: np.ndarray) -> NDArray[np.bool_]:
    """Boolean mask over ``a`` marking wavenumbers that also occur in ``b``."""

    return np.isin(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64))


def wavenumber_equal(a: np.ndarray, b: np.ndarray, *, atol: float = 1e-8, rtol: float = 1e-5) -> bool:
    """Return ``True`` when two grids have the same length and match within tolerance."""

    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    if a_arr.shape != b_arr.shape:
        return False
    return bool(np.allclose(a_arr, b_arr, atol=atol, rtol=rtol))


def nearest_positions(
    source: np.ndarray,
    target: np.ndarray,
    *,
    tolerance: float | None = None,
) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
    """Pair each ``source`` wavenumber with its nearest ``target`` position.

    Only pairs whose distance is acceptable are returned: within ``tolerance``
    when given, otherwise within :func:`numpy.isclose` defaults. Both grids
    must be strictly increasing. Returns ``(source_idx, target_idx)``.
    """

    src = np.asarray(source, dtype=np.float64)
    tgt = np.asarray(target, dtype=np.float64)
    if src.size == 0 or tgt.size == 0:
        empty = np.empty(0, dtype=np.intp)
        return empty, empty.copy()

    right = np.clip(np.searchsorted(tgt, src), 0, tgt.size - 1)
    left = np.clip(right - 1, 0, tgt.size - 1)
    pick_left = np.abs(src - tgt[left]) <= np.abs(src - tgt[right])
    nearest = np.where(pick_left, left, right)

    if tolerance is None:
        ok = np.isclose(src, tgt[nearest])
    else:
        if tolerance < 0:
            raise ValidationError("tolerance must be non-negative")
        ok = np.abs(src - tgt[nearest]) <= tolerance

    src_idx = np.flatnonzero(ok)
    tgt_idx = nearest[ok]
    # Several source points may land on one target slot; the last one wins
    # when assigning, so keep pairs ordered by source position.
    return src_idx.astype(np.intp), tgt_idx.astype(np.intp)
