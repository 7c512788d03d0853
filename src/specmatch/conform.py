"""Put spectra on a standard wavenumber grid before matching."""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from specmatch.errors import ValidationError
from specmatch.types import SpectralDataset
from specmatch.wavenumbers import nearest_positions

logger = logging.getLogger(__name__)

ConformType = Literal["interp", "roll"]

__all__ = ["conform_res", "conform_spec"]


def conform_res(range_: ArrayLike, res: float = 5.0) -> NDArray[np.float64]:
    """Regular grid from ``ceil(min)`` to ``floor(max)`` in steps of ``res``."""

    if res <= 0:
        raise ValidationError("res must be positive")
    values = np.asarray(range_, dtype=np.float64)
    lo, hi = np.ceil(np.nanmin(values)), np.floor(np.nanmax(values))
    if hi < lo:
        return np.empty(0, dtype=np.float64)
    n = int(np.floor((hi - lo) / res + 1e-9)) + 1
    return lo + res * np.arange(n, dtype=np.float64)


def _interp_column(x: NDArray[np.float64], y: NDArray[np.float64], xout: NDArray[np.float64]) -> NDArray[np.float64]:
    ok = np.isfinite(y)
    if ok.sum() < 2:
        return np.full(xout.shape, np.nan)
    out = np.interp(xout, x[ok], y[ok])
    out[(xout < x[ok][0]) | (xout > x[ok][-1])] = np.nan
    return out


def conform_spec(
    x: SpectralDataset,
    range: ArrayLike | None = None,
    res: float | None = 5.0,
    type: ConformType = "interp",
) -> SpectralDataset:
    """Return ``x`` resampled onto a new wavenumber grid.

    With ``res`` the grid is regular (see :func:`conform_res`) over ``range``
    clipped to ``x``'s own span; with ``res=None`` the values of ``range``
    inside that span are used as is. ``type="interp"`` interpolates linearly,
    ``type="roll"`` takes the nearest measured value.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    if type not in ("interp", "roll"):
        raise ValidationError("type must be either 'interp' or 'roll'")

    target = x.wavenumbers if range is None else np.asarray(range, dtype=np.float64)
    lo, hi = float(x.wavenumbers[0]), float(x.wavenumbers[-1])
    if res is not None:
        span = (max(float(np.nanmin(target)), lo), min(float(np.nanmax(target)), hi))
        wn = conform_res(span, res=res)
    else:
        wn = np.unique(target[(target >= lo) & (target <= hi)])
    if wn.size == 0:
        raise ValidationError("The requested range does not overlap the spectra")

    if type == "interp":
        columns = [_interp_column(x.wavenumbers, x.intensities[:, j], wn) for j in np.arange(x.n_spectra)]
        values = np.column_stack(columns) if columns else np.empty((wn.size, 0))
    else:
        _, nearest = nearest_positions(wn, x.wavenumbers, tolerance=np.inf)
        values = x.intensities[nearest, :]

    logger.debug("Conformed %d spectra to %d wavenumbers (%s)", x.n_spectra, wn.size, type)
    return SpectralDataset(wn, values, ids=x.ids, metadata=x.metadata.copy())
