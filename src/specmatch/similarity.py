"""Pairwise correlation between an unknown dataset and a reference library."""

from __future__ import annotations

import logging

import numpy as np
from numpy.typing import ArrayLike, NDArray

from specmatch.errors import DiagnosticCode, ValidationError, warn_recoverable
from specmatch.types import SimilarityMatrix, SpectralDataset
from specmatch.wavenumbers import shared_mask

logger = logging.getLogger(__name__)

MIN_SHARED_WAVENUMBERS = 3
"""Fewest common grid points for which a correlation is attempted."""

__all__ = [
    "MIN_SHARED_WAVENUMBERS",
    "cor_spec",
    "make_rel",
    "mean_replace",
    "pearson_columns",
]


def make_rel(values: ArrayLike, na_rm: bool = True, axis: int = 0) -> NDArray[np.float64]:
    """Scale spectra to relative intensity (each divided by its own sum).

    With ``na_rm`` missing values are ignored in the sum; otherwise any NaN
    makes the whole spectrum NaN. A zero sum yields NaN rather than ``inf``.
    """

    arr = np.asarray(values, dtype=np.float64)
    total = np.nansum(arr, axis=axis, keepdims=True) if na_rm else np.sum(arr, axis=axis, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        rel = np.where(total != 0, arr / np.where(total != 0, total, 1.0), np.nan)
    return rel


def mean_replace(values: ArrayLike, axis: int = 0) -> NDArray[np.float64]:
    """Replace missing values by the mean of the remaining values along ``axis``.

    An all-missing spectrum stays missing.
    """

    arr = np.array(values, dtype=np.float64)
    missing = np.isnan(arr)
    if not missing.any():
        return arr
    counts = np.sum(~missing, axis=axis, keepdims=True)
    sums = np.nansum(arr, axis=axis, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        means = np.where(counts > 0, sums / np.maximum(counts, 1), np.nan)
    return np.where(missing, np.broadcast_to(means, arr.shape), arr)


def pearson_columns(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
    """Pearson correlation between every column of ``a`` and every column of ``b``.

    Returns an ``(a.shape[1], b.shape[1])`` matrix. Columns without variance
    (or containing NaN) produce NaN entries.
    """

    if a.shape[0] != b.shape[0]:
        raise ValidationError("Correlated arrays must share the same number of rows")
    a_c = a - a.mean(axis=0, keepdims=True)
    b_c = b - b.mean(axis=0, keepdims=True)
    a_norm = np.sqrt(np.sum(a_c * a_c, axis=0))
    b_norm = np.sqrt(np.sum(b_c * b_c, axis=0))
    # centring a constant column can leave rounding residue; test the raw range
    a_flat = np.ptp(a, axis=0) == 0 if a.shape[0] else np.ones(a.shape[1], dtype=bool)
    b_flat = np.ptp(b, axis=0) == 0 if b.shape[0] else np.ones(b.shape[1], dtype=bool)
    denom = np.outer(a_norm, b_norm)
    valid = (denom > 0) & ~a_flat[:, None] & ~b_flat[None, :]
    with np.errstate(divide="ignore", invalid="ignore"):
        cor = np.where(valid, (a_c.T @ b_c) / np.where(valid, denom, 1.0), np.nan)
    return np.clip(cor, -1.0, 1.0)


def _prepare(values: NDArray[np.float64], na_rm: bool) -> NDArray[np.float64]:
    return mean_replace(make_rel(values, na_rm=na_rm, axis=0), axis=0)


def cor_spec(x: SpectralDataset, library: SpectralDataset, na_rm: bool = True) -> SimilarityMatrix:
    """Correlate every library spectrum with every spectrum of ``x``.

    Both datasets are restricted to their common wavenumbers, converted to
    relative intensity and mean-filled before the correlation. Rows of the
    result are library spectra, columns are the spectra of ``x``.

    Raises
    ------
    ValidationError
        If either argument is not a :class:`SpectralDataset` or fewer than
        three wavenumbers are shared.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    if not isinstance(library, SpectralDataset):
        raise ValidationError("'library' needs to be a SpectralDataset for correlation matching")

    in_library = shared_mask(x.wavenumbers, library.wavenumbers)
    n_shared = int(in_library.sum())
    if n_shared < MIN_SHARED_WAVENUMBERS:
        msg = (
            f"there are less than {MIN_SHARED_WAVENUMBERS} matching wavenumbers in the objects "
            "you are trying to correlate; consider first conforming the spectra to the same "
            "wavenumbers"
        )
        raise ValidationError(msg)

    if n_shared < x.n_wavenumbers:
        dropped = " ".join(f"{w:g}" for w in x.wavenumbers[~in_library])
        logger.warning("Ignoring %d wavenumbers absent from the library", x.n_wavenumbers - n_shared)
        warn_recoverable(
            DiagnosticCode.PARTIAL_OVERLAP,
            "some wavenumbers in 'x' are not in the library and are not used in the "
            f"identification routine: {dropped}",
        )

    in_x = shared_mask(library.wavenumbers, x.wavenumbers)
    lib = _prepare(library.intensities[in_x, :], na_rm)
    obj = _prepare(x.intensities[in_library, :], na_rm)

    values = pearson_columns(lib, obj)
    logger.debug(
        "Correlated %d library spectra with %d unknowns over %d wavenumbers",
        library.n_spectra,
        x.n_spectra,
        n_shared,
    )
    return SimilarityMatrix(values=values, library_ids=library.ids, object_ids=x.ids)
