"""Signal and noise metrics for screening spectra before identification."""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from specmatch.errors import DiagnosticCode, ValidationError, warn_recoverable
from specmatch.types import SpectralDataset

logger = logging.getLogger(__name__)

MIN_FINITE_VALUES = 20
"""Fewest finite intensities needed for a meaningful metric."""

RUN_WINDOW = 20

Metric = Literal[
    "sig",
    "noise",
    "sig_times_noise",
    "sig_over_noise",
    "run_sig_over_noise",
    "log_tot_sig",
    "tot_sig",
]
METRICS: tuple[str, ...] = (
    "sig",
    "noise",
    "sig_times_noise",
    "sig_over_noise",
    "run_sig_over_noise",
    "log_tot_sig",
    "tot_sig",
)

__all__ = ["METRICS", "MIN_FINITE_VALUES", "sig_noise"]


def _signal_noise(y: NDArray[np.float64], metric: str, na_rm: bool) -> tuple[float, float]:
    if metric == "run_sig_over_noise":
        finite = y[~np.isnan(y)]
        running = pd.Series(finite).rolling(RUN_WINDOW).max().to_numpy()
        running[-RUN_WINDOW:] = np.nan
        signal = float(np.nanmax(running)) if np.any(~np.isnan(running)) else np.nan
        nonzero = running[(running != 0) & ~np.isnan(running)]
        noise = float(np.median(nonzero)) if nonzero.size else np.nan
        return signal, noise

    if na_rm:
        values = y[~np.isnan(y)]
    else:
        values = y
    signal = float(np.mean(values)) if values.size else np.nan
    noise = float(np.std(values, ddof=1)) if values.size > 1 else np.nan
    return signal, noise


def _metric(y: NDArray[np.float64], metric: str, na_rm: bool) -> float:
    if metric == "tot_sig":
        return float(np.sum(y))
    if metric == "log_tot_sig":
        return float(np.sum(np.exp(y)))

    signal, noise = _signal_noise(y, metric, na_rm)
    if metric == "sig":
        return signal
    if metric == "noise":
        return noise
    if metric == "sig_times_noise":
        return abs(signal * noise)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(abs(np.float64(signal) / np.float64(noise)))


def sig_noise(x: SpectralDataset, metric: Metric = "run_sig_over_noise", na_rm: bool = True) -> pd.Series:
    """Compute one signal/noise metric per spectrum.

    Metrics:

    * ``sig`` -- mean intensity; ``noise`` -- standard deviation;
    * ``sig_times_noise`` and ``sig_over_noise`` -- absolute product/ratio;
    * ``run_sig_over_noise`` -- maximum of a 20-point running maximum over
      the median of its non-zero values (the trailing window is discarded);
    * ``tot_sig`` -- sum of intensities; ``log_tot_sig`` -- sum of
      ``exp(intensity)`` for spectra in log units.

    Spectra with fewer than 20 finite intensities get NaN and a
    :class:`~specmatch.errors.RecoverableWarning`.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    if metric not in METRICS:
        raise ValidationError(f"Unknown metric {metric!r}; expected one of {', '.join(METRICS)}")

    out = np.full(x.n_spectra, np.nan, dtype=np.float64)
    short: list[str] = []
    for j, sid in enumerate(x.ids):
        y = x.intensities[:, j]
        if int(np.sum(~np.isnan(y))) < MIN_FINITE_VALUES:
            short.append(sid)
            continue
        out[j] = _metric(y, metric, na_rm)

    if short:
        logger.warning("%d spectra have fewer than %d intensity values", len(short), MIN_FINITE_VALUES)
        warn_recoverable(
            DiagnosticCode.INSUFFICIENT_SAMPLES,
            f"Need at least {MIN_FINITE_VALUES} intensity values to calculate the signal or "
            f"noise values accurately; returning NaN for {', '.join(short)}",
        )
    return pd.Series(out, index=pd.Index(list(x.ids), name="col_id"), name=metric)
