"""Identification with a pretrained classifier.

The classifier expects spectra on its own training grid, so unknowns are
first realigned with :func:`fill_spec`, then scored by :func:`ai_classify`,
which reduces the per-class probabilities to the best class per spectrum.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from specmatch.errors import ValidationError
from specmatch.types import SpectralDataset, TrainedModel
from specmatch.wavenumbers import nearest_positions

logger = logging.getLogger(__name__)

CLASSIFICATION_COLUMNS = ("spectrum_index", "object_id", "class_index", "probability", "class_label")

__all__ = ["CLASSIFICATION_COLUMNS", "ai_classify", "best_classes", "fill_spec", "predict_long"]


def fill_spec(x: SpectralDataset, fill: SpectralDataset, tolerance: float | None = None) -> SpectralDataset:
    """Realign ``x`` onto the grid of the single-spectrum dataset ``fill``.

    Every output spectrum starts as a copy of ``fill``'s intensities; each
    position that ``x`` covers (nearest ``fill`` wavenumber within
    ``tolerance``, or :func:`numpy.isclose` when ``None``) takes ``x``'s value.
    Wavenumbers of ``x`` outside ``fill``'s grid are dropped. The result is a
    new dataset; neither input is modified.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    if not isinstance(fill, SpectralDataset):
        raise ValidationError("'fill' needs to be a SpectralDataset")
    if fill.n_spectra != 1:
        raise ValidationError(f"'fill' must hold exactly one spectrum, got {fill.n_spectra}")

    src_idx, tgt_idx = nearest_positions(x.wavenumbers, fill.wavenumbers, tolerance=tolerance)
    filled = np.repeat(fill.intensities[:, :1], x.n_spectra, axis=1)
    filled[tgt_idx, :] = x.intensities[src_idx, :]

    unmatched = x.n_wavenumbers - src_idx.size
    if unmatched:
        logger.debug("Dropped %d wavenumbers outside the fill grid", unmatched)
    logger.debug(
        "Filled %d of %d grid positions from the fill spectrum",
        fill.n_wavenumbers - np.unique(tgt_idx).size,
        fill.n_wavenumbers,
    )
    return SpectralDataset(
        fill.wavenumbers.copy(),
        filled,
        ids=x.ids,
        metadata=x.metadata.copy(),
    )


def predict_long(model: TrainedModel, matrix: NDArray[np.float64]) -> pd.DataFrame:
    """Run ``model`` and return one ``(spectrum_index, class_index, probability)`` row per cell.

    Spectra the model produced no probability for are padded with a single
    NaN row so every input position is represented.
    """

    n_rows = matrix.shape[0]
    raw = np.asarray(model.predict(matrix, model.min_lambda), dtype=np.float64)
    if raw.ndim == 3:
        raw = raw[:, :, 0]
    if raw.ndim == 1:
        raw = raw.reshape(-1, 1)
    if raw.ndim != 2:
        raise ValidationError(f"Model returned probabilities of unsupported shape {raw.shape}")

    n_pred, n_classes = raw.shape
    long = pd.DataFrame(
        {
            "spectrum_index": np.repeat(np.arange(n_pred), n_classes),
            "class_index": np.tile(np.arange(n_classes), n_pred).astype(np.float64),
            "probability": raw.reshape(-1),
        }
    )
    long = long[long["probability"].notna() & (long["spectrum_index"] < n_rows)]

    missing = np.setdiff1d(np.arange(n_rows), long["spectrum_index"].unique())
    if missing.size:
        pad = pd.DataFrame(
            {
                "spectrum_index": missing,
                "class_index": np.nan,
                "probability": np.nan,
            }
        )
        long = pd.concat([long, pad], ignore_index=True)
    return long.reset_index(drop=True)


def best_classes(long: pd.DataFrame) -> pd.DataFrame:
    """Rows holding the maximum probability of their spectrum.

    All tied rows are kept; a spectrum with only missing probabilities keeps
    its missing row.
    """

    best = long.groupby("spectrum_index", sort=False)["probability"].transform("max")
    keep = (long["probability"] == best) | long["probability"].isna()
    return long[keep]


def ai_classify(x: SpectralDataset, model: TrainedModel, fill: SpectralDataset | None = None) -> pd.DataFrame:
    """Classify each spectrum of ``x`` with a pretrained ``model``.

    Returns a table with ``spectrum_index`` (0-based position in ``x``),
    ``object_id``, ``class_index``, ``probability`` and ``class_label``,
    sorted by ``spectrum_index``. Errors raised by the model's prediction
    function propagate unchanged.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    if not isinstance(model, TrainedModel):
        raise ValidationError("'model' needs to be a TrainedModel")

    aligned = fill_spec(x, fill) if fill is not None else x
    if model.n_features is not None and model.n_features != aligned.n_wavenumbers:
        msg = (
            f"Model expects {model.n_features} wavenumbers but the spectra have "
            f"{aligned.n_wavenumbers}; pass a fill spectrum on the model grid"
        )
        raise ValidationError(msg)

    matrix = np.ascontiguousarray(aligned.intensities.T)
    long = predict_long(model, matrix)
    res = best_classes(long)

    labels = pd.DataFrame(
        {
            "class_index": np.asarray(list(model.class_labels), dtype=np.float64),
            "class_label": pd.Series(list(model.class_labels.values()), dtype=object),
        }
    )
    res = res.merge(labels, how="left", on="class_index", sort=False)
    res = res.sort_values("spectrum_index", kind="mergesort").reset_index(drop=True)
    res["spectrum_index"] = res["spectrum_index"].astype(np.int64)
    res.insert(1, "object_id", [aligned.ids[i] for i in res["spectrum_index"]])
    res["class_label"] = pd.Series([None if pd.isna(v) else v for v in res["class_label"]], dtype=object)
    return res.loc[:, list(CLASSIFICATION_COLUMNS)]
