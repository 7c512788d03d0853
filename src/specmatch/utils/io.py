from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from specmatch.errors import ValidationError
from specmatch.types import SpectralDataset

WAVENUMBER_COLUMN = "wavenumber"


def read_wide_csv(path: str | Path, metadata: str | Path | None = None) -> SpectralDataset:
    """Load a dataset from a CSV with a ``wavenumber`` column and one column per spectrum.

    ``metadata`` optionally names a second CSV with one row per spectrum, in
    column order.
    """

    frame = pd.read_csv(path)
    if WAVENUMBER_COLUMN not in frame.columns:
        raise ValidationError(f"{path} has no '{WAVENUMBER_COLUMN}' column")
    frame = frame.sort_values(WAVENUMBER_COLUMN, kind="mergesort")
    spectra = frame.drop(columns=[WAVENUMBER_COLUMN])
    meta = pd.read_csv(metadata) if metadata is not None else None
    return SpectralDataset.from_frame(frame[WAVENUMBER_COLUMN].to_numpy(dtype=np.float64), spectra, meta)
