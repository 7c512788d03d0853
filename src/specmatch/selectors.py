"""Spectrum selection: selector variants plus ``filter_spec``/``get_metadata``."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from specmatch.errors import ValidationError
from specmatch.types import SpectralDataset

__all__ = [
    "ByIndex",
    "ByName",
    "ByPredicate",
    "Selector",
    "SelectorLike",
    "as_selector",
    "filter_spec",
    "get_metadata",
    "is_empty_vector",
]


@dataclass(frozen=True)
class ByName:
    """Select spectra whose id is in ``names``; dataset order is kept."""

    names: tuple[str, ...]

    def resolve(self, dataset: SpectralDataset) -> NDArray[np.intp]:
        wanted = set(self.names)
        return np.asarray([i for i, sid in enumerate(dataset.ids) if sid in wanted], dtype=np.intp)


@dataclass(frozen=True)
class ByIndex:
    """Select spectra by 0-based position, in the given order.

    Positions must be non-negative; there is no counting from the end and no
    exclusion syntax.
    """

    indices: tuple[int, ...]

    def resolve(self, dataset: SpectralDataset) -> NDArray[np.intp]:
        idx = np.asarray(self.indices, dtype=np.intp)
        n = dataset.n_spectra
        if idx.size and idx.min() < 0:
            raise ValidationError("Spectrum indices must be non-negative")
        if idx.size and idx.max() >= n:
            raise ValidationError(f"Spectrum index out of range for a dataset of {n} spectra")
        return idx


@dataclass(frozen=True)
class ByPredicate:
    """Select spectra whose metadata row satisfies ``predicate``."""

    predicate: Callable[[pd.Series], bool]

    def resolve(self, dataset: SpectralDataset) -> NDArray[np.intp]:
        keep = [bool(self.predicate(row)) for _, row in dataset.metadata.iterrows()]
        return np.flatnonzero(np.asarray(keep, dtype=bool)).astype(np.intp)


Selector = Union[ByName, ByIndex, ByPredicate]
SelectorLike = Union[Selector, str, int, Sequence[str], Sequence[int], Sequence[bool], NDArray[Any], Callable[[pd.Series], bool]]


def _is_bool_mask(values: Sequence[Any] | NDArray[Any]) -> bool:
    arr = np.asarray(values)
    return arr.dtype == np.bool_


def as_selector(logic: SelectorLike, n_spectra: int | None = None) -> Selector:
    """Coerce the accepted selection forms into a single :data:`Selector` variant.

    Strings and string sequences select by name, integers by position,
    boolean masks become the positions of their ``True`` entries and
    callables are applied to metadata rows.
    """

    if isinstance(logic, (ByName, ByIndex, ByPredicate)):
        return logic
    if isinstance(logic, str):
        return ByName((logic,))
    if isinstance(logic, (bool, np.bool_)):
        raise ValidationError("A single boolean is not a valid selection; pass a mask")
    if isinstance(logic, (int, np.integer)):
        return ByIndex((int(logic),))
    if callable(logic):
        return ByPredicate(logic)
    if isinstance(logic, (pd.Series, pd.Index)):
        logic = logic.to_numpy()
    if isinstance(logic, (Sequence, np.ndarray)):
        values = list(logic)
        if not values:
            return ByIndex(())
        if _is_bool_mask(values):
            if n_spectra is not None and len(values) != n_spectra:
                msg = f"Boolean mask of length {len(values)} does not match {n_spectra} spectra"
                raise ValidationError(msg)
            return ByIndex(tuple(int(i) for i in np.flatnonzero(np.asarray(values, dtype=bool))))
        if all(isinstance(v, str) for v in values):
            return ByName(tuple(values))
        if all(isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_)) for v in values):
            return ByIndex(tuple(int(v) for v in values))
    raise ValidationError(f"Unsupported spectrum selection: {logic!r}")


def _resolve(x: SpectralDataset, logic: SelectorLike) -> NDArray[np.intp]:
    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")
    return as_selector(logic, x.n_spectra).resolve(x)


def filter_spec(x: SpectralDataset, logic: SelectorLike) -> SpectralDataset:
    """Return a new dataset with only the selected spectra and metadata rows.

    Selecting nothing is valid and gives a dataset with the same grid and no
    spectra.
    """

    return x.take(_resolve(x, logic))


def is_empty_vector(values: pd.Series) -> bool:
    """``True`` when every entry is missing or a blank string."""

    for value in values:
        if value is None:
            continue
        if isinstance(value, str):
            if value.strip():
                return False
            continue
        if isinstance(value, float) and np.isnan(value):
            continue
        if pd.api.types.is_scalar(value) and pd.isna(value):
            continue
        return False
    return True


def get_metadata(x: SpectralDataset, logic: SelectorLike, rm_empty: bool = True) -> pd.DataFrame:
    """Metadata rows of the selected spectra, in selection order.

    With ``rm_empty`` columns that hold no information across the selection
    (all missing or blank) are dropped.
    """

    res = x.metadata.iloc[_resolve(x, logic)].reset_index(drop=True)
    if rm_empty:
        keep = [col for col in res.columns if not is_empty_vector(res[col])]
        res = res.loc[:, keep]
    return res
