from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from specmatch.errors import ValidationError
from specmatch.wavenumbers import as_grid

logger = logging.getLogger(__name__)

__all__ = [
    "ID_COLUMN",
    "Library",
    "SimilarityMatrix",
    "SpectralDataset",
    "TrainedModel",
]

ID_COLUMN = "col_id"
"""Metadata column that mirrors the spectrum ids of a dataset."""


def _as_metadata(metadata: pd.DataFrame | Sequence[Mapping[str, Any]] | None, ids: tuple[str, ...]) -> pd.DataFrame:
    if metadata is None:
        frame = pd.DataFrame(index=pd.RangeIndex(len(ids)))
    elif isinstance(metadata, pd.DataFrame):
        frame = metadata.reset_index(drop=True).copy()
    else:
        frame = pd.DataFrame(list(metadata))
        if frame.empty and not frame.columns.size:
            frame = pd.DataFrame(index=pd.RangeIndex(len(ids)))

    if len(frame) != len(ids):
        msg = f"Metadata has {len(frame)} rows but the dataset holds {len(ids)} spectra"
        raise ValidationError(msg)

    if ID_COLUMN in frame.columns:
        if [str(v) for v in frame[ID_COLUMN]] != list(ids):
            raise ValidationError(f"Metadata column '{ID_COLUMN}' must list the spectrum ids in order")
        frame[ID_COLUMN] = list(ids)
    else:
        frame.insert(0, ID_COLUMN, list(ids))
    return frame


@dataclass(init=False, eq=False)
class SpectralDataset:
    """Several spectra sharing one wavenumber grid, plus per-spectrum metadata.

    ``intensities`` is laid out grid-first, ``(n_wavenumbers, n_spectra)``, so
    column ``j`` is the spectrum named ``ids[j]``. ``metadata`` holds one row
    per spectrum in the same order and always carries a ``col_id`` column
    equal to ``ids``. Instances are treated as read-only by every operation in
    this package; transformations return new datasets.
    """

    wavenumbers: NDArray[np.float64]
    intensities: NDArray[np.float64]
    ids: tuple[str, ...]
    metadata: pd.DataFrame = field(repr=False)

    def __init__(
        self,
        wavenumbers: ArrayLike,
        intensities: ArrayLike,
        ids: Sequence[str] | None = None,
        metadata: pd.DataFrame | Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        grid = as_grid(wavenumbers)
        values = np.array(intensities, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.ndim != 2:
            raise ValidationError("intensities must be a 2-D array shaped (wavenumbers, spectra)")
        if values.shape[0] != grid.size:
            msg = f"intensities have {values.shape[0]} rows but the grid has {grid.size} wavenumbers"
            raise ValidationError(msg)

        if ids is None:
            ids = [f"V{i + 1}" for i in range(values.shape[1])]
        id_tuple = tuple(str(i) for i in ids)
        if len(id_tuple) != values.shape[1]:
            msg = f"{len(id_tuple)} ids given for {values.shape[1]} spectra"
            raise ValidationError(msg)
        if len(set(id_tuple)) != len(id_tuple):
            raise ValidationError("Spectrum ids must be unique")

        self.wavenumbers = grid
        self.intensities = values
        self.ids = id_tuple
        self.metadata = _as_metadata(metadata, id_tuple)

    @classmethod
    def from_frame(
        cls,
        wavenumbers: ArrayLike,
        spectra: pd.DataFrame,
        metadata: pd.DataFrame | Sequence[Mapping[str, Any]] | None = None,
    ) -> SpectralDataset:
        """Build a dataset from a wide frame with one column per spectrum."""

        return cls(
            wavenumbers,
            spectra.to_numpy(dtype=np.float64),
            ids=[str(c) for c in spectra.columns],
            metadata=metadata,
        )

    @classmethod
    def from_mapping(
        cls,
        wavenumbers: ArrayLike,
        spectra: Mapping[str, ArrayLike],
        metadata: pd.DataFrame | Sequence[Mapping[str, Any]] | None = None,
    ) -> SpectralDataset:
        grid = as_grid(wavenumbers)
        ids = list(spectra)
        if ids:
            columns = [np.asarray(spectra[i], dtype=np.float64).reshape(-1) for i in ids]
            values = np.column_stack(columns)
        else:
            values = np.empty((grid.size, 0), dtype=np.float64)
        return cls(grid, values, ids=ids, metadata=metadata)

    @property
    def n_spectra(self) -> int:
        return int(self.intensities.shape[1])

    @property
    def n_wavenumbers(self) -> int:
        return int(self.wavenumbers.size)

    @property
    def spectra(self) -> pd.DataFrame:
        """Wide copy of the intensities with spectrum ids as columns."""

        return pd.DataFrame(self.intensities.copy(), columns=list(self.ids))

    def position(self, spectrum_id: str) -> int:
        try:
            return self.ids.index(str(spectrum_id))
        except ValueError:
            raise KeyError(spectrum_id) from None

    def spectrum(self, spectrum_id: str) -> NDArray[np.float64]:
        return self.intensities[:, self.position(spectrum_id)].copy()

    def take(self, positions: ArrayLike) -> SpectralDataset:
        """Return a new dataset holding the spectra at ``positions``, in that order."""

        idx = np.asarray(positions, dtype=np.intp).reshape(-1)
        return SpectralDataset(
            self.wavenumbers.copy(),
            self.intensities[:, idx],
            ids=[self.ids[i] for i in idx],
            metadata=self.metadata.iloc[idx].reset_index(drop=True),
        )

    def restrict(self, mask: ArrayLike) -> SpectralDataset:
        """Return a new dataset on the grid rows selected by boolean ``mask``."""

        keep = np.asarray(mask, dtype=bool)
        if keep.shape != self.wavenumbers.shape:
            raise ValidationError("Grid mask must match the wavenumber grid")
        return SpectralDataset(
            self.wavenumbers[keep],
            self.intensities[keep, :],
            ids=self.ids,
            metadata=self.metadata,
        )

    def copy(self) -> SpectralDataset:
        return SpectralDataset(
            self.wavenumbers.copy(),
            self.intensities.copy(),
            ids=self.ids,
            metadata=self.metadata.copy(),
        )


@dataclass(frozen=True, eq=False)
class SimilarityMatrix:
    """Dense ``(library, object)`` similarity values with their row/column labels."""

    values: NDArray[np.float64]
    library_ids: tuple[str, ...]
    object_ids: tuple[str, ...]

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=np.float64)
        if values.ndim != 2:
            raise ValidationError("Similarity values must be a 2-D array")
        if values.shape != (len(self.library_ids), len(self.object_ids)):
            msg = (
                f"Similarity values shaped {values.shape} do not match "
                f"{len(self.library_ids)} library and {len(self.object_ids)} object labels"
            )
            raise ValidationError(msg)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "library_ids", tuple(str(i) for i in self.library_ids))
        object.__setattr__(self, "object_ids", tuple(str(i) for i in self.object_ids))

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self.library_ids), len(self.object_ids))

    def _label_index(self, labels: tuple[str, ...], label: str) -> int:
        try:
            return labels.index(str(label))
        except ValueError:
            raise KeyError(label) from None

    def lookup(self, library_id: str, object_id: str) -> float:
        """Value for one ``(library_id, object_id)`` pair; first matching label wins."""

        row = self._label_index(self.library_ids, library_id)
        col = self._label_index(self.object_ids, object_id)
        return float(self.values[row, col])

    def column(self, object_id: str) -> NDArray[np.float64]:
        return self.values[:, self._label_index(self.object_ids, object_id)].copy()

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            self.values.copy(),
            index=pd.Index(list(self.library_ids), name="library_id"),
            columns=pd.Index(list(self.object_ids), name="object_id"),
        )

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> SimilarityMatrix:
        return cls(
            values=frame.to_numpy(dtype=np.float64),
            library_ids=tuple(str(i) for i in frame.index),
            object_ids=tuple(str(c) for c in frame.columns),
        )


PredictFn = Callable[[NDArray[np.float64], float], ArrayLike]


@dataclass
class TrainedModel:
    """A pretrained classifier used as a library.

    ``predict(matrix, regularization)`` receives a ``(n_spectra, n_wavenumbers)``
    matrix and returns class probabilities shaped ``(n_spectra, n_classes)``;
    a trailing regularization axis ``(n_spectra, n_classes, n_lambda)`` is
    accepted and its first slice used. ``class_labels`` maps the class
    position (column of the probability matrix) to a label.
    """

    predict: PredictFn
    lambdas: Sequence[float]
    class_labels: Mapping[int, str]
    wavenumbers: NDArray[np.float64] | None = None

    def __post_init__(self) -> None:
        if not callable(self.predict):
            raise ValidationError("TrainedModel.predict must be callable")
        lambdas = np.asarray(self.lambdas, dtype=np.float64).reshape(-1)
        if lambdas.size == 0:
            raise ValidationError("TrainedModel needs at least one regularization value")
        self.lambdas = tuple(float(v) for v in lambdas)
        self.class_labels = {int(k): str(v) for k, v in dict(self.class_labels).items()}
        if self.wavenumbers is not None:
            self.wavenumbers = as_grid(self.wavenumbers)

    @property
    def min_lambda(self) -> float:
        return min(self.lambdas)

    @property
    def n_features(self) -> int | None:
        return None if self.wavenumbers is None else int(self.wavenumbers.size)

    @classmethod
    def from_estimator(
        cls,
        estimator: Any,
        wavenumbers: ArrayLike | None = None,
        class_labels: Mapping[int, str] | None = None,
    ) -> TrainedModel:
        """Wrap a fitted estimator exposing ``predict_proba`` (e.g. scikit-learn).

        The regularization argument is ignored; such estimators carry their
        own fitted penalty. Labels default to ``estimator.classes_``.
        """

        if not hasattr(estimator, "predict_proba"):
            raise ValidationError("estimator must implement predict_proba")

        if class_labels is None:
            classes = getattr(estimator, "classes_", None)
            if classes is None:
                raise ValidationError("class_labels are required when estimator has no classes_")
            class_labels = {i: str(c) for i, c in enumerate(classes)}

        def _predict(matrix: NDArray[np.float64], _lambda: float) -> ArrayLike:
            return estimator.predict_proba(matrix)

        c_value = getattr(estimator, "C", None)
        lambdas = (1.0 / float(c_value),) if isinstance(c_value, (int, float)) and c_value else (0.0,)
        return cls(predict=_predict, lambdas=lambdas, class_labels=class_labels, wavenumbers=wavenumbers)


Library = Union[SpectralDataset, TrainedModel]
"""Reference a query can be matched against."""
