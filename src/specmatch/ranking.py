"""Turn similarity matrices into ranked, metadata-enriched match tables."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from specmatch.errors import DiagnosticCode, ValidationError, warn_recoverable
from specmatch.types import SimilarityMatrix, SpectralDataset

logger = logging.getLogger(__name__)

MATCH_COLUMNS = ("object_id", "library_id", "match_val")

__all__ = ["MATCH_COLUMNS", "ident_spec", "max_cor_named", "melt_matches", "top_matches"]


def _as_matrix(cor_matrix: SimilarityMatrix | pd.DataFrame) -> SimilarityMatrix:
    if isinstance(cor_matrix, SimilarityMatrix):
        return cor_matrix
    if isinstance(cor_matrix, pd.DataFrame):
        return SimilarityMatrix.from_frame(cor_matrix)
    raise ValidationError("cor_matrix must be a SimilarityMatrix or a labelled DataFrame")


def melt_matches(cor_matrix: SimilarityMatrix | pd.DataFrame) -> pd.DataFrame:
    """Unpivot a matrix into one ``(object_id, library_id, match_val)`` row per pair.

    Rows are object-major: every library spectrum for the first object, then
    the next object, each block in library order.
    """

    matrix = _as_matrix(cor_matrix)
    n_lib, n_obj = matrix.shape
    return pd.DataFrame(
        {
            "object_id": np.repeat(np.asarray(matrix.object_ids, dtype=object), n_lib),
            "library_id": np.tile(np.asarray(matrix.library_ids, dtype=object), n_obj),
            "match_val": matrix.values.T.reshape(-1),
        },
        columns=list(MATCH_COLUMNS),
    )


def top_matches(matches: pd.DataFrame, top_n: int) -> pd.DataFrame:
    """Keep the ``top_n`` best rows per ``object_id``.

    Within a group rows are ordered by descending ``match_val`` with missing
    values last; equal values keep their incoming order. Groups stay in the
    order in which their ``object_id`` first appears.
    """

    if top_n < 1:
        raise ValidationError("top_n must be a positive integer")
    if matches.empty:
        return matches.reset_index(drop=True)

    group_pos = pd.factorize(matches["object_id"], sort=False)[0]
    values = matches["match_val"].to_numpy(dtype=np.float64)
    missing = np.isnan(values)
    neg = np.where(missing, 0.0, -values)
    # np.lexsort is stable, last key is the primary one.
    order = np.lexsort((neg, missing, group_pos))
    ranked = matches.iloc[order].reset_index(drop=True)
    rank = ranked.groupby("object_id", sort=False).cumcount()
    return ranked[rank.to_numpy() < top_n].reset_index(drop=True)


def _key_text(value: object) -> str | None:
    if pd.isna(value):
        return None
    # numeric key columns with gaps are read back as floats
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    return str(value)


def _join_metadata(
    out: pd.DataFrame,
    metadata: pd.DataFrame,
    *,
    left_on: str,
    right_on: str,
    suffix: str,
) -> pd.DataFrame:
    if right_on not in metadata.columns:
        msg = f"Metadata column '{right_on}' not found; available: {', '.join(map(str, metadata.columns))}"
        raise ValidationError(msg)

    right = metadata.copy()
    key = "__join_key__"
    right[key] = right[right_on].map(_key_text)
    right = right.drop(columns=[right_on])
    merged = out.merge(
        right,
        how="left",
        left_on=left_on,
        right_on=key,
        suffixes=("", suffix),
        sort=False,
    )
    return merged.drop(columns=[key])


def ident_spec(
    cor_matrix: SimilarityMatrix | pd.DataFrame,
    x: SpectralDataset,
    library: SpectralDataset,
    top_n: int | None = None,
    add_library_metadata: str | None = None,
    add_object_metadata: str | None = None,
) -> pd.DataFrame:
    """Build the tidy match table for a correlation matrix.

    Parameters
    ----------
    cor_matrix:
        Library × object similarities, typically from :func:`cor_spec`.
    x, library:
        The datasets the matrix was computed from; their metadata feed the
        optional joins.
    top_n:
        Number of best library matches to keep per object spectrum. ``None``
        keeps every pair; a value larger than the library is ignored with a
        :class:`~specmatch.errors.RecoverableWarning`.
    add_library_metadata, add_object_metadata:
        Metadata column of the library (resp. ``x``) whose values equal the
        ``library_id`` (resp. ``object_id``); matching metadata rows are
        left-joined onto the table. Unmatched ids keep null fields.
    """

    if top_n is not None:
        if isinstance(top_n, bool) or int(top_n) != top_n:
            raise ValidationError("top_n must be an integer")
        top_n = int(top_n)
        if top_n < 1:
            raise ValidationError("top_n must be a positive integer")
        if top_n > library.n_spectra:
            logger.info(
                "top_n=%d exceeds the %d library spectra; returning all matches",
                top_n,
                library.n_spectra,
            )
            warn_recoverable(
                DiagnosticCode.TOP_N_EXCEEDS_LIBRARY,
                "'top_n' larger than the number of spectra in the library; returning all matches",
            )
            top_n = None

    out = melt_matches(cor_matrix)
    if top_n is not None:
        out = top_matches(out, top_n)

    if add_library_metadata is not None:
        out = _join_metadata(
            out,
            library.metadata,
            left_on="library_id",
            right_on=add_library_metadata,
            suffix="_library",
        )
    if add_object_metadata is not None:
        out = _join_metadata(
            out,
            x.metadata,
            left_on="object_id",
            right_on=add_object_metadata,
            suffix="_object",
        )
    return out.reset_index(drop=True)


def max_cor_named(cor_matrix: SimilarityMatrix | pd.DataFrame) -> pd.Series:
    """Best value per object column, labelled with the library row achieving it.

    Missing values are skipped and ties go to the first row. A column with no
    values at all gives NaN labelled ``None``.
    """

    matrix = _as_matrix(cor_matrix)
    n_lib, n_obj = matrix.shape
    values = np.full(n_obj, np.nan, dtype=np.float64)
    labels: list[str | None] = [None] * n_obj
    if n_lib:
        present = ~np.isnan(matrix.values)
        has_any = present.any(axis=0)
        filled = np.where(present, matrix.values, -np.inf)
        best = np.argmax(filled, axis=0)
        for col in np.flatnonzero(has_any):
            values[col] = matrix.values[best[col], col]
            labels[col] = matrix.library_ids[best[col]]
    return pd.Series(values, index=pd.Index(labels, dtype=object, name="library_id"), name="match_val")
