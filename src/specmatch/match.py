"""Entry point that identifies unknown spectra against a library or model."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from specmatch.classify import ai_classify, fill_spec
from specmatch.errors import ValidationError
from specmatch.ranking import ident_spec
from specmatch.similarity import cor_spec
from specmatch.types import Library, SpectralDataset, TrainedModel

if TYPE_CHECKING:
    from specmatch.config import MatchConfig

logger = logging.getLogger(__name__)

__all__ = ["match_spec", "match_spec_with_config", "reorder_matches"]


def reorder_matches(result: pd.DataFrame, order: SpectralDataset) -> pd.DataFrame:
    """Sort rows so ``object_id`` follows the spectrum order of ``order``.

    The sort is stable: rows of one object keep their relative order, and
    objects missing from ``order`` go last in their original order.
    """

    if not isinstance(order, SpectralDataset):
        raise ValidationError("'order' needs to be a SpectralDataset")
    if "object_id" not in result.columns:
        raise ValidationError("Result table has no 'object_id' column to reorder by")

    position = {sid: i for i, sid in enumerate(order.ids)}
    missing_rank = len(position)
    keys = np.asarray([position.get(str(oid), missing_rank) for oid in result["object_id"]], dtype=np.int64)
    idx = np.argsort(keys, kind="stable")
    return result.iloc[idx].reset_index(drop=True)


def match_spec(
    x: SpectralDataset,
    library: Library,
    na_rm: bool = True,
    top_n: int | None = None,
    order: SpectralDataset | None = None,
    add_library_metadata: str | None = None,
    add_object_metadata: str | None = None,
    fill: SpectralDataset | None = None,
    fill_tolerance: float | None = None,
) -> pd.DataFrame:
    """Identify the spectra of ``x``.

    A :class:`SpectralDataset` library is matched by correlation
    (:func:`cor_spec` then :func:`ident_spec`); a :class:`TrainedModel` is
    applied through :func:`ai_classify`, realigning ``x`` onto ``fill``'s grid
    first when ``fill`` is given. ``top_n`` and the metadata joins only apply
    to correlation matching. When ``order`` is given the rows are sorted to
    follow its spectrum order.
    """

    if not isinstance(x, SpectralDataset):
        raise ValidationError("object 'x' needs to be a SpectralDataset")

    match library:
        case SpectralDataset():
            logger.debug("Matching %d spectra by correlation", x.n_spectra)
            res = ident_spec(
                cor_spec(x, library, na_rm=na_rm),
                x,
                library,
                top_n=top_n,
                add_library_metadata=add_library_metadata,
                add_object_metadata=add_object_metadata,
            )
        case TrainedModel():
            logger.debug("Matching %d spectra with a trained model", x.n_spectra)
            if fill is not None and fill_tolerance is not None:
                res = ai_classify(fill_spec(x, fill, tolerance=fill_tolerance), library)
            else:
                res = ai_classify(x, library, fill=fill)
        case _:
            raise ValidationError("'library' needs to be a SpectralDataset or a TrainedModel")

    if order is not None:
        res = reorder_matches(res, order)
    return res


def match_spec_with_config(
    x: SpectralDataset,
    library: Library,
    config: MatchConfig,
    order: SpectralDataset | None = None,
    fill: SpectralDataset | None = None,
) -> pd.DataFrame:
    """:func:`match_spec` with the options taken from a :class:`MatchConfig`."""

    return match_spec(
        x,
        library,
        na_rm=config.na_rm,
        top_n=config.top_n,
        order=order,
        add_library_metadata=config.add_library_metadata,
        add_object_metadata=config.add_object_metadata,
        fill=fill,
        fill_tolerance=config.fill_tolerance,
    )
