"""specmatch: identify measured spectra against reference libraries.

Unknown spectra are matched either by Pearson correlation against a library
of labelled spectra or by a pretrained classifier, and the results are
returned as tidy :class:`pandas.DataFrame` tables.
"""

from __future__ import annotations

import importlib
from typing import Any

from .errors import Diagnostic, DiagnosticCode, RecoverableWarning, ValidationError
from .types import Library, SimilarityMatrix, SpectralDataset, TrainedModel
from .version import __version__

__all__ = [
    "__version__",
    "Diagnostic",
    "DiagnosticCode",
    "Library",
    "RecoverableWarning",
    "SimilarityMatrix",
    "SpectralDataset",
    "TrainedModel",
    "ValidationError",
    "ai_classify",
    "conform_spec",
    "cor_spec",
    "fill_spec",
    "filter_spec",
    "get_metadata",
    "ident_spec",
    "match_spec",
    "max_cor_named",
    "sig_noise",
    "classify",
    "config",
    "conform",
    "match",
    "quality",
    "ranking",
    "selectors",
    "similarity",
    "utils",
]

_FUNCTIONS = {
    "ai_classify": "classify",
    "fill_spec": "classify",
    "conform_spec": "conform",
    "cor_spec": "similarity",
    "filter_spec": "selectors",
    "get_metadata": "selectors",
    "ident_spec": "ranking",
    "max_cor_named": "ranking",
    "match_spec": "match",
    "sig_noise": "quality",
}

_SUBMODULES = {
    "classify",
    "config",
    "conform",
    "match",
    "quality",
    "ranking",
    "selectors",
    "similarity",
    "utils",
}


def __getattr__(name: str) -> Any:
    if name in _FUNCTIONS:
        module = importlib.import_module(f"{__name__}.{_FUNCTIONS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    if name in _SUBMODULES:
        module = importlib.import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
