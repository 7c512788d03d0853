"""Error and diagnostic types shared by the matching pipeline."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from enum import Enum

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "RecoverableWarning",
    "ValidationError",
    "warn_recoverable",
]


class ValidationError(ValueError):
    """Raised when inputs cannot be matched at all (wrong type, too little overlap)."""


class DiagnosticCode(str, Enum):
    PARTIAL_OVERLAP = "partial_overlap"
    TOP_N_EXCEEDS_LIBRARY = "top_n_exceeds_library"
    INSUFFICIENT_SAMPLES = "insufficient_samples"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    code: DiagnosticCode
    message: str

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class RecoverableWarning(UserWarning):
    """A computation proceeded with reduced or adjusted inputs.

    The attached :class:`Diagnostic` makes the reason machine readable so
    callers can tell a clamped ``top_n`` apart from a partial grid overlap.
    """

    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic

    @property
    def code(self) -> DiagnosticCode:
        return self.diagnostic.code


def warn_recoverable(code: DiagnosticCode, message: str, *, stacklevel: int = 3) -> Diagnostic:
    diagnostic = Diagnostic(code=code, message=message)
    warnings.warn(RecoverableWarning(diagnostic), stacklevel=stacklevel)
    return diagnostic
