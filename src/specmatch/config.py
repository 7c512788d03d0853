"""Configuration schema for match runs.

``MatchConfig`` collects the options of :func:`specmatch.match.match_spec`
so they can be versioned next to a library in a YAML file::

    match:
      top_n: 5
      add_library_metadata: sample_name
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field

__all__ = ["MatchConfig", "load_match_config"]


class MatchConfig(BaseModel):
    """Options controlling correlation matching and model classification."""

    model_config = ConfigDict(extra="forbid")

    na_rm: bool = Field(
        True,
        description="Ignore missing intensities when scaling spectra to relative intensity",
    )
    top_n: int | None = Field(
        None,
        ge=1,
        description="Number of best library matches kept per unknown; None keeps all",
    )
    add_library_metadata: str | None = Field(
        None,
        description="Library metadata column holding the library ids to join on",
    )
    add_object_metadata: str | None = Field(
        None,
        description="Unknown metadata column holding the object ids to join on",
    )
    fill_tolerance: float | None = Field(
        None,
        ge=0.0,
        description="Largest wavenumber distance accepted when realigning onto a model grid",
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "MatchConfig":
        raw = dict(data or {})
        section = raw.get("match", raw)
        if section is None:
            section = {}
        if not isinstance(section, Mapping):
            raise ValueError("The 'match' section must be a mapping")
        return cls.model_validate(dict(section))


def load_match_config(path: str | Path) -> MatchConfig:
    """Read a :class:`MatchConfig` from YAML; a top-level ``match:`` key is optional."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    if data is not None and not isinstance(data, Mapping):
        raise ValueError(f"Config file {cfg_path} must contain a mapping")
    return MatchConfig.from_mapping(data)
