from __future__ import annotations

import os
from collections.abc import Callable
from functools import wraps
from importlib import metadata
from pathlib import Path
from typing import Any, Optional

import typer
import yaml

from .config import MatchConfig, load_match_config
from .errors import ValidationError
from .match import match_spec_with_config
from .utils import get_logger, read_wide_csv
from .version import __version__

_DEBUG_ENV = "SPECMATCH_DEBUG"

app = typer.Typer(add_completion=False)
_LOG = get_logger(__name__)


def _debug_enabled() -> bool:
    return os.getenv(_DEBUG_ENV, "").lower() in {"1", "true", "yes", "on"}


def _echo_error(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)


def _log_cli_exception(exc: Exception, context: str) -> None:
    if _debug_enabled():
        _LOG.exception("%s", exc)
    else:
        _LOG.error("%s failed: %s", context, exc)


def handle_cli_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Provide consistent logging and user-friendly errors for CLI commands."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (typer.BadParameter, typer.Exit, KeyboardInterrupt):
            raise
        except (
            FileNotFoundError,
            OSError,
            yaml.YAMLError,
            ValidationError,
            ValueError,
        ) as exc:
            _log_cli_exception(exc, func.__name__)
            _echo_error(str(exc))
        except Exception as exc:  # pragma: no cover - handled by debug path
            if _debug_enabled():
                raise
            _LOG.exception("Unexpected error while running %s: %s", func.__name__, exc)
            _echo_error(f"Unexpected error. Re-run with {_DEBUG_ENV}=1 for a traceback.")

        raise typer.Exit(code=1)

    return wrapper


def _package_version() -> str:
    try:
        return metadata.version("specmatch")
    except metadata.PackageNotFoundError:
        return __version__


@app.callback()
def main() -> None:
    """Identify spectra against reference libraries."""


@app.command("version")
def version_command() -> None:
    """Print the installed version."""

    typer.echo(f"specmatch version: {_package_version()}")


@app.command("match")
@handle_cli_exceptions
def match_command(
    unknown: Path = typer.Argument(..., help="CSV with a wavenumber column and one column per unknown spectrum"),
    library: Path = typer.Argument(..., help="CSV with the reference spectra in the same layout"),
    library_metadata: Optional[Path] = typer.Option(
        None, "--library-metadata", help="CSV with one metadata row per library spectrum"
    ),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML file with match options"),
    top_n: Optional[int] = typer.Option(None, "--top-n", min=1, help="Best matches kept per unknown"),
    add_library_metadata: Optional[str] = typer.Option(
        None, "--add-library-metadata", help="Library metadata column holding the library ids"
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the match table to this CSV"),
) -> None:
    """Correlate unknown spectra with a library and print the ranked matches."""

    cfg = load_match_config(config) if config is not None else MatchConfig()
    overrides: dict[str, Any] = {}
    if top_n is not None:
        overrides["top_n"] = top_n
    if add_library_metadata is not None:
        overrides["add_library_metadata"] = add_library_metadata
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    x = read_wide_csv(unknown)
    lib = read_wide_csv(library, metadata=library_metadata)
    _LOG.info("Matching %d unknowns against %d library spectra", x.n_spectra, lib.n_spectra)

    result = match_spec_with_config(x, lib, cfg)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        result.to_csv(output, index=False)
        typer.echo(f"Wrote {len(result)} matches to {output}")
    else:
        typer.echo(result.to_csv(index=False), nl=False)


if __name__ == "__main__":  # pragma: no cover
    app()
