"""Shared fixtures for the specmatch test suite."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from specmatch.types import SpectralDataset, TrainedModel


def gaussian(grid: np.ndarray, center: float, width: float, height: float = 1.0) -> np.ndarray:
    return height * np.exp(-0.5 * ((grid - center) / width) ** 2)


@pytest.fixture
def grid() -> np.ndarray:
    return np.arange(1000.0, 1100.0, 5.0)


@pytest.fixture
def library(grid: np.ndarray) -> SpectralDataset:
    spectra = {
        "1": gaussian(grid, 1020.0, 6.0) + 0.05,
        "2": gaussian(grid, 1050.0, 8.0) + 0.5 * gaussian(grid, 1080.0, 4.0) + 0.05,
        "3": gaussian(grid, 1085.0, 10.0) + 0.05,
    }
    metadata = pd.DataFrame(
        {
            "sample_name": ["1", "2", "3"],
            "spectrum_identity": ["polyethylene", "polystyrene", "nylon"],
            "organization": ["lab a", None, ""],
        }
    )
    return SpectralDataset.from_mapping(grid, spectra, metadata=metadata)


@pytest.fixture
def unknown(grid: np.ndarray, library: SpectralDataset) -> SpectralDataset:
    values = 7.5 * library.spectrum("2")
    metadata = pd.DataFrame({"file_name": ["unknown.csv"], "user_name": ["analyst"]})
    return SpectralDataset(grid, values, ids=["unknown"], metadata=metadata)


@pytest.fixture
def unknowns(grid: np.ndarray, library: SpectralDataset) -> SpectralDataset:
    rng = np.random.default_rng(7)
    columns = {
        "a": 3.0 * library.spectrum("3") + 0.01 * rng.normal(size=grid.size),
        "b": 0.2 * library.spectrum("1") + 0.001 * rng.normal(size=grid.size),
        "c": library.spectrum("2") + 0.01 * rng.normal(size=grid.size),
    }
    metadata = pd.DataFrame({"sample_name": ["a", "b", "c"], "site": ["river", "soil", None]})
    return SpectralDataset.from_mapping(grid, columns, metadata=metadata)


@pytest.fixture
def fill(grid: np.ndarray) -> SpectralDataset:
    return SpectralDataset(grid, np.full(grid.size, 0.25), ids=["fill"])


@pytest.fixture
def peak_model(grid: np.ndarray) -> TrainedModel:
    """Three-class model scoring each spectrum by where its maximum sits."""

    centers = np.array([1020.0, 1050.0, 1085.0])

    def predict(matrix: np.ndarray, lam: float) -> np.ndarray:
        peak = grid[np.argmax(matrix, axis=1)]
        logits = -np.abs(peak[:, None] - centers[None, :]) / 5.0
        probs = np.exp(logits)
        return probs / probs.sum(axis=1, keepdims=True)

    return TrainedModel(
        predict=predict,
        lambdas=[0.1, 0.01, 0.001],
        class_labels={0: "polyethylene", 1: "polystyrene", 2: "nylon"},
        wavenumbers=grid,
    )
