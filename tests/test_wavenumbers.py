import numpy as np
import pytest

from specmatch.errors import ValidationError
from specmatch.wavenumbers import as_grid, check_monotonic, nearest_positions, shared_mask, wavenumber_equal


def test_check_monotonic_rejects_2d():
    with pytest.raises(ValidationError):
        check_monotonic(np.ones((2, 2)))


def test_as_grid_copies():
    values = np.array([1.0, 2.0, 3.0])
    grid = as_grid(values)
    grid[0] = 10.0
    assert values[0] == 1.0


def test_shared_mask_is_exact():
    mask = shared_mask(np.array([1.0, 2.0, 3.0, 4.0]), np.array([2.0, 4.0, 5.0]))
    assert mask.tolist() == [False, True, False, True]


def test_wavenumber_equal():
    assert wavenumber_equal([1.0, 2.0], [1.0, 2.0 + 1e-10])
    assert not wavenumber_equal([1.0, 2.0], [1.0, 2.0, 3.0])


def test_nearest_positions_default_is_exact():
    src, tgt = nearest_positions(np.array([10.0, 12.0, 20.0]), np.array([10.0, 15.0, 20.0]))
    assert src.tolist() == [0, 2]
    assert tgt.tolist() == [0, 2]


def test_nearest_positions_with_tolerance():
    src, tgt = nearest_positions(np.array([9.0, 14.2, 30.0]), np.array([10.0, 15.0, 20.0]), tolerance=1.0)
    assert src.tolist() == [0, 1]
    assert tgt.tolist() == [0, 1]
    with pytest.raises(ValidationError):
        nearest_positions(np.array([1.0]), np.array([1.0]), tolerance=-1.0)


def test_nearest_positions_empty():
    src, tgt = nearest_positions(np.array([]), np.array([1.0, 2.0]))
    assert src.size == 0 and tgt.size == 0
