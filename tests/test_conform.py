import numpy as np
import pytest

from specmatch.conform import conform_res, conform_spec
from specmatch.errors import ValidationError
from specmatch.similarity import cor_spec
from specmatch.types import SpectralDataset


def test_conform_res_regular_grid():
    np.testing.assert_allclose(conform_res([1000.2, 1019.7], res=5.0), [1001.0, 1006.0, 1011.0, 1016.0])


def test_conform_res_rejects_bad_step():
    with pytest.raises(ValidationError):
        conform_res([0.0, 10.0], res=0.0)


def test_interp_onto_new_grid():
    x = SpectralDataset([0.0, 10.0, 20.0], np.array([[0.0, 1.0], [10.0, 1.0], [20.0, 1.0]]), ids=["lin", "flat"])
    out = conform_spec(x, range=[0.0, 20.0], res=5.0)
    np.testing.assert_allclose(out.wavenumbers, [0.0, 5.0, 10.0, 15.0, 20.0])
    np.testing.assert_allclose(out.intensities[:, 0], [0.0, 5.0, 10.0, 15.0, 20.0])
    np.testing.assert_allclose(out.intensities[:, 1], 1.0)
    assert out.ids == x.ids


def test_range_is_clipped_to_spectrum_span():
    x = SpectralDataset([10.0, 20.0, 30.0], np.array([1.0, 2.0, 3.0]), ids=["s"])
    out = conform_spec(x, range=[0.0, 100.0], res=10.0)
    np.testing.assert_allclose(out.wavenumbers, [10.0, 20.0, 30.0])


def test_roll_takes_nearest_value():
    x = SpectralDataset([0.0, 10.0, 20.0], np.array([1.0, 2.0, 3.0]), ids=["s"])
    out = conform_spec(x, range=[2.0, 9.0, 18.0], res=None, type="roll")
    np.testing.assert_allclose(out.wavenumbers, [2.0, 9.0, 18.0])
    np.testing.assert_allclose(out.intensities[:, 0], [1.0, 2.0, 3.0])


def test_interp_skips_missing_values():
    x = SpectralDataset([0.0, 10.0, 20.0], np.array([0.0, np.nan, 20.0]), ids=["s"])
    out = conform_spec(x, res=10.0)
    np.testing.assert_allclose(out.intensities[:, 0], [0.0, 10.0, 20.0])


def test_conform_validates_inputs():
    x = SpectralDataset([0.0, 10.0, 20.0], np.array([1.0, 2.0, 3.0]), ids=["s"])
    with pytest.raises(ValidationError):
        conform_spec(x, type="spline")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        conform_spec(x, range=[100.0, 200.0], res=None)


def test_conformed_spectra_can_be_correlated(library):
    offset = SpectralDataset(library.wavenumbers + 2.5, library.intensities, ids=library.ids)
    conformed = conform_spec(offset, range=library.wavenumbers, res=None)
    matrix = cor_spec(conformed, library)
    assert matrix.shape == (3, 3)
    assert np.argmax(matrix.values[:, 0]) == 0
