import numpy as np
import pytest

from specmatch.errors import DiagnosticCode, RecoverableWarning, ValidationError
from specmatch.quality import sig_noise
from specmatch.types import SpectralDataset


@pytest.fixture
def long_dataset() -> SpectralDataset:
    grid = np.arange(100.0)
    ramp = np.arange(100.0)
    flat = np.full(100, 2.0)
    return SpectralDataset(grid, np.column_stack([ramp, flat]), ids=["ramp", "flat"])


def test_basic_metrics(long_dataset):
    sig = sig_noise(long_dataset, metric="sig")
    assert sig.index.tolist() == ["ramp", "flat"]
    assert sig["ramp"] == pytest.approx(49.5)
    noise = sig_noise(long_dataset, metric="noise")
    assert noise["ramp"] == pytest.approx(np.std(np.arange(100.0), ddof=1))
    assert noise["flat"] == pytest.approx(0.0)
    assert sig_noise(long_dataset, metric="tot_sig")["flat"] == pytest.approx(200.0)
    assert sig_noise(long_dataset, metric="sig_times_noise")["flat"] == pytest.approx(0.0)
    ratio = sig_noise(long_dataset, metric="sig_over_noise")
    assert ratio["ramp"] == pytest.approx(49.5 / np.std(np.arange(100.0), ddof=1))
    assert np.isinf(ratio["flat"])


def test_log_total_signal(long_dataset):
    out = sig_noise(long_dataset, metric="log_tot_sig")
    assert out["flat"] == pytest.approx(100 * np.exp(2.0))


def test_running_signal_over_noise(long_dataset):
    out = sig_noise(long_dataset)
    # running maxima of the ramp are 19..79 once the trailing window is cut
    assert out["ramp"] == pytest.approx(79.0 / 49.0)
    assert out["flat"] == pytest.approx(1.0)


def test_short_spectra_warn_and_return_nan():
    ds = SpectralDataset(np.arange(10.0), np.ones(10), ids=["short"])
    with pytest.warns(RecoverableWarning) as record:
        out = sig_noise(ds, metric="sig")
    assert record[0].message.code is DiagnosticCode.INSUFFICIENT_SAMPLES
    assert np.isnan(out["short"])


def test_unknown_metric_rejected(long_dataset):
    with pytest.raises(ValidationError):
        sig_noise(long_dataset, metric="snr")  # type: ignore[arg-type]
