import numpy as np
import pandas as pd
import pytest

from specmatch.errors import ValidationError
from specmatch.selectors import (
    ByIndex,
    ByName,
    ByPredicate,
    as_selector,
    filter_spec,
    get_metadata,
    is_empty_vector,
)


def test_as_selector_variants():
    assert as_selector("a") == ByName(("a",))
    assert as_selector(["a", "b"]) == ByName(("a", "b"))
    assert as_selector(2) == ByIndex((2,))
    assert as_selector([0, 2]) == ByIndex((0, 2))
    assert as_selector([True, False, True], n_spectra=3) == ByIndex((0, 2))
    assert as_selector(np.array([False, True])) == ByIndex((1,))
    assert isinstance(as_selector(lambda row: True), ByPredicate)


def test_as_selector_rejects_bad_input():
    with pytest.raises(ValidationError):
        as_selector(True)
    with pytest.raises(ValidationError):
        as_selector([True, False], n_spectra=3)
    with pytest.raises(ValidationError):
        as_selector([1.5, 2.5])


def test_filter_by_name_keeps_dataset_order(library):
    sub = filter_spec(library, ["3", "1"])
    assert sub.ids == ("1", "3")
    assert sub.metadata["spectrum_identity"].tolist() == ["polyethylene", "nylon"]
    np.testing.assert_array_equal(sub.intensities[:, 1], library.intensities[:, 2])


def test_filter_by_index_keeps_given_order(library):
    sub = filter_spec(library, [2, 0])
    assert sub.ids == ("3", "1")
    with pytest.raises(ValidationError):
        filter_spec(library, [5])


def test_filter_by_predicate(library):
    sub = filter_spec(library, lambda row: row["spectrum_identity"].startswith("poly"))
    assert sub.ids == ("1", "2")


def test_filter_to_nothing_is_valid(library):
    sub = filter_spec(library, [False, False, False])
    assert sub.n_spectra == 0
    assert sub.n_wavenumbers == library.n_wavenumbers
    assert len(sub.metadata) == 0
    assert filter_spec(library, []).n_spectra == 0


def test_filter_everything_is_identity(library):
    sub = filter_spec(library, [True, True, True])
    np.testing.assert_array_equal(sub.wavenumbers, library.wavenumbers)
    np.testing.assert_array_equal(sub.intensities, library.intensities)
    pd.testing.assert_frame_equal(sub.metadata, library.metadata)
    assert sub.ids == library.ids


def test_filter_does_not_mutate(library):
    before = library.intensities.copy()
    sub = filter_spec(library, "2")
    sub.intensities[:] = 0.0
    np.testing.assert_array_equal(library.intensities, before)


def test_get_metadata_subset_and_empty_columns(library):
    meta = get_metadata(library, ["2", "3"])
    assert meta["col_id"].tolist() == ["2", "3"]
    assert "organization" not in meta.columns
    full = get_metadata(library, ["2", "3"], rm_empty=False)
    assert "organization" in full.columns
    assert get_metadata(library, [0])["organization"].tolist() == ["lab a"]


def test_filter_then_metadata_matches_subset(library):
    sub = filter_spec(library, [0, 2])
    pd.testing.assert_frame_equal(
        get_metadata(sub, [0, 1], rm_empty=False),
        library.metadata.iloc[[0, 2]].reset_index(drop=True),
    )


def test_is_empty_vector():
    assert is_empty_vector(pd.Series([None, np.nan, "", "  "]))
    assert not is_empty_vector(pd.Series([None, 0]))
    assert is_empty_vector(pd.Series([], dtype=object))


def test_negative_indices_rejected(library):
    with pytest.raises(ValidationError):
        filter_spec(library, [-1])
    with pytest.raises(ValidationError):
        filter_spec(library, -2)


def test_unordered_collections_rejected(library):
    with pytest.raises(ValidationError):
        as_selector({"1", "2"})
    with pytest.raises(ValidationError):
        filter_spec(library, {"1": True})
