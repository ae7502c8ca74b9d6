"""Tests for variance filtering, imputation and scaling."""

import numpy as np
import pandas as pd
import pytest

from loan_loss.data.loader import LoanDataError
from loan_loss.features.preprocessing import LoanPreprocessor, near_zero_variance


@pytest.fixture
def raw_features():
    rng = np.random.default_rng(0)
    n = 100
    rare = np.zeros(n)
    rare[0] = 1.0
    df = pd.DataFrame({
        "signal": rng.normal(size=n),
        "other": rng.normal(5, 2, size=n),
        "constant": np.full(n, 3.0),
        "rare": rare,
        "empty": np.full(n, np.nan),
    })
    df.loc[[3, 7, 11], "signal"] = np.nan
    return df


def test_near_zero_variance_metrics(raw_features):
    metrics = near_zero_variance(raw_features)

    assert metrics.loc["constant", "zero_var"]
    assert metrics.loc["constant", "nzv"]
    assert metrics.loc["empty", "zero_var"]
    assert metrics.loc["rare", "freq_ratio"] == pytest.approx(99.0)
    assert metrics.loc["rare", "percent_unique"] == pytest.approx(2.0)
    assert metrics.loc["rare", "nzv"]
    assert not metrics.loc["signal", "nzv"]
    assert not metrics.loc["other", "nzv"]


def test_near_zero_variance_respects_cutoffs():
    df = pd.DataFrame({"x": [0] * 90 + [1] * 10})

    assert not near_zero_variance(df, freq_cut=19).loc["x", "nzv"]
    assert near_zero_variance(df, freq_cut=5).loc["x", "nzv"]


def test_preprocessor_drops_uninformative_columns(raw_features):
    prep = LoanPreprocessor().fit(raw_features)

    assert prep.retained_columns_ == ["signal", "other"]
    assert prep.dropped_columns_["all_missing"] == ["empty"]
    assert set(prep.dropped_columns_["near_zero_variance"]) == {"constant", "rare"}

    summary = prep.get_summary()
    assert summary["n_retained"] == 2
    assert summary["n_dropped_near_zero_variance"] == 2


def test_preprocessor_imputes_and_scales(raw_features):
    prep = LoanPreprocessor()
    out = prep.fit_transform(raw_features)

    assert not out.isna().any().any()
    assert out.index.equals(raw_features.index)
    assert prep.medians_["signal"] == pytest.approx(raw_features["signal"].median())
    np.testing.assert_allclose(out.mean().values, 0.0, atol=1e-10)
    np.testing.assert_allclose(out.std(ddof=0).values, 1.0, atol=1e-10)


def test_transform_fills_gaps_in_new_data(raw_features):
    prep = LoanPreprocessor().fit(raw_features)
    new = pd.DataFrame({"other": [np.nan, 5.0], "signal": [np.nan, np.nan], "extra": [1, 2]})

    out = prep.transform(new)

    assert list(out.columns) == ["signal", "other"]
    assert not out.isna().any().any()


def test_transform_requires_retained_columns(raw_features):
    prep = LoanPreprocessor().fit(raw_features)

    with pytest.raises(ValueError, match="Missing features"):
        prep.transform(raw_features.drop(columns=["other"]))


def test_transform_before_fit():
    with pytest.raises(RuntimeError):
        LoanPreprocessor().transform(pd.DataFrame({"a": [1.0]}))


def test_every_column_dropped():
    df = pd.DataFrame({"a": [1.0] * 20, "b": [np.nan] * 20})

    with pytest.raises(LoanDataError):
        LoanPreprocessor().fit(df)


def test_non_numeric_columns_rejected():
    with pytest.raises(ValueError, match="Non-numeric"):
        LoanPreprocessor().fit(pd.DataFrame({"a": ["x", "y"]}))
