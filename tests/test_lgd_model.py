"""Tests for the elastic-net LGD model."""

import numpy as np
import pandas as pd
import pytest

from loan_loss.models.lgd_model import LGDModel


def test_fit_metrics(fitted_lgd, features_and_loss):
    model, metrics = fitted_lgd
    _, loss = features_and_loss

    expected_keys = {
        "mae", "rmse", "r2", "cv_mse", "alpha", "l1_ratio",
        "n_features_retained", "n_features_selected", "n_samples",
    }
    assert expected_keys <= set(metrics)
    assert metrics["n_samples"] == int((loss > 0).sum())
    assert metrics["n_features_selected"] <= 10
    assert metrics["l1_ratio"] == 1.0
    assert metrics["r2"] > 0.5


def test_variance_filter_removes_degenerate_columns(fitted_lgd):
    model, _ = fitted_lgd

    retained = model.preprocessor.retained_columns_
    assert "f9" not in retained
    assert "f10" not in retained


def test_strongest_severity_driver_ranks_first(fitted_lgd):
    model, _ = fitted_lgd

    coefs = model.get_coefficients()
    assert coefs.loc[0, "feature"] == "f5"
    assert coefs.loc[0, "coefficient"] > 0


def test_predict_every_row_in_unit_interval(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, _ = features_and_loss

    predictions = model.predict(X)

    assert len(predictions) == len(X)
    assert np.all((predictions >= 0) & (predictions <= 1))


def test_evaluate_on_defaults(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, loss = features_and_loss

    results = model.evaluate(X.iloc[:500], loss.iloc[:500])

    assert results["n_samples"] == int((loss.iloc[:500] > 0).sum())
    assert 0 <= results["mae"] < 0.2
    assert results["rmse"] >= results["mae"]


def test_evaluate_without_defaults(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, loss = features_and_loss
    no_default = loss == 0

    results = model.evaluate(X[no_default], loss[no_default])

    assert results["n_samples"] == 0
    assert np.isnan(results["mae"])


def test_regularization_path(fitted_lgd):
    model, metrics = fitted_lgd

    path = model.get_regularization_path()

    assert {"alpha", "mean_mse", "std_mse", "selected"} <= set(path.columns)
    assert path["selected"].sum() == 1
    assert path.loc[path["selected"], "alpha"].iloc[0] == pytest.approx(metrics["alpha"])
    assert path["mean_mse"].min() == pytest.approx(metrics["cv_mse"])


def test_fit_without_defaults_raises(features_and_loss):
    X, _ = features_and_loss

    with pytest.raises(ValueError, match="No defaulted loans"):
        LGDModel(cv_folds=3).fit(X, pd.Series(np.zeros(len(X))))


def test_fit_rejects_empty_and_misaligned_input(features_and_loss):
    X, loss = features_and_loss

    with pytest.raises(ValueError):
        LGDModel().fit(X.iloc[:0], loss.iloc[:0])
    with pytest.raises(ValueError):
        LGDModel().fit(X, loss.iloc[:10])


def test_invalid_loss_scale():
    with pytest.raises(ValueError):
        LGDModel(loss_scale=0)


def test_unfitted_model_raises(features_and_loss):
    X, _ = features_and_loss
    model = LGDModel()

    with pytest.raises(RuntimeError):
        model.predict(X)
    with pytest.raises(RuntimeError):
        model.save("unused.joblib")


def test_save_and_load(fitted_lgd, features_and_loss, tmp_path):
    model, _ = fitted_lgd
    X, _ = features_and_loss
    path = tmp_path / "lgd.joblib"

    model.save(str(path))
    restored = LGDModel.load(str(path))

    assert restored.l1_ratios == model.l1_ratios
    np.testing.assert_allclose(restored.predict(X.head(20)), model.predict(X.head(20)))


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        LGDModel.load(str(tmp_path / "missing.joblib"))
