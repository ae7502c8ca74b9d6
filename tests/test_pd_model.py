"""Tests for the elastic-net logistic PD model."""

import warnings

import joblib
import numpy as np
import pandas as pd
import pytest

from loan_loss.models.pd_model import PDModel


def test_fit_metrics(fitted_pd, features_and_loss):
    model, metrics = fitted_pd
    _, loss = features_and_loss

    assert metrics["n_samples"] == len(loss)
    assert metrics["default_rate"] == pytest.approx((loss > 0).mean())
    assert metrics["cv_auc"] > 0.65
    assert metrics["train_auc"] >= metrics["cv_auc"] - 0.05
    assert metrics["C"] > 0
    assert 0 < metrics["n_features_selected"] <= 10


def test_default_drivers_have_expected_signs(fitted_pd):
    model, _ = fitted_pd

    coefs = model.get_coefficients().set_index("feature")["coefficient"]
    assert coefs["f1"] > 0
    assert coefs["f2"] < 0


def test_probabilities_in_unit_interval(fitted_pd, features_and_loss):
    model, _ = fitted_pd
    X, _ = features_and_loss

    proba = model.predict_proba(X)

    assert proba.shape == (len(X),)
    assert np.all((proba >= 0) & (proba <= 1))
    assert set(np.unique(model.predict(X, threshold=0.5))) <= {0, 1}


def test_roc_curve(fitted_pd, features_and_loss):
    model, _ = fitted_pd
    X, loss = features_and_loss

    roc = model.get_roc_curve(X, loss)

    assert list(roc.columns) == ["fpr", "tpr", "threshold"]
    assert roc["fpr"].is_monotonic_increasing
    assert roc["tpr"].iloc[-1] == pytest.approx(1.0)


def test_evaluate(fitted_pd, features_and_loss):
    model, _ = fitted_pd
    X, loss = features_and_loss

    results = model.evaluate(X.iloc[:400], loss.iloc[:400])

    assert results["n_samples"] == 400
    assert results["confusion_matrix"].values.sum() == 400
    assert results["auc"] > 0.65
    assert 0 <= results["brier"] <= 0.25
    assert results["roc_curve"] is not None


def test_evaluate_single_class_holdout(fitted_pd, features_and_loss):
    model, _ = fitted_pd
    X, loss = features_and_loss
    mask = loss == 0

    results = model.evaluate(X[mask], loss[mask])

    assert np.isnan(results["auc"])
    assert results["roc_curve"] is None
    with pytest.raises(ValueError):
        model.get_roc_curve(X[mask], loss[mask])


def test_single_class_training_target(features_and_loss):
    X, _ = features_and_loss

    with pytest.raises(ValueError, match="single class"):
        PDModel(cv_folds=3).fit(X, pd.Series(np.zeros(len(X))))


def test_unfitted_model_raises(features_and_loss):
    X, _ = features_and_loss

    with pytest.raises(RuntimeError):
        PDModel().predict_proba(X)


def test_save_and_load(fitted_pd, features_and_loss, tmp_path):
    model, _ = fitted_pd
    X, _ = features_and_loss
    path = tmp_path / "models" / "pd.joblib"

    model.save(str(path))
    restored = PDModel.load(str(path))

    assert restored.cs == model.cs
    np.testing.assert_allclose(restored.predict_proba(X.head(20)), model.predict_proba(X.head(20)))


def test_fit_avoids_deprecated_penalty_argument(features_and_loss):
    X, loss = features_and_loss
    model = PDModel(l1_ratios=(1.0,), cs=3, cv_folds=3, max_features=5, max_iter=500)

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model.fit(X.iloc[:600], loss.iloc[:600])

    assert not [w for w in caught if "penalty" in str(w.message)]


def test_saved_state_matches_lgd_format(fitted_pd, fitted_lgd, tmp_path):
    pd_model, _ = fitted_pd
    lgd_model, _ = fitted_lgd

    pd_model.save(str(tmp_path / "pd.joblib"))
    lgd_model.save(str(tmp_path / "lgd.joblib"))
    pd_state = joblib.load(tmp_path / "pd.joblib")
    lgd_state = joblib.load(tmp_path / "lgd.joblib")

    assert set(pd_state) == set(lgd_state)
    assert pd_state["version"] == lgd_state["version"]
