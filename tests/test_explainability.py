"""Tests for SHAP explanations and evaluation plots."""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from loan_loss.explainability import (
    SHAPExplainer,
    plot_coefficients,
    plot_regularization_path,
    plot_roc_curve,
)
from loan_loss.models.lgd_model import LGDModel


def test_feature_importance(fitted_pd, features_and_loss):
    model, _ = fitted_pd
    X, _ = features_and_loss

    explainer = SHAPExplainer(model, background=X, max_background=100)
    importance = explainer.get_feature_importance(X.head(200))

    assert set(importance["feature"]) == set(model.selector.selected_features_)
    assert importance["importance"].is_monotonic_decreasing
    assert importance["importance_pct"].sum() == pytest.approx(100.0)


def test_explain_shape(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, _ = features_and_loss

    explanation = SHAPExplainer(model, background=X).explain(X.head(25))

    assert np.asarray(explanation.values).shape == (25, len(model.selector.selected_features_))


def test_summary_plot_rejects_unknown_type(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, _ = features_and_loss

    with pytest.raises(ValueError):
        SHAPExplainer(model, background=X).summary_plot(X, plot_type="violin", show=False)


def test_unfitted_model_cannot_be_explained(features_and_loss):
    X, _ = features_and_loss

    with pytest.raises(RuntimeError):
        SHAPExplainer(LGDModel(), background=X)


def test_empty_background(fitted_lgd, features_and_loss):
    model, _ = fitted_lgd
    X, _ = features_and_loss

    with pytest.raises(ValueError):
        SHAPExplainer(model, background=X.iloc[:0])


def test_plots_return_figures(fitted_lgd, fitted_pd, features_and_loss):
    lgd_model, _ = fitted_lgd
    pd_model, _ = fitted_pd
    X, loss = features_and_loss

    figures = [
        plot_roc_curve(pd_model.get_roc_curve(X, loss), auc=0.8, show=False),
        plot_coefficients(pd_model.get_coefficients(), top_n=5, show=False),
        plot_regularization_path(lgd_model.get_regularization_path(), show=False),
    ]

    for fig in figures:
        assert isinstance(fig, plt.Figure)
        plt.close(fig)


def test_roc_plot_requires_columns():
    with pytest.raises(KeyError):
        plot_roc_curve(pd.DataFrame({"fpr": [0.0, 1.0]}), show=False)
