"""
SHAP Explainability Utilities for the Loan Loss Predictor.

Provides SHAP-based interpretability for the regularized linear LGD and PD
models, plus evaluation plots:
- Per-record explanations (contribution of each selected predictor)
- Global feature importance (mean absolute SHAP value)
- ROC curve, coefficient and regularization path plots

Usage:
    >>> from loan_loss.explainability import SHAPExplainer
    >>> explainer = SHAPExplainer(pd_model, background=X_train)
    >>> importance = explainer.get_feature_importance(X_val)
"""

from typing import Any, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import shap


class SHAPExplainer:
    """
    SHAP explanations for a fitted LGDModel or PDModel.

    Raw feature tables are passed through the model's own preprocessing
    and selection before SHAP values are computed, so explanations refer
    to the standardized, selected predictors. For PDModel the values are
    on the log-odds scale.

    Attributes:
        loan_model: The fitted LGDModel or PDModel.
        explainer: The underlying shap.LinearExplainer.
        is_classifier: Whether the wrapped estimator is a classifier.

    Example:
        >>> explainer = SHAPExplainer(lgd_model, background=X_train)
        >>> explanation = explainer.explain(X_test.head(10))
        >>> explainer.summary_plot(X_test, show=False)
    """

    def __init__(self, loan_model: Any, background: pd.DataFrame, max_background: int = 200,
                 random_state: int = 42) -> None:
        """
        Initialize the SHAP explainer.

        Args:
            loan_model: Fitted LGDModel or PDModel.
            background: Raw feature rows used as the SHAP background
                        distribution (sampled down to max_background).
            max_background: Maximum number of background rows.
            random_state: Seed for background sampling.

        Raises:
            RuntimeError: If the model has not been fitted.
            ValueError: If background is empty.
        """
        if not getattr(loan_model, 'is_fitted', False):
            raise RuntimeError("Model must be fitted before it can be explained")
        if len(background) == 0:
            raise ValueError("Background data cannot be empty")

        self.loan_model = loan_model
        self.is_classifier = hasattr(loan_model.model, 'predict_proba')

        if len(background) > max_background:
            background = background.sample(n=max_background, random_state=random_state)

        self.background = loan_model.transform_features(background)
        self.explainer = shap.LinearExplainer(loan_model.model, self.background)

    def explain(self, X: pd.DataFrame) -> shap.Explanation:
        """
        Calculate SHAP values for raw feature rows.

        Args:
            X: Raw feature DataFrame (same columns as training data).

        Returns:
            shap.Explanation with values of shape (n_samples, n_selected_features).
        """
        X_ready = self.loan_model.transform_features(X)
        shap_values = self.explainer(X_ready)

        # Ensure feature names are preserved
        if getattr(shap_values, 'feature_names', None) is None:
            shap_values.feature_names = list(X_ready.columns)

        return shap_values

    def get_feature_importance(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Calculate mean absolute SHAP values for feature importance.

        Args:
            X: Raw feature DataFrame.

        Returns:
            DataFrame with columns:
                - feature: Feature name
                - importance: Mean absolute SHAP value
                - importance_pct: Percentage of total importance
            Sorted by importance in descending order.
        """
        shap_values = self.explain(X)
        mean_abs_shap = np.abs(np.asarray(shap_values.values)).mean(axis=0)

        importance_df = pd.DataFrame({
            'feature': list(self.background.columns),
            'importance': mean_abs_shap
        })

        total_importance = importance_df['importance'].sum()
        if total_importance > 0:
            importance_df['importance_pct'] = (
                importance_df['importance'] / total_importance * 100
            )
        else:
            importance_df['importance_pct'] = 0.0

        importance_df = importance_df.sort_values(
            'importance', ascending=False
        ).reset_index(drop=True)

        return importance_df

    def summary_plot(
        self,
        X: pd.DataFrame,
        plot_type: str = 'bar',
        max_display: int = 15,
        show: bool = True
    ) -> plt.Figure:
        """
        Generate summary plot showing feature importance.

        Args:
            X: Raw feature DataFrame.
            plot_type: 'bar' for mean |SHAP|, 'dot' or 'beeswarm' for distributions.
            max_display: Maximum number of features to display.
            show: If True, display the plot immediately.

        Returns:
            matplotlib Figure object.

        Raises:
            ValueError: If plot_type is not 'bar', 'dot', or 'beeswarm'.
        """
        valid_plot_types = {'bar', 'dot', 'beeswarm'}
        if plot_type not in valid_plot_types:
            raise ValueError(f"plot_type must be one of {valid_plot_types}")

        shap_values = self.explain(X)

        fig = plt.figure(figsize=(10, max(6, max_display * 0.4)))

        if plot_type == 'bar':
            shap.plots.bar(shap_values, max_display=max_display, show=False)
        else:
            shap.plots.beeswarm(shap_values, max_display=max_display, show=False)

        plt.tight_layout()

        if show:
            plt.show()

        return fig


def plot_roc_curve(
    roc_df: pd.DataFrame,
    auc: Optional[float] = None,
    title: str = 'PD Model ROC Curve',
    show: bool = True
) -> plt.Figure:
    """
    Plot an ROC curve.

    Args:
        roc_df: DataFrame with fpr and tpr columns (PDModel.get_roc_curve()).
        auc: Optional AUC shown in the legend.
        title: Plot title.
        show: If True, display the plot immediately.

    Returns:
        matplotlib Figure object.

    Raises:
        KeyError: If fpr or tpr columns are missing.
    """
    for col in ('fpr', 'tpr'):
        if col not in roc_df.columns:
            raise KeyError(f"ROC data must contain '{col}' column")

    fig, ax = plt.subplots(figsize=(7, 6))
    label = f'Model (AUC = {auc:.3f})' if auc is not None else 'Model'
    ax.plot(roc_df['fpr'], roc_df['tpr'], color='#1f4e79', linewidth=2, label=label)
    ax.plot([0, 1], [0, 1], linestyle='--', color='#999999', label='Chance')
    ax.set_xlim(0, 1)
    ax.set_ylim(0, 1.02)
    ax.set_xlabel('False positive rate')
    ax.set_ylabel('True positive rate')
    ax.set_title(title)
    ax.legend(loc='lower right')
    fig.tight_layout()

    if show:
        plt.show()

    return fig


def plot_coefficients(
    coef_df: pd.DataFrame,
    top_n: int = 20,
    title: str = 'Largest Coefficients',
    show: bool = True
) -> plt.Figure:
    """
    Horizontal bar chart of the largest coefficients by magnitude.

    Args:
        coef_df: DataFrame with feature and coefficient columns.
        top_n: Number of coefficients to show.
        title: Plot title.
        show: If True, display the plot immediately.

    Returns:
        matplotlib Figure object.
    """
    for col in ('feature', 'coefficient'):
        if col not in coef_df.columns:
            raise KeyError(f"Coefficient data must contain '{col}' column")

    top = coef_df.reindex(
        coef_df['coefficient'].abs().sort_values(ascending=False).index
    ).head(top_n).iloc[::-1]

    colors = ['#c0392b' if c > 0 else '#2e86c1' for c in top['coefficient']]

    fig, ax = plt.subplots(figsize=(8, max(4, len(top) * 0.35)))
    ax.barh(top['feature'], top['coefficient'], color=colors)
    ax.axvline(0, color='#333333', linewidth=0.8)
    ax.set_xlabel('Coefficient (standardized features)')
    ax.set_title(title)
    fig.tight_layout()

    if show:
        plt.show()

    return fig


def plot_regularization_path(
    path_df: pd.DataFrame,
    title: str = 'LGD Cross-Validation Error',
    show: bool = True
) -> plt.Figure:
    """
    Plot mean CV error against the penalty strength.

    Args:
        path_df: DataFrame from LGDModel.get_regularization_path().
        title: Plot title.
        show: If True, display the plot immediately.

    Returns:
        matplotlib Figure object.
    """
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.errorbar(
        np.log10(path_df['alpha']), path_df['mean_mse'], yerr=path_df['std_mse'],
        fmt='o-', markersize=3, color='#1f4e79', ecolor='#bbbbbb', capsize=2
    )

    chosen = path_df[path_df['selected']]
    if not chosen.empty:
        ax.axvline(np.log10(chosen['alpha'].iloc[0]), linestyle='--', color='#c0392b',
                   label='Selected alpha')
        ax.legend()

    ax.set_xlabel('log10(alpha)')
    ax.set_ylabel('Mean squared error')
    ax.set_title(title)
    fig.tight_layout()

    if show:
        plt.show()

    return fig
