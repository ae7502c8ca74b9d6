"""
Explainability module for the loan loss predictor.

Provides model interpretability and evaluation plots:
- SHAP values for the linear LGD and PD models
- ROC curve, coefficient and regularization path plots

Example:
    >>> from loan_loss.explainability import SHAPExplainer
    >>> explainer = SHAPExplainer(pd_model, background=X_train)
    >>> importance = explainer.get_feature_importance(X_val)
"""

from loan_loss.explainability.shap_utils import (
    SHAPExplainer,
    plot_coefficients,
    plot_regularization_path,
    plot_roc_curve,
)

__all__ = [
    'SHAPExplainer',
    'plot_coefficients',
    'plot_regularization_path',
    'plot_roc_curve',
]
