"""
Loan Loss Predictor - Source Package

This package contains the core modules for estimating credit losses:
- data: Loan record loading, numeric coercion and synthetic data
- features: Variance filtering, imputation, scaling and predictor selection
- models: Loss Given Default and Probability of Default models
- explainability: SHAP-based interpretability and evaluation plots
"""

__version__ = "0.1.0"
