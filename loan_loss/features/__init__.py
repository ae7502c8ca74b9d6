"""
Features module for the loan loss predictor.

Handles preprocessing and selection:
- Near-zero-variance filtering
- Median imputation and standardization
- Predictor ranking by regression coefficient magnitude
"""

from .preprocessing import LoanPreprocessor, near_zero_variance
from .selection import CoefficientSelector

__all__ = ['CoefficientSelector', 'LoanPreprocessor', 'near_zero_variance']
