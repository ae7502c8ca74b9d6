"""
Data module for the loan loss predictor.

Handles loan record input and output:
- CSV loading with text-first numeric coercion
- Scenario-specific test sets
- One-column prediction files
- Synthetic loan tables for demos and tests
"""

from .loader import LoanDataError, LoanDataLoader, coerce_numeric, read_loan_csv, write_predictions
from .data_generator import SyntheticLoanGenerator

__all__ = [
    'LoanDataError',
    'LoanDataLoader',
    'SyntheticLoanGenerator',
    'coerce_numeric',
    'read_loan_csv',
    'write_predictions',
]
