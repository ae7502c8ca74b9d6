"""
Models module for the loan loss predictor.

Contains model training and prediction logic:
- Elastic-net LGD regression with cross-validated penalty
- Elastic-net logistic PD classification with cross-validated penalty
- Expected loss combination
- Model persistence
"""

from loan_loss.models.expected_loss import expected_loss
from loan_loss.models.lgd_model import LGDModel
from loan_loss.models.pd_model import PDModel

__all__ = ['LGDModel', 'PDModel', 'expected_loss']
