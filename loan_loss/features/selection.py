"""
Coefficient-based predictor selection.

Fits a regularized linear model on standardized features and keeps the
predictors with the largest absolute coefficients.
"""

import logging
from typing import Any, List, Optional

import numpy as np
import pandas as pd
from sklearn.base import clone

logger = logging.getLogger("loan_loss.selection")


class CoefficientSelector:
    """
    Rank predictors by |coefficient| of a cross-validated linear model.

    Works with any estimator exposing ``coef_`` after fitting
    (ElasticNetCV, LassoCV, LogisticRegressionCV, ...). Inputs are expected
    to be standardized so coefficient magnitudes are comparable.

    Attributes:
        estimator: Unfitted template estimator (cloned on fit).
        max_features: Upper bound on selected predictors (None = no bound).
        min_abs_coef: Coefficients at or below this magnitude are dropped.
        selected_features_: Names of the kept predictors, best first.

    Example:
        >>> selector = CoefficientSelector(ElasticNetCV(cv=5), max_features=20)
        >>> X_sel = selector.fit(X_scaled, y).transform(X_scaled)
        >>> selector.get_ranking().head()
    """

    def __init__(
        self,
        estimator: Any,
        max_features: Optional[int] = None,
        min_abs_coef: float = 0.0,
    ) -> None:
        if max_features is not None and max_features < 1:
            raise ValueError("max_features must be a positive integer or None")

        self.estimator = estimator
        self.max_features = max_features
        self.min_abs_coef = min_abs_coef

        self.estimator_: Optional[Any] = None
        self.ranking_: Optional[pd.DataFrame] = None
        self.selected_features_: Optional[List[str]] = None

    def fit(self, X: pd.DataFrame, y) -> 'CoefficientSelector':
        """
        Fit the ranking model and choose predictors.

        Args:
            X: Standardized feature DataFrame.
            y: Target values.

        Returns:
            self
        """
        self.estimator_ = clone(self.estimator)
        self.estimator_.fit(X, y)

        coefs = np.ravel(self.estimator_.coef_)
        ranking = pd.DataFrame({
            'feature': list(X.columns),
            'coefficient': coefs,
            'abs_coefficient': np.abs(coefs),
        })
        ranking = ranking.sort_values(
            'abs_coefficient', ascending=False, kind='mergesort'
        ).reset_index(drop=True)
        ranking['rank'] = range(1, len(ranking) + 1)

        keep = ranking['abs_coefficient'] > self.min_abs_coef
        if self.max_features is not None:
            keep &= ranking['rank'] <= self.max_features

        if not keep.any():
            logger.warning(
                "Regularization removed every predictor; keeping all "
                f"{len(ranking)} candidate features"
            )
            keep = pd.Series(True, index=ranking.index)

        ranking['selected'] = keep.values
        self.ranking_ = ranking
        self.selected_features_ = ranking.loc[keep, 'feature'].tolist()

        logger.info(
            f"Selected {len(self.selected_features_)} of {len(ranking)} predictors "
            f"by coefficient magnitude"
        )
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.selected_features_ is None:
            raise RuntimeError("Selector must be fitted before transform")
        return X[self.selected_features_]

    def fit_transform(self, X: pd.DataFrame, y) -> pd.DataFrame:
        return self.fit(X, y).transform(X)

    def get_ranking(self) -> pd.DataFrame:
        """Full predictor ranking with a ``selected`` flag."""
        if self.ranking_ is None:
            raise RuntimeError("Selector must be fitted before getting the ranking")
        return self.ranking_.copy()
