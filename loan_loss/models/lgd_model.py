"""
Elastic-Net Loss Given Default Model.

This module provides the LGDModel class, a regularized linear regressor for
the fraction of exposure lost on defaulted loans. The regularization path
over ``alpha`` and ``l1_ratio`` is selected by K-fold cross-validation
(ElasticNetCV).

Features:
- Variance filtering, median imputation and standardization (LoanPreprocessor)
- Predictor ranking by coefficient magnitude (CoefficientSelector)
- Cross-validated elastic-net regression on the selected predictors
- Holdout evaluation (MAE, RMSE, R-squared)
- Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import joblib
import numpy as np
import pandas as pd
from sklearn.linear_model import ElasticNetCV
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score
from sklearn.model_selection import KFold

from loan_loss.features.preprocessing import LoanPreprocessor
from loan_loss.features.selection import CoefficientSelector

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class LGDModel:
    """
    Elastic-net regressor for loss given default.

    Only defaulted loans (``loss > default_threshold``) carry an observed
    severity, so training uses those rows and the target
    ``loss / loss_scale``. Predictions are produced for every record and
    clipped to [0, 1].

    Attributes:
        preprocessor: Fitted LoanPreprocessor.
        selector: Fitted CoefficientSelector.
        model: Fitted ElasticNetCV on the selected predictors.
        feature_names: Input feature columns seen during training.
        is_fitted: Whether the model has been trained.

    Example:
        >>> model = LGDModel(cv_folds=10, max_features=50)
        >>> metrics = model.fit(X_train, loss_train)
        >>> lgd = model.predict(X_test)
    """

    DEFAULT_L1_RATIOS = (0.5, 0.9, 1.0)

    def __init__(
        self,
        l1_ratios: Sequence[float] = DEFAULT_L1_RATIOS,
        cv_folds: int = 10,
        max_features: Optional[int] = 50,
        loss_scale: float = 100.0,
        default_threshold: float = 0.0,
        freq_cut: float = 95 / 5,
        unique_cut: float = 10.0,
        max_iter: int = 2000,
        random_state: int = 42,
        n_jobs: Optional[int] = None,
    ) -> None:
        """
        Initialize the LGDModel.

        Args:
            l1_ratios: Elastic-net mixing values to search (1.0 = lasso).
            cv_folds: Number of cross-validation folds.
            max_features: Upper bound on predictors kept by selection.
            loss_scale: Divisor turning the loss column into a fraction.
            default_threshold: Loss above this value marks a default.
            freq_cut: Near-zero-variance frequency-ratio threshold.
            unique_cut: Near-zero-variance percent-unique threshold.
            max_iter: Coordinate descent iteration limit.
            random_state: Seed for fold shuffling.
            n_jobs: Parallel jobs for CV (None = use the registered pool).
        """
        if loss_scale <= 0:
            raise ValueError("loss_scale must be positive")

        self.l1_ratios = tuple(l1_ratios)
        self.cv_folds = cv_folds
        self.max_features = max_features
        self.loss_scale = loss_scale
        self.default_threshold = default_threshold
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut
        self.max_iter = max_iter
        self.random_state = random_state
        self.n_jobs = n_jobs

        self.preprocessor: Optional[LoanPreprocessor] = None
        self.selector: Optional[CoefficientSelector] = None
        self.model: Optional[ElasticNetCV] = None
        self.feature_names: Optional[list] = None
        self.is_fitted: bool = False

        logger.info(
            f"LGDModel initialized: l1_ratios={self.l1_ratios}, "
            f"cv_folds={cv_folds}, max_features={max_features}"
        )

    def _build_estimator(self) -> ElasticNetCV:
        return ElasticNetCV(
            l1_ratio=list(self.l1_ratios),
            cv=KFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state),
            max_iter=self.max_iter,
            n_jobs=self.n_jobs,
        )

    def _defaulted_rows(self, X: pd.DataFrame, loss: pd.Series):
        """
        Restrict to defaulted records and convert loss to a fraction.

        Returns:
            Tuple of (X_defaulted, lgd_fraction).
        """
        loss = pd.Series(np.asarray(loss, dtype=float), index=X.index)
        mask = loss > self.default_threshold
        return X.loc[mask], loss.loc[mask] / self.loss_scale

    def fit(self, X: pd.DataFrame, loss: pd.Series) -> Dict[str, Any]:
        """
        Train on defaulted loans.

        Args:
            X: Numeric feature DataFrame (all training loans).
            loss: Loss column aligned with X.

        Returns:
            Dictionary with training metrics:
                - mae, rmse, r2: In-sample fit on defaulted loans
                - cv_mse: Mean CV squared error at the chosen penalty
                - alpha, l1_ratio: Chosen penalty
                - n_features_retained, n_features_selected, n_samples

        Raises:
            ValueError: If X is empty, lengths differ or no loan defaulted.
        """
        if len(X) == 0:
            raise ValueError("Training data cannot be empty")
        if len(X) != len(loss):
            raise ValueError(f"X has {len(X)} rows but loss has {len(loss)}")

        X_def, y = self._defaulted_rows(X, loss)
        if len(X_def) == 0:
            raise ValueError("No defaulted loans in training data; LGD cannot be fitted")

        logger.info(
            f"Training LGDModel on {len(X_def):,} defaulted loans "
            f"(of {len(X):,}), mean LGD={y.mean():.4f}"
        )

        self.feature_names = list(X.columns)

        self.preprocessor = LoanPreprocessor(freq_cut=self.freq_cut, unique_cut=self.unique_cut)
        X_ready = self.preprocessor.fit_transform(X_def)

        self.selector = CoefficientSelector(self._build_estimator(), max_features=self.max_features)
        X_sel = self.selector.fit_transform(X_ready, y)

        self.model = self._build_estimator()
        self.model.fit(X_sel, y)
        self.is_fitted = True

        y_pred = np.clip(self.model.predict(X_sel), 0.0, 1.0)

        metrics = {
            'mae': float(mean_absolute_error(y, y_pred)),
            'rmse': float(np.sqrt(mean_squared_error(y, y_pred))),
            'r2': float(r2_score(y, y_pred)),
            'cv_mse': float(self.get_regularization_path()['mean_mse'].min()),
            'alpha': float(self.model.alpha_),
            'l1_ratio': float(self.model.l1_ratio_),
            'n_features_retained': len(self.preprocessor.retained_columns_),
            'n_features_selected': len(self.selector.selected_features_),
            'n_samples': int(len(X_def)),
        }

        logger.info(
            f"Training complete: MAE={metrics['mae']:.4f}, RMSE={metrics['rmse']:.4f}, "
            f"R2={metrics['r2']:.3f}, alpha={metrics['alpha']:.5f}, "
            f"l1_ratio={metrics['l1_ratio']}"
        )

        return metrics

    def transform_features(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Preprocess and select features exactly as during training.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before transforming features")
        return self.selector.transform(self.preprocessor.transform(X))

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict loss given default as a fraction of exposure.

        Args:
            X: Feature DataFrame (same columns as training data).

        Returns:
            NumPy array of LGD values in [0, 1], one per row of X.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before making predictions")

        predictions = self.model.predict(self.transform_features(X))
        return np.clip(predictions, 0.0, 1.0)

    def evaluate(self, X: pd.DataFrame, loss: pd.Series) -> Dict[str, float]:
        """
        Evaluate on the defaulted loans of a holdout set.

        Args:
            X: Holdout features.
            loss: Holdout loss column.

        Returns:
            Dictionary with mae, rmse, r2, mean_actual, mean_predicted, n_samples.
            Metrics are NaN when the holdout contains no defaults.
        """
        X_def, y = self._defaulted_rows(X, loss)
        if len(X_def) == 0:
            logger.warning("Holdout contains no defaulted loans; LGD metrics undefined")
            nan = float('nan')
            return {'mae': nan, 'rmse': nan, 'r2': nan,
                    'mean_actual': nan, 'mean_predicted': nan, 'n_samples': 0}

        y_pred = self.predict(X_def)
        results = {
            'mae': float(mean_absolute_error(y, y_pred)),
            'rmse': float(np.sqrt(mean_squared_error(y, y_pred))),
            'r2': float(r2_score(y, y_pred)) if len(y) > 1 else float('nan'),
            'mean_actual': float(y.mean()),
            'mean_predicted': float(np.mean(y_pred)),
            'n_samples': int(len(y)),
        }

        logger.info(
            f"Holdout LGD: MAE={results['mae']:.4f}, RMSE={results['rmse']:.4f}, "
            f"R2={results['r2']:.3f} on {results['n_samples']:,} defaults"
        )
        return results

    def get_coefficients(self) -> pd.DataFrame:
        """
        Final model coefficients sorted by magnitude.

        Returns:
            DataFrame with columns feature, coefficient, abs_coefficient, rank.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before getting coefficients")

        coef_df = pd.DataFrame({
            'feature': self.selector.selected_features_,
            'coefficient': np.ravel(self.model.coef_),
        })
        coef_df['abs_coefficient'] = coef_df['coefficient'].abs()
        coef_df = coef_df.sort_values(
            'abs_coefficient', ascending=False, kind='mergesort'
        ).reset_index(drop=True)
        coef_df['rank'] = range(1, len(coef_df) + 1)
        return coef_df

    def get_regularization_path(self) -> pd.DataFrame:
        """
        Cross-validated error along the alpha path at the chosen l1_ratio.

        Returns:
            DataFrame with columns alpha, mean_mse, std_mse, selected.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before getting the regularization path")

        mse = np.asarray(self.model.mse_path_)
        alphas = np.asarray(self.model.alphas_)

        # One row per l1_ratio when several were searched
        if mse.ndim == 3:
            idx = int(np.argmin(np.abs(np.asarray(self.l1_ratios) - self.model.l1_ratio_)))
            mse, alphas = mse[idx], alphas[idx]

        return pd.DataFrame({
            'alpha': alphas,
            'mean_mse': mse.mean(axis=1),
            'std_mse': mse.std(axis=1),
            'selected': np.isclose(alphas, self.model.alpha_),
        })

    def save(self, path: str) -> None:
        """
        Save the model to disk.

        Args:
            path: File path (typically .joblib extension).

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Cannot save unfitted model")

        Path(path).parent.mkdir(parents=True, exist_ok=True)

        state = {
            'preprocessor': self.preprocessor,
            'selector': self.selector,
            'model': self.model,
            'feature_names': self.feature_names,
            'is_fitted': self.is_fitted,
            'hyperparameters': {
                'l1_ratios': self.l1_ratios,
                'cv_folds': self.cv_folds,
                'max_features': self.max_features,
                'loss_scale': self.loss_scale,
                'default_threshold': self.default_threshold,
                'freq_cut': self.freq_cut,
                'unique_cut': self.unique_cut,
                'max_iter': self.max_iter,
                'random_state': self.random_state,
            },
            'version': '1.0.0',
        }

        joblib.dump(state, path)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(cls, path: str) -> 'LGDModel':
        """
        Load a saved model from disk.

        Raises:
            FileNotFoundError: If the model file does not exist.
        """
        if not Path(path).exists():
            raise FileNotFoundError(f"Model file not found: {path}")

        state = joblib.load(path)

        instance = cls(**state['hyperparameters'])
        instance.preprocessor = state['preprocessor']
        instance.selector = state['selector']
        instance.model = state['model']
        instance.feature_names = state['feature_names']
        instance.is_fitted = state['is_fitted']

        logger.info(f"Model loaded from {path}")
        return instance
