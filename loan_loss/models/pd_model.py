"""
Regularized Logistic Probability of Default Model.

Provides a binary classifier for the probability that a loan defaults
(``loss > 0``). Uses elastic-net logistic regression with the penalty
strength and mixing chosen by stratified cross-validation on ROC AUC.
"""

import inspect
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import joblib
import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegressionCV
from sklearn.metrics import (
    accuracy_score,
    brier_score_loss,
    confusion_matrix,
    roc_auc_score,
    roc_curve,
)
from sklearn.model_selection import StratifiedKFold

from loan_loss.features.preprocessing import LoanPreprocessor
from loan_loss.features.selection import CoefficientSelector

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PDModel:
    """
    Elastic-net logistic classifier for probability of default.

    Attributes:
        preprocessor: Fitted LoanPreprocessor.
        selector: Fitted CoefficientSelector.
        model: Fitted LogisticRegressionCV on the selected predictors.
        feature_names: Input feature columns seen during training.
        is_fitted: Whether the model has been trained.

    Example:
        >>> model = PDModel(cv_folds=10)
        >>> metrics = model.fit(X_train, loss_train)
        >>> pd_values = model.predict_proba(X_test)
        >>> roc = model.get_roc_curve(X_val, loss_val)
    """

    DEFAULT_L1_RATIOS = (0.5, 1.0)

    def __init__(
        self,
        l1_ratios: Sequence[float] = DEFAULT_L1_RATIOS,
        cs: int = 10,
        cv_folds: int = 10,
        max_features: Optional[int] = 50,
        default_threshold: float = 0.0,
        freq_cut: float = 95 / 5,
        unique_cut: float = 10.0,
        max_iter: int = 2000,
        random_state: int = 42,
        n_jobs: Optional[int] = None,
    ) -> None:
        """
        Initialize the PDModel.

        Args:
            l1_ratios: Elastic-net mixing values to search (1.0 = lasso).
            cs: Number of inverse regularization strengths on the path.
            cv_folds: Number of stratified cross-validation folds.
            max_features: Upper bound on predictors kept by selection.
            default_threshold: Loss above this value marks a default.
            freq_cut: Near-zero-variance frequency-ratio threshold.
            unique_cut: Near-zero-variance percent-unique threshold.
            max_iter: Solver iteration limit.
            random_state: Seed for fold shuffling and the solver.
            n_jobs: Parallel jobs for CV (None = use the registered pool).
        """
        self.l1_ratios = tuple(l1_ratios)
        self.cs = cs
        self.cv_folds = cv_folds
        self.max_features = max_features
        self.default_threshold = default_threshold
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut
        self.max_iter = max_iter
        self.random_state = random_state
        self.n_jobs = n_jobs

        self.preprocessor: Optional[LoanPreprocessor] = None
        self.selector: Optional[CoefficientSelector] = None
        self.model: Optional[LogisticRegressionCV] = None
        self.feature_names: Optional[list] = None
        self.is_fitted: bool = False

        logger.info(
            f"PDModel initialized: l1_ratios={self.l1_ratios}, cs={cs}, "
            f"cv_folds={cv_folds}, max_features={max_features}"
        )

    def _build_estimator(self) -> LogisticRegressionCV:
        params = {}
        # scikit-learn >= 1.8 infers the penalty from l1_ratios
        if 'use_legacy_attributes' in inspect.signature(LogisticRegressionCV).parameters:
            params['use_legacy_attributes'] = True
        else:
            params['penalty'] = 'elasticnet'

        return LogisticRegressionCV(
            Cs=self.cs,
            cv=StratifiedKFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state),
            solver='saga',
            l1_ratios=list(self.l1_ratios),
            scoring='roc_auc',
            max_iter=self.max_iter,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
            **params,
        )

    def _default_flag(self, loss) -> np.ndarray:
        """Convert the loss column to 0/1 default labels."""
        return (np.asarray(loss, dtype=float) > self.default_threshold).astype(int)

    def fit(self, X: pd.DataFrame, loss: pd.Series) -> Dict[str, Any]:
        """
        Train the classifier.

        Args:
            X: Numeric feature DataFrame.
            loss: Loss column aligned with X.

        Returns:
            Dictionary containing:
                - train_auc: In-sample ROC AUC
                - cv_auc: Best mean cross-validated ROC AUC
                - C, l1_ratio: Chosen penalty
                - default_rate: Share of defaulted loans
                - n_features_retained, n_features_selected, n_samples

        Raises:
            ValueError: If X is empty, lengths differ or only one class occurs.
        """
        if len(X) == 0:
            raise ValueError("Training data cannot be empty")
        if len(X) != len(loss):
            raise ValueError(f"X has {len(X)} rows but loss has {len(loss)}")

        y = self._default_flag(loss)
        if len(np.unique(y)) < 2:
            raise ValueError(
                "Training target has a single class; need both defaulted and "
                "non-defaulted loans"
            )

        logger.info(f"Starting PD training with {len(X):,} loans, default rate {y.mean():.2%}")

        self.feature_names = list(X.columns)

        self.preprocessor = LoanPreprocessor(freq_cut=self.freq_cut, unique_cut=self.unique_cut)
        X_ready = self.preprocessor.fit_transform(X)

        self.selector = CoefficientSelector(self._build_estimator(), max_features=self.max_features)
        X_sel = self.selector.fit_transform(X_ready, y)

        self.model = self._build_estimator()
        self.model.fit(X_sel, y)
        self.is_fitted = True

        train_proba = self.model.predict_proba(X_sel)[:, 1]

        # scores_ holds (folds, Cs[, l1_ratios]) AUCs, keyed by the positive class
        fold_scores = self.model.scores_
        if isinstance(fold_scores, dict):
            fold_scores = next(iter(fold_scores.values()))
        cv_auc = float(np.nanmax(np.asarray(fold_scores).mean(axis=0)))

        metrics = {
            'train_auc': float(roc_auc_score(y, train_proba)),
            'cv_auc': cv_auc,
            'C': float(np.atleast_1d(self.model.C_)[0]),
            'l1_ratio': float(np.atleast_1d(self.model.l1_ratio_)[0]),
            'default_rate': float(y.mean()),
            'n_features_retained': len(self.preprocessor.retained_columns_),
            'n_features_selected': len(self.selector.selected_features_),
            'n_samples': int(len(X)),
        }

        logger.info(
            f"Training complete: train AUC={metrics['train_auc']:.4f}, "
            f"CV AUC={metrics['cv_auc']:.4f}, C={metrics['C']:.4g}, "
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

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict the probability of default for each record.

        Args:
            X: Feature DataFrame.

        Returns:
            NumPy array of probabilities in [0, 1], one per row of X.

        Raises:
            RuntimeError: If model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before making predictions")

        return self.model.predict_proba(self.transform_features(X))[:, 1]

    def predict(self, X: pd.DataFrame, threshold: float = 0.5) -> np.ndarray:
        """Predict 0/1 default labels at a probability threshold."""
        return (self.predict_proba(X) >= threshold).astype(int)

    def get_roc_curve(self, X: pd.DataFrame, loss: pd.Series) -> pd.DataFrame:
        """
        Compute the ROC curve on labelled data.

        Returns:
            DataFrame with columns fpr, tpr, threshold.

        Raises:
            ValueError: If the labels contain a single class.
        """
        y = self._default_flag(loss)
        if len(np.unique(y)) < 2:
            raise ValueError("ROC curve needs both defaulted and non-defaulted loans")

        fpr, tpr, thresholds = roc_curve(y, self.predict_proba(X))
        return pd.DataFrame({'fpr': fpr, 'tpr': tpr, 'threshold': thresholds})

    def evaluate(
        self,
        X: pd.DataFrame,
        loss: pd.Series,
        threshold: float = 0.5
    ) -> Dict[str, Any]:
        """
        Evaluate on a labelled holdout set.

        Args:
            X: Holdout features.
            loss: Holdout loss column.
            threshold: Probability cut-off for the confusion matrix.

        Returns:
            Dictionary with auc, accuracy, brier, default_rate,
            mean_predicted, confusion_matrix (DataFrame), roc_curve
            (DataFrame or None) and n_samples.
        """
        y = self._default_flag(loss)
        proba = self.predict_proba(X)
        labels = (proba >= threshold).astype(int)

        single_class = len(np.unique(y)) < 2
        if single_class:
            logger.warning("Holdout contains a single class; AUC undefined")

        cm = confusion_matrix(y, labels, labels=[0, 1])

        results = {
            'auc': float('nan') if single_class else float(roc_auc_score(y, proba)),
            'accuracy': float(accuracy_score(y, labels)),
            'brier': float(brier_score_loss(y, proba)),
            'default_rate': float(y.mean()),
            'mean_predicted': float(proba.mean()),
            'confusion_matrix': pd.DataFrame(
                cm,
                index=['True Non-default', 'True Default'],
                columns=['Pred Non-default', 'Pred Default'],
            ),
            'roc_curve': None if single_class else self.get_roc_curve(X, loss),
            'n_samples': int(len(y)),
        }

        logger.info(
            f"Holdout PD: AUC={results['auc']:.4f}, accuracy={results['accuracy']:.4f}, "
            f"Brier={results['brier']:.4f} on {results['n_samples']:,} loans"
        )
        return results

    def get_coefficients(self) -> pd.DataFrame:
        """
        Final model coefficients (log-odds scale) sorted by magnitude.

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

    def save(self, path: str) -> None:
        """
        Save the model to disk.

        Raises:
            RuntimeError: If model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Model must be fitted before saving")

        Path(path).parent.mkdir(parents=True, exist_ok=True)

        model_state = {
            'preprocessor': self.preprocessor,
            'selector': self.selector,
            'model': self.model,
            'feature_names': self.feature_names,
            'is_fitted': self.is_fitted,
            'hyperparameters': {
                'l1_ratios': self.l1_ratios,
                'cs': self.cs,
                'cv_folds': self.cv_folds,
                'max_features': self.max_features,
                'default_threshold': self.default_threshold,
                'freq_cut': self.freq_cut,
                'unique_cut': self.unique_cut,
                'max_iter': self.max_iter,
                'random_state': self.random_state,
            },
            'version': '1.0.0',
        }

        joblib.dump(model_state, path)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(cls, path: str) -> 'PDModel':
        """
        Load a saved model from disk.

        Raises:
            FileNotFoundError: If model file doesn't exist.
        """
        if not Path(path).exists():
            raise FileNotFoundError(f"Model file not found: {path}")

        model_state = joblib.load(path)

        instance = cls(**model_state['hyperparameters'])
        instance.preprocessor = model_state['preprocessor']
        instance.selector = model_state['selector']
        instance.model = model_state['model']
        instance.feature_names = model_state['feature_names']
        instance.is_fitted = model_state['is_fitted']

        logger.info(f"Model loaded from {path}")
        return instance
