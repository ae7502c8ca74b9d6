"""
Loan Feature Preprocessing Module.

Turns coerced loan tables into model-ready matrices:
- Drops columns with no observed values
- Drops near-zero-variance columns (frequency-ratio / percent-unique rule)
- Imputes remaining gaps with per-column training medians
- Centers and scales every retained column

All statistics are learned in ``fit`` on training rows and reused unchanged
in ``transform`` for holdout and test rows.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import StandardScaler

from loan_loss.data.loader import LoanDataError

logger = logging.getLogger("loan_loss.preprocessing")


def near_zero_variance(
    df: pd.DataFrame,
    freq_cut: float = 95 / 5,
    unique_cut: float = 10.0,
) -> pd.DataFrame:
    """
    Compute near-zero-variance diagnostics for every column.

    A column is flagged when its most common value dominates the second most
    common one (``freq_ratio > freq_cut``) while it has few distinct values
    (``percent_unique <= unique_cut``), or when it has a single distinct
    value (or none at all).

    Args:
        df: Numeric DataFrame.
        freq_cut: Threshold on the ratio of the two most common values.
        unique_cut: Threshold on distinct values as a percentage of rows.

    Returns:
        DataFrame indexed by column name with columns:
            - freq_ratio: most common / second most common value count
            - percent_unique: distinct non-missing values / rows * 100
            - zero_var: True for single-valued or all-missing columns
            - nzv: True when the column should be dropped
    """
    n_rows = len(df)
    records = []

    for col in df.columns:
        counts = df[col].dropna().value_counts()
        n_unique = len(counts)

        if n_unique <= 1:
            freq_ratio = 0.0
        else:
            freq_ratio = counts.iloc[0] / counts.iloc[1]

        percent_unique = 100.0 * n_unique / n_rows if n_rows else 0.0
        zero_var = n_unique <= 1

        records.append({
            'column': col,
            'freq_ratio': float(freq_ratio),
            'percent_unique': float(percent_unique),
            'zero_var': bool(zero_var),
            'nzv': bool((freq_ratio > freq_cut and percent_unique <= unique_cut) or zero_var),
        })

    return pd.DataFrame.from_records(
        records, columns=['column', 'freq_ratio', 'percent_unique', 'zero_var', 'nzv']
    ).set_index('column')


class LoanPreprocessor:
    """
    Variance filtering, median imputation and standardization for loan data.

    Attributes:
        freq_cut: Near-zero-variance frequency-ratio threshold.
        unique_cut: Near-zero-variance percent-unique threshold.
        retained_columns_: Columns kept after fitting.
        dropped_columns_: Mapping of drop reason to column names.
        medians_: Per-column training medians used for imputation.

    Example:
        >>> prep = LoanPreprocessor()
        >>> X_train_ready = prep.fit_transform(X_train)
        >>> X_test_ready = prep.transform(X_test)
    """

    def __init__(self, freq_cut: float = 95 / 5, unique_cut: float = 10.0) -> None:
        self.freq_cut = freq_cut
        self.unique_cut = unique_cut

        self.retained_columns_: Optional[List[str]] = None
        self.dropped_columns_: Dict[str, List[str]] = {}
        self.medians_: Optional[pd.Series] = None
        self.nzv_metrics_: Optional[pd.DataFrame] = None
        self.imputer_: Optional[SimpleImputer] = None
        self.scaler_: Optional[StandardScaler] = None
        self.is_fitted: bool = False

    def fit(self, X: pd.DataFrame) -> 'LoanPreprocessor':
        """
        Learn retained columns, medians and scaling from training rows.

        Args:
            X: Numeric feature DataFrame.

        Returns:
            self

        Raises:
            ValueError: If X is empty or has non-numeric columns.
            LoanDataError: If every column is dropped.
        """
        if len(X) == 0:
            raise ValueError("Cannot fit preprocessor on empty data")

        non_numeric = X.select_dtypes(exclude=[np.number]).columns.tolist()
        if non_numeric:
            raise ValueError(f"Non-numeric feature columns: {non_numeric}")

        all_missing = X.columns[X.isna().all()].tolist()
        candidates = X.drop(columns=all_missing)

        self.nzv_metrics_ = near_zero_variance(
            candidates, freq_cut=self.freq_cut, unique_cut=self.unique_cut
        )
        nzv_cols = self.nzv_metrics_.index[self.nzv_metrics_['nzv']].tolist()

        self.dropped_columns_ = {'all_missing': all_missing, 'near_zero_variance': nzv_cols}
        self.retained_columns_ = [c for c in candidates.columns if c not in set(nzv_cols)]

        logger.info(
            f"Variance filter: kept {len(self.retained_columns_)} of {X.shape[1]} columns "
            f"(all-missing: {len(all_missing)}, near-zero variance: {len(nzv_cols)})"
        )
        if nzv_cols:
            logger.debug(f"Near-zero-variance columns: {nzv_cols}")

        if not self.retained_columns_:
            raise LoanDataError("No feature columns left after variance filtering")

        X_kept = X[self.retained_columns_]

        self.imputer_ = SimpleImputer(strategy='median')
        imputed = self.imputer_.fit_transform(X_kept)
        self.medians_ = pd.Series(self.imputer_.statistics_, index=self.retained_columns_)

        self.scaler_ = StandardScaler()
        self.scaler_.fit(imputed)

        self.is_fitted = True
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the fitted filter, imputation and scaling.

        Args:
            X: Numeric feature DataFrame containing the retained columns.

        Returns:
            DataFrame with the same index, retained columns, no missing values.

        Raises:
            RuntimeError: If called before fit.
            ValueError: If retained columns are missing from X.
        """
        if not self.is_fitted:
            raise RuntimeError("Preprocessor must be fitted before transform")

        missing = [c for c in self.retained_columns_ if c not in X.columns]
        if missing:
            raise ValueError(f"Missing features: {missing}")

        X_kept = X[self.retained_columns_].apply(pd.to_numeric, errors='coerce')
        imputed = self.imputer_.transform(X_kept)
        scaled = self.scaler_.transform(imputed)

        return pd.DataFrame(scaled, index=X.index, columns=self.retained_columns_)

    def fit_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.fit(X).transform(X)

    def get_summary(self) -> Dict[str, object]:
        """
        Summarize what the fitted preprocessor kept and dropped.

        Returns:
            Dictionary with retained/dropped counts and column lists.
        """
        if not self.is_fitted:
            raise RuntimeError("Preprocessor must be fitted before summarizing")

        return {
            'n_retained': len(self.retained_columns_),
            'n_dropped_all_missing': len(self.dropped_columns_['all_missing']),
            'n_dropped_near_zero_variance': len(self.dropped_columns_['near_zero_variance']),
            'retained_columns': list(self.retained_columns_),
            'dropped_columns': {k: list(v) for k, v in self.dropped_columns_.items()},
        }
