"""
Loan Record CSV Loader.

This module reads training and scenario test files of loan records and
writes one-column prediction files. Every value is read as text first and
then coerced to numeric, so stray tokens such as "NA" or "n/a" in a feature
column become missing values instead of turning the column into strings.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

logger = logging.getLogger("loan_loss.loader")


class LoanDataError(Exception):
    """Raised when a loan table has the wrong shape for modeling."""
    pass


def read_loan_csv(
    path: Union[str, Path],
    id_columns: Iterable[str] = ("id",),
) -> pd.DataFrame:
    """
    Read a loan CSV with all values as text, then coerce to numeric.

    Args:
        path: CSV file path.
        id_columns: Identifier columns left as text.

    Returns:
        DataFrame with numeric feature (and target) columns.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Loan data file not found: {path}")

    raw = pd.read_csv(path, dtype=str, keep_default_na=True)
    logger.info(f"Read {len(raw):,} rows x {len(raw.columns)} columns from {path.name}")

    return coerce_numeric(raw, id_columns=id_columns)


def coerce_numeric(df: pd.DataFrame, id_columns: Iterable[str] = ("id",)) -> pd.DataFrame:
    """
    Coerce every non-identifier column to numeric.

    Values that are present but not parseable become NaN; the number of
    such values per column is logged.

    Args:
        df: DataFrame of text values.
        id_columns: Columns to leave untouched.

    Returns:
        New DataFrame with numeric columns.
    """
    id_columns = set(id_columns)
    result = df.copy()

    coerced_total = 0
    for col in result.columns:
        if col in id_columns:
            continue
        original = result[col]
        converted = pd.to_numeric(original, errors="coerce")
        n_coerced = int((converted.isna() & original.notna()).sum())
        if n_coerced:
            coerced_total += n_coerced
            logger.warning(f"Column '{col}': {n_coerced} non-numeric values set to missing")
        result[col] = converted

    if coerced_total:
        logger.info(f"Coerced {coerced_total} non-numeric values to missing in total")

    return result


def write_predictions(
    values: Union[np.ndarray, pd.Series, Sequence[float]],
    path: Union[str, Path],
    column: str,
) -> Path:
    """
    Write predictions as a one-column CSV without an index.

    Args:
        values: Prediction values, one per scored record.
        path: Output file path (parent directories are created).
        column: Header of the single column.

    Returns:
        Path of the written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    out = pd.DataFrame({column: np.asarray(values, dtype=float)})
    out.to_csv(path, index=False)

    logger.info(f"Wrote {len(out):,} predictions to {path}")
    return path


class LoanDataLoader:
    """
    Loader for loan record files in a data directory.

    Scenario-specific test sets follow the ``test_<scenario>.csv`` naming
    convention next to the training file.

    Attributes:
        data_dir: Directory containing the CSV files.
        id_columns: Identifier columns (kept as text, never used as features).
        target_column: Name of the loss column.

    Example:
        >>> loader = LoanDataLoader("data")
        >>> train = loader.load_train("train.csv")
        >>> X, y = loader.split_features_target(train)
        >>> test = loader.load_test(scenario="stress")
    """

    SCENARIO_PREFIX = "test_"

    def __init__(
        self,
        data_dir: Union[str, Path] = "data",
        id_columns: Iterable[str] = ("id",),
        target_column: str = "loss",
    ):
        """
        Initialize the LoanDataLoader.

        Args:
            data_dir: Path to the directory holding the CSV files.
            id_columns: Identifier columns.
            target_column: Name of the loss column.
        """
        self.data_dir = Path(data_dir)
        self.id_columns: List[str] = list(id_columns)
        self.target_column = target_column

        logger.info(f"LoanDataLoader initialized with data_dir: {self.data_dir}")

    def _read(self, filename: Union[str, Path]) -> pd.DataFrame:
        path = Path(filename)
        if not path.is_absolute():
            path = self.data_dir / path
        return read_loan_csv(path, id_columns=self.id_columns)

    def load_train(self, filename: Union[str, Path] = "train.csv") -> pd.DataFrame:
        """
        Load the training table.

        Args:
            filename: File name inside data_dir, or an absolute path.

        Returns:
            DataFrame with numeric features and target.

        Raises:
            FileNotFoundError: If the file does not exist.
            LoanDataError: If the table is empty or has no target column.
        """
        df = self._read(filename)

        if df.empty:
            raise LoanDataError(f"Training file {filename} contains no rows")
        if self.target_column not in df.columns:
            raise LoanDataError(
                f"Training file {filename} has no target column '{self.target_column}'"
            )

        n_missing_target = int(df[self.target_column].isna().sum())
        if n_missing_target:
            logger.warning(f"Dropping {n_missing_target} rows with missing '{self.target_column}'")
            df = df[df[self.target_column].notna()].reset_index(drop=True)

        default_rate = (df[self.target_column] > 0).mean()
        logger.info(f"Training data: {len(df):,} loans | default rate: {default_rate:.2%}")
        return df

    def load_test(
        self,
        filename: Union[str, Path] = "test.csv",
        scenario: Optional[str] = None,
    ) -> pd.DataFrame:
        """
        Load a test table, optionally for a named scenario.

        Args:
            filename: Default test file, used when no scenario is given.
            scenario: Scenario name; loads ``test_<scenario>.csv``.

        Returns:
            DataFrame with numeric features (target column kept if present).

        Raises:
            FileNotFoundError: If the file does not exist.
            LoanDataError: If the table contains no rows.
        """
        if scenario:
            filename = f"{self.SCENARIO_PREFIX}{scenario}.csv"

        df = self._read(filename)
        if df.empty:
            raise LoanDataError(f"Test file {filename} contains no rows")

        logger.info(f"Test data ({scenario or 'default'}): {len(df):,} loans")
        return df

    def list_scenarios(self) -> List[str]:
        """
        List scenario names available in data_dir.

        Returns:
            Sorted scenario names (file stem without the ``test_`` prefix).
        """
        if not self.data_dir.exists():
            return []
        return sorted(
            p.stem[len(self.SCENARIO_PREFIX):]
            for p in self.data_dir.glob(f"{self.SCENARIO_PREFIX}*.csv")
        )

    def feature_columns(self, df: pd.DataFrame) -> List[str]:
        """Columns usable as model inputs (not identifiers, not the target)."""
        exclude = set(self.id_columns) | {self.target_column}
        return [c for c in df.columns if c not in exclude]

    def split_features_target(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        """
        Separate features from the loss column.

        Args:
            df: Training table.

        Returns:
            Tuple of (X, y).

        Raises:
            LoanDataError: If the target is missing or no features remain.
        """
        if self.target_column not in df.columns:
            raise LoanDataError(f"Target column '{self.target_column}' not found")

        feature_cols = self.feature_columns(df)
        if not feature_cols:
            raise LoanDataError("No feature columns found")

        return df[feature_cols].copy(), df[self.target_column].copy()
