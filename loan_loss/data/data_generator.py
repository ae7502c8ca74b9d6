"""
Synthetic Loan Record Generator.

Generates wide, anonymized loan tables shaped like real default/loss
competition data: an identifier, numbered numeric features ``f1..fN`` and a
``loss`` column holding the percentage of exposure lost (0 when the loan
did not default). Used for the pipeline demo and as test fixture data.
"""

from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import numpy as np
import pandas as pd


class SyntheticLoanGenerator:
    """
    Generates synthetic loan records with known default and loss drivers.

    The generated table contains:
    - Informative features driving default probability
    - Informative features driving loss severity
    - Pure noise features
    - Near-constant and constant features (removed by variance filtering)
    - Scattered missing values and non-numeric tokens

    Example:
        >>> generator = SyntheticLoanGenerator(seed=7)
        >>> df = generator.generate_loans(n_loans=2000)
        >>> generator.write_dataset("data", n_train=2000, n_test=500)
    """

    N_DEFAULT_DRIVERS = 4
    N_SEVERITY_DRIVERS = 3
    BASE_DEFAULT_LOGIT = -1.6

    def __init__(self, seed: int = 42, n_features: int = 30, missing_rate: float = 0.02):
        """
        Initialize the generator.

        Args:
            seed: Random seed for reproducibility.
            n_features: Total number of ``f`` columns (at least 10).
            missing_rate: Fraction of feature cells blanked out.
        """
        if n_features < 10:
            raise ValueError("n_features must be at least 10")

        self.seed = seed
        self.n_features = n_features
        self.missing_rate = missing_rate
        self.rng = np.random.default_rng(seed)

        self.default_weights = np.array([0.9, -0.7, 0.5, 0.4])
        self.severity_weights = np.array([0.12, -0.08, 0.06])

    @property
    def feature_names(self):
        return [f"f{i}" for i in range(1, self.n_features + 1)]

    def generate_loans(
        self,
        n_loans: int = 5000,
        include_target: bool = True,
        shift: float = 0.0,
        id_start: int = 1,
    ) -> pd.DataFrame:
        """
        Generate a DataFrame of synthetic loan records.

        Args:
            n_loans: Number of records.
            include_target: Whether to add the ``loss`` column.
            shift: Mean shift applied to the default drivers (stress scenarios).
            id_start: First identifier value.

        Returns:
            DataFrame with ``id``, ``f1..fN`` and optionally ``loss``.
        """
        X = self.rng.normal(0, 1, size=(n_loans, self.n_features))
        X[:, : self.N_DEFAULT_DRIVERS] += shift

        # f9: almost always 0 (near-zero variance); f10: constant
        X[:, 8] = np.where(self.rng.random(n_loans) < 0.995, 0.0, 1.0)
        X[:, 9] = 1.0

        loss = self._generate_loss(X)

        df = pd.DataFrame(np.round(X, 4), columns=self.feature_names)
        df.insert(0, "id", np.arange(id_start, id_start + n_loans))

        df = self._inject_missing(df)

        if include_target:
            df["loss"] = loss

        return df

    def _generate_loss(self, X: np.ndarray) -> np.ndarray:
        """
        Draw default flags and loss severity from the driver features.

        Returns:
            Integer losses in 0..100.
        """
        drivers = X[:, : self.N_DEFAULT_DRIVERS]
        logit = self.BASE_DEFAULT_LOGIT + drivers @ self.default_weights
        pd_true = 1.0 / (1.0 + np.exp(-logit))
        defaulted = self.rng.random(len(X)) < pd_true

        sev_drivers = X[:, self.N_DEFAULT_DRIVERS: self.N_DEFAULT_DRIVERS + self.N_SEVERITY_DRIVERS]
        severity = 0.35 + sev_drivers @ self.severity_weights
        severity += self.rng.normal(0, 0.05, size=len(X))
        severity = np.clip(severity, 0.01, 1.0)

        loss = np.where(defaulted, np.ceil(severity * 100), 0)
        return loss.astype(int)

    def _inject_missing(self, df: pd.DataFrame) -> pd.DataFrame:
        """Blank out a fraction of cells in the noise features."""
        noise_cols = self.feature_names[10:]
        for col in noise_cols:
            mask = self.rng.random(len(df)) < self.missing_rate
            df.loc[mask, col] = np.nan
        return df

    def write_dataset(
        self,
        directory: Union[str, Path],
        n_train: int = 5000,
        n_test: int = 1000,
        scenarios: Optional[Dict[str, float]] = None,
        junk_tokens: Iterable[str] = ("n/a", "?"),
    ) -> Dict[str, Path]:
        """
        Write train, test and scenario test CSV files.

        Args:
            directory: Output directory.
            n_train: Training rows.
            n_test: Rows per test file.
            scenarios: Mapping of scenario name to driver mean shift.
            junk_tokens: Non-numeric tokens sprinkled into one feature column.

        Returns:
            Mapping of file role ('train', 'test', scenario names) to path.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        if scenarios is None:
            scenarios = {"baseline": 0.0, "stress": 0.5}

        paths = {}

        train = self.generate_loans(n_train)
        train = self._inject_junk(train, list(junk_tokens))
        paths["train"] = directory / "train.csv"
        train.to_csv(paths["train"], index=False)

        test = self.generate_loans(n_test, include_target=False, id_start=n_train + 1)
        paths["test"] = directory / "test.csv"
        test.to_csv(paths["test"], index=False)

        for name, shift in scenarios.items():
            scenario_df = self.generate_loans(
                n_test, include_target=False, shift=shift, id_start=n_train + 1
            )
            paths[name] = directory / f"test_{name}.csv"
            scenario_df.to_csv(paths[name], index=False)

        return paths

    def _inject_junk(self, df: pd.DataFrame, tokens) -> pd.DataFrame:
        if not tokens:
            return df
        col = self.feature_names[-1]
        df[col] = df[col].astype(object)
        idx = self.rng.choice(len(df), size=min(len(tokens) * 3, len(df)), replace=False)
        for i, row in enumerate(idx):
            df.at[row, col] = tokens[i % len(tokens)]
        return df


def print_distribution_stats(df: pd.DataFrame) -> None:
    """
    Print summary statistics for a generated loan table.

    Args:
        df: DataFrame produced by SyntheticLoanGenerator.generate_loans().
    """
    print("=" * 60)
    print("SYNTHETIC LOAN DATA SUMMARY")
    print("=" * 60)
    print(f"Records:  {len(df):,}")
    print(f"Features: {len([c for c in df.columns if c.startswith('f')])}")
    if "loss" in df.columns:
        defaulted = df["loss"] > 0
        print(f"Default rate: {defaulted.mean():.2%}")
        if defaulted.any():
            print(f"Mean loss given default: {df.loc[defaulted, 'loss'].mean():.1f}%")
    print("=" * 60)


if __name__ == "__main__":
    from loan_loss.utils import get_data_dir

    generator = SyntheticLoanGenerator(seed=42)
    written = generator.write_dataset(get_data_dir())
    for role, path in written.items():
        print(f"{role:10s} -> {path}")
    print_distribution_stats(pd.read_csv(written["train"]))
