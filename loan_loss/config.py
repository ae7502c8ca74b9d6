"""
Pipeline configuration.

Every field can be overridden from the environment (or a .env file in the
project root) with a ``LOAN_LOSS_<FIELD>`` variable, e.g.
``LOAN_LOSS_CV_FOLDS=5`` or ``LOAN_LOSS_LGD_L1_RATIOS=0.5,1.0``.
"""

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Tuple

from loan_loss.utils import get_env, load_environment, resolve_path

logger = logging.getLogger("loan_loss.config")

ENV_PREFIX = "LOAN_LOSS_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_OPTIONAL_FIELDS = {"scenario", "n_jobs", "max_features", "log_file"}


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings for one LGD/PD pipeline run.

    Relative directories resolve against the project root. Build from the
    environment with ``PipelineConfig.from_env()`` or construct directly
    (and derive variants with ``dataclasses.replace``).
    """

    # Input / output locations (relative to project root unless absolute)
    data_dir: str = "data"
    train_file: str = "train.csv"
    test_file: str = "test.csv"
    scenario: Optional[str] = None
    output_dir: str = "output"
    lgd_output_file: str = "lgd_predictions.csv"
    pd_output_file: str = "pd_predictions.csv"
    expected_loss_output_file: str = "expected_loss.csv"
    models_dir: str = "models"

    # Table layout
    id_columns: Tuple[str, ...] = ("id",)
    target_column: str = "loss"
    loss_scale: float = 100.0
    default_threshold: float = 0.0

    # Near-zero-variance filter
    freq_cut: float = 95 / 5
    unique_cut: float = 10.0

    # Cross-validation / regularization
    validation_size: float = 0.2
    refit_on_full: bool = True
    cv_folds: int = 10
    n_jobs: Optional[int] = -1
    random_state: int = 42
    max_features: Optional[int] = 50
    lgd_l1_ratios: Tuple[float, ...] = (0.5, 0.9, 1.0)
    pd_l1_ratios: Tuple[float, ...] = (0.5, 1.0)
    pd_cs: int = 10
    max_iter: int = 2000

    # Optional outputs
    write_expected_loss: bool = False
    save_models: bool = False
    generate_report: bool = False
    save_figures: bool = False
    log_file: Optional[str] = None

    @property
    def data_path(self) -> Path:
        return resolve_path(self.data_dir)

    @property
    def output_path(self) -> Path:
        return resolve_path(self.output_dir)

    @property
    def models_path(self) -> Path:
        return resolve_path(self.models_dir)

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """
        Build a config from defaults, environment variables and overrides.

        Keyword overrides win over the environment.

        Raises:
            ValueError: If an environment value cannot be parsed.
        """
        load_environment()
        config = cls()
        values = {}
        for f in fields(cls):
            raw = get_env(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            values[f.name] = _parse_value(f.name, raw, getattr(config, f.name))
            logger.debug(f"Config override from environment: {f.name}={values[f.name]!r}")
        values.update(overrides)
        return replace(config, **values)


def _parse_value(name: str, raw: str, default):
    """Parse an environment string using the type of the field default."""
    raw = raw.strip()
    if raw.lower() == "none" and name in _OPTIONAL_FIELDS:
        return None
    try:
        if isinstance(default, bool):
            lowered = raw.lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise ValueError(raw)
        if isinstance(default, tuple):
            items = [item.strip() for item in raw.split(",") if item.strip()]
            if default and isinstance(default[0], float):
                return tuple(float(item) for item in items)
            return tuple(items)
        if isinstance(default, int):
            return int(raw)
        if isinstance(default, float):
            return float(raw)
        return raw
    except ValueError as e:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
