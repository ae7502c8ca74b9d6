"""
LGD and PD modeling pipelines.

Each run loads the training table, holds out a validation share, fits the
model inside a registered worker pool, evaluates on the holdout, optionally
refits on every training row, and scores the test file into a one-column
prediction CSV.

Run with: python -m loan_loss.pipeline
(settings come from LOAN_LOSS_* environment variables or .env)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from loan_loss.config import PipelineConfig
from loan_loss.data.loader import LoanDataLoader, write_predictions
from loan_loss.models.expected_loss import expected_loss
from loan_loss.models.lgd_model import LGDModel
from loan_loss.models.pd_model import PDModel
from loan_loss.utils import setup_logging, worker_pool

logger = logging.getLogger("loan_loss.pipeline")

LGD_COLUMN = "lgd"
PD_COLUMN = "pd"
EXPECTED_LOSS_COLUMN = "expected_loss"


def build_loader(config: PipelineConfig) -> LoanDataLoader:
    """Create a LoanDataLoader for the configured data directory."""
    return LoanDataLoader(
        data_dir=config.data_path,
        id_columns=config.id_columns,
        target_column=config.target_column,
    )


def build_lgd_model(config: PipelineConfig) -> LGDModel:
    """Create an unfitted LGDModel from the configured hyperparameters."""
    return LGDModel(
        l1_ratios=config.lgd_l1_ratios,
        cv_folds=config.cv_folds,
        max_features=config.max_features,
        loss_scale=config.loss_scale,
        default_threshold=config.default_threshold,
        freq_cut=config.freq_cut,
        unique_cut=config.unique_cut,
        max_iter=config.max_iter,
        random_state=config.random_state,
    )


def build_pd_model(config: PipelineConfig) -> PDModel:
    """Create an unfitted PDModel from the configured hyperparameters."""
    return PDModel(
        l1_ratios=config.pd_l1_ratios,
        cs=config.pd_cs,
        cv_folds=config.cv_folds,
        max_features=config.max_features,
        default_threshold=config.default_threshold,
        freq_cut=config.freq_cut,
        unique_cut=config.unique_cut,
        max_iter=config.max_iter,
        random_state=config.random_state,
    )


def split_holdout(
    X: pd.DataFrame,
    loss: pd.Series,
    config: PipelineConfig,
):
    """
    Split training rows into fit and holdout parts, stratified on default.

    Returns:
        Tuple of (X_fit, X_holdout, loss_fit, loss_holdout). The holdout
        parts are None when validation_size is 0.
    """
    if not config.validation_size:
        return X, None, loss, None

    defaulted = (loss > config.default_threshold).astype(int)
    stratify = defaulted if defaulted.nunique() > 1 else None

    X_fit, X_hold, loss_fit, loss_hold = train_test_split(
        X, loss,
        test_size=config.validation_size,
        random_state=config.random_state,
        stratify=stratify,
    )
    logger.info(f"Holdout split: fit {len(X_fit):,} rows | holdout {len(X_hold):,} rows")
    return X_fit, X_hold, loss_fit, loss_hold


def score_file(
    model: Union[LGDModel, PDModel],
    test_df: pd.DataFrame,
    output_path: Union[str, Path],
    column: str,
) -> np.ndarray:
    """
    Batch-score a test table and write a one-column CSV.

    Args:
        model: Fitted LGDModel or PDModel.
        test_df: Test table (identifier columns are ignored).
        output_path: Destination CSV.
        column: Header of the prediction column.

    Returns:
        The predictions written.

    Raises:
        RuntimeError: If the number of predictions differs from the input rows.
    """
    if isinstance(model, PDModel):
        predictions = model.predict_proba(test_df)
    else:
        predictions = model.predict(test_df)

    if len(predictions) != len(test_df):
        raise RuntimeError(
            f"Scored {len(predictions)} predictions for {len(test_df)} input rows"
        )

    write_predictions(predictions, output_path, column)
    return predictions


def _load_test(loader: LoanDataLoader, config: PipelineConfig) -> pd.DataFrame:
    return loader.load_test(config.test_file, scenario=config.scenario)


def _output_file(config: PipelineConfig, filename: str) -> Path:
    """Output path, suffixed with the scenario name when one is set."""
    path = config.output_path / filename
    if config.scenario:
        path = path.with_name(f"{path.stem}_{config.scenario}{path.suffix}")
    return path


def _run_model(
    name: str,
    model_factory,
    column: str,
    output_filename: str,
    config: PipelineConfig,
    loader: Optional[LoanDataLoader] = None,
) -> Dict[str, Any]:
    loader = loader or build_loader(config)

    print("=" * 60)
    print(f"{name} PIPELINE")
    print("=" * 60)

    train = loader.load_train(config.train_file)
    X, loss = loader.split_features_target(train)
    X_fit, X_hold, loss_fit, loss_hold = split_holdout(X, loss, config)

    model = model_factory(config)
    with worker_pool(config.n_jobs):
        train_metrics = model.fit(X_fit, loss_fit)

    holdout = model.evaluate(X_hold, loss_hold) if X_hold is not None else {}

    if config.refit_on_full and X_hold is not None:
        logger.info(f"Refitting {name} model on all {len(X):,} training rows")
        model = model_factory(config)
        with worker_pool(config.n_jobs):
            train_metrics = model.fit(X, loss)

    test = _load_test(loader, config)
    output_path = _output_file(config, output_filename)
    predictions = score_file(model, test, output_path, column)

    if config.save_models:
        model.save(str(config.models_path / f"{column}_model.joblib"))

    return {
        'model': model,
        'train_metrics': train_metrics,
        'holdout': holdout,
        'preprocessing': model.preprocessor.get_summary(),
        'ranking': model.selector.get_ranking(),
        'coefficients': model.get_coefficients(),
        'predictions': predictions,
        'output_path': output_path,
        'n_scored': len(predictions),
    }


def run_lgd_pipeline(
    config: PipelineConfig,
    loader: Optional[LoanDataLoader] = None,
) -> Dict[str, Any]:
    """
    Fit, evaluate and score the LGD model.

    Returns:
        Dictionary with model, train_metrics, holdout, preprocessing,
        ranking, coefficients, predictions, output_path and n_scored.
    """
    return _run_model("LGD", build_lgd_model, LGD_COLUMN, config.lgd_output_file, config, loader)


def run_pd_pipeline(
    config: PipelineConfig,
    loader: Optional[LoanDataLoader] = None,
) -> Dict[str, Any]:
    """
    Fit, evaluate and score the PD model.

    Returns:
        Dictionary with the same keys as run_lgd_pipeline().
    """
    return _run_model("PD", build_pd_model, PD_COLUMN, config.pd_output_file, config, loader)


def _save_figures(results: Dict[str, Dict[str, Any]], config: PipelineConfig) -> None:
    import matplotlib.pyplot as plt

    from loan_loss.explainability.shap_utils import (
        plot_coefficients,
        plot_regularization_path,
        plot_roc_curve,
    )

    figures_dir = config.output_path / "figures"
    figures_dir.mkdir(parents=True, exist_ok=True)

    figures = {
        "lgd_coefficients.png": plot_coefficients(
            results['lgd']['coefficients'], title='LGD Coefficients', show=False),
        "lgd_regularization_path.png": plot_regularization_path(
            results['lgd']['model'].get_regularization_path(), show=False),
        "pd_coefficients.png": plot_coefficients(
            results['pd']['coefficients'], title='PD Coefficients', show=False),
    }
    roc = results['pd']['holdout'].get('roc_curve')
    if roc is not None:
        figures["pd_roc_curve.png"] = plot_roc_curve(
            roc, auc=results['pd']['holdout']['auc'], show=False)

    for filename, fig in figures.items():
        fig.savefig(figures_dir / filename, dpi=120)
        plt.close(fig)

    logger.info(f"Saved {len(figures)} figures to {figures_dir}")


def run(config: Optional[PipelineConfig] = None) -> Dict[str, Dict[str, Any]]:
    """
    Run both pipelines and the optional extra outputs.

    Args:
        config: Pipeline settings (defaults to PipelineConfig.from_env()).

    Returns:
        Mapping with 'lgd' and 'pd' results, plus 'expected_loss' when enabled.
    """
    config = config or PipelineConfig.from_env()
    loader = build_loader(config)

    results: Dict[str, Dict[str, Any]] = {
        'lgd': run_lgd_pipeline(config, loader),
        'pd': run_pd_pipeline(config, loader),
    }

    if config.write_expected_loss:
        el = expected_loss(results['pd']['predictions'], results['lgd']['predictions'])
        el_path = _output_file(config, config.expected_loss_output_file)
        write_predictions(el, el_path, EXPECTED_LOSS_COLUMN)
        results['expected_loss'] = {'predictions': el, 'output_path': el_path}

    if config.save_figures:
        _save_figures(results, config)

    if config.generate_report:
        from loan_loss.report import generate_report

        report_path = generate_report(results, config.output_path / "model_report.pdf")
        logger.info(f"Report written to {report_path}")

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    lgd_hold = results['lgd']['holdout']
    pd_hold = results['pd']['holdout']
    if lgd_hold:
        print(f"  LGD holdout MAE: {lgd_hold['mae']:.4f} | R2: {lgd_hold['r2']:.3f}")
    if pd_hold:
        print(f"  PD holdout AUC:  {pd_hold['auc']:.4f}")
    print(f"  LGD predictions: {results['lgd']['output_path']}")
    print(f"  PD predictions:  {results['pd']['output_path']}")

    return results


def main() -> None:
    """Command-line entry point: configure from the environment and run."""
    config = PipelineConfig.from_env()
    setup_logging(log_file=config.log_file)
    run(config)


if __name__ == "__main__":
    main()
