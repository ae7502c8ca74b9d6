"""Shared fixtures for the loan loss predictor tests."""

import matplotlib

matplotlib.use("Agg")

import pytest

from loan_loss.config import PipelineConfig
from loan_loss.data.data_generator import SyntheticLoanGenerator
from loan_loss.models.lgd_model import LGDModel
from loan_loss.models.pd_model import PDModel

N_FEATURES = 20


@pytest.fixture(scope="session")
def loan_frame():
    """Synthetic training table with id, f1..f20 and loss."""
    return SyntheticLoanGenerator(seed=7, n_features=N_FEATURES).generate_loans(1500)


@pytest.fixture(scope="session")
def features_and_loss(loan_frame):
    X = loan_frame.drop(columns=["id", "loss"])
    return X, loan_frame["loss"]


@pytest.fixture(scope="session")
def fitted_lgd(features_and_loss):
    X, loss = features_and_loss
    model = LGDModel(l1_ratios=(1.0,), cv_folds=3, max_features=10, max_iter=2000)
    metrics = model.fit(X, loss)
    return model, metrics


@pytest.fixture(scope="session")
def fitted_pd(features_and_loss):
    X, loss = features_and_loss
    model = PDModel(l1_ratios=(1.0,), cs=4, cv_folds=3, max_features=10, max_iter=1000)
    metrics = model.fit(X, loss)
    return model, metrics


@pytest.fixture
def dataset_dir(tmp_path):
    """Directory with train.csv, test.csv and two scenario test files."""
    data_dir = tmp_path / "data"
    SyntheticLoanGenerator(seed=11, n_features=N_FEATURES).write_dataset(
        data_dir, n_train=800, n_test=150
    )
    return data_dir


@pytest.fixture
def fast_config(tmp_path, dataset_dir):
    return PipelineConfig(
        data_dir=str(dataset_dir),
        output_dir=str(tmp_path / "output"),
        models_dir=str(tmp_path / "models"),
        cv_folds=3,
        n_jobs=1,
        max_features=10,
        lgd_l1_ratios=(1.0,),
        pd_l1_ratios=(1.0,),
        pd_cs=4,
        max_iter=1000,
    )


@pytest.fixture
def package_logger(monkeypatch):
    """The ``loan_loss`` logger, restored after tests that reconfigure it."""
    import logging

    logger = logging.getLogger("loan_loss")
    level = logger.level
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "propagate", logger.propagate)
    yield logger
    logger.setLevel(level)
