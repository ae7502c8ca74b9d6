"""Tests for logging setup and the cross-validation worker pool."""

import logging

from joblib import Parallel, delayed, effective_n_jobs

from loan_loss.utils import resolve_path, setup_logging, worker_pool


def test_setup_logging_keeps_records_out_of_root(package_logger):
    logger = setup_logging(level=logging.DEBUG)

    assert logger is package_logger
    assert logger.propagate is False
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_setup_logging_is_idempotent(package_logger):
    setup_logging()
    setup_logging()

    assert len(package_logger.handlers) == 1


def test_worker_pool_registers_workers():
    with worker_pool(2):
        assert effective_n_jobs() == 2
        squares = Parallel()(delayed(pow)(i, 2) for i in range(4))

    assert squares == [0, 1, 4, 9]


def test_resolve_path_keeps_absolute_paths(tmp_path):
    assert resolve_path(tmp_path) == tmp_path
    assert resolve_path("data").is_absolute()
