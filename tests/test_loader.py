"""Tests for loan record loading, coercion and prediction output."""

import logging

import numpy as np
import pandas as pd
import pytest

from loan_loss.data.loader import (
    LoanDataError,
    LoanDataLoader,
    coerce_numeric,
    read_loan_csv,
    write_predictions,
)


def _write(path, text):
    path.write_text(text)
    return path


def test_read_loan_csv_coerces_non_numeric_to_missing(tmp_path):
    path = _write(tmp_path / "loans.csv", "id,f1,f2,loss\n001,1.5,abc,0\n002,2.5,3,40\n003,NA,4,0\n")

    df = read_loan_csv(path, id_columns=["id"])

    assert df["f2"].dtype.kind == "f"
    assert df["f2"].isna().sum() == 1
    assert df["f1"].isna().sum() == 1
    # identifiers stay as text, leading zeros preserved
    assert df["id"].tolist() == ["001", "002", "003"]
    assert df["loss"].tolist() == [0, 40, 0]


def test_read_loan_csv_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_loan_csv(tmp_path / "nope.csv")


def test_load_train_requires_target(tmp_path):
    _write(tmp_path / "train.csv", "id,f1\n1,2\n")
    loader = LoanDataLoader(tmp_path)

    with pytest.raises(LoanDataError, match="target"):
        loader.load_train("train.csv")


def test_load_train_rejects_empty_file(tmp_path):
    _write(tmp_path / "train.csv", "id,f1,loss\n")
    loader = LoanDataLoader(tmp_path)

    with pytest.raises(LoanDataError, match="no rows"):
        loader.load_train("train.csv")


def test_load_train_drops_rows_without_target(tmp_path):
    _write(tmp_path / "train.csv", "id,f1,loss\n1,2,0\n2,3,\n3,4,12\n")
    loader = LoanDataLoader(tmp_path)

    df = loader.load_train("train.csv")

    assert len(df) == 2
    assert df["loss"].notna().all()


def test_scenarios_are_discovered_and_loaded(dataset_dir):
    loader = LoanDataLoader(dataset_dir)

    assert loader.list_scenarios() == ["baseline", "stress"]

    stress = loader.load_test(scenario="stress")
    default = loader.load_test("test.csv")
    assert len(stress) == len(default) == 150
    assert "loss" not in stress.columns


def test_list_scenarios_missing_directory(tmp_path):
    assert LoanDataLoader(tmp_path / "absent").list_scenarios() == []


def test_split_features_target_excludes_id_and_loss(dataset_dir):
    loader = LoanDataLoader(dataset_dir)
    train = loader.load_train("train.csv")

    X, y = loader.split_features_target(train)

    assert "id" not in X.columns
    assert "loss" not in X.columns
    assert len(X) == len(y) == len(train)
    # junk tokens in the last feature column were coerced
    assert X.select_dtypes(exclude=[np.number]).empty


def test_write_predictions_single_column(tmp_path):
    path = write_predictions(np.array([0.1, 0.2, 0.3]), tmp_path / "out" / "pd.csv", "pd")

    written = pd.read_csv(path)
    assert list(written.columns) == ["pd"]
    assert len(written) == 3


def test_coercion_is_logged(caplog):
    raw = pd.DataFrame({"id": ["1", "2"], "f1": ["1.0", "2.0"], "f2": ["abc", "3"]})

    with caplog.at_level(logging.WARNING, logger="loan_loss.loader"):
        coerce_numeric(raw)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "'f2'" in warnings[0].getMessage()


def test_load_test_missing_scenario(dataset_dir):
    loader = LoanDataLoader(dataset_dir)

    with pytest.raises(FileNotFoundError, match="test_severe.csv"):
        loader.load_test(scenario="severe")


def test_split_requires_feature_columns():
    loader = LoanDataLoader("unused")
    df = pd.DataFrame({"id": ["1", "2"], "loss": [0, 30]})

    with pytest.raises(LoanDataError, match="No feature columns"):
        loader.split_features_target(df)
