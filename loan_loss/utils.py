"""
Common utility functions for the loan loss predictor.

Provides:
- Logging configuration
- Project path management
- Environment loading
- Worker pool registration for cross-validation
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from joblib import parallel_backend


def get_project_root() -> Path:
    """
    Get the project root directory.

    Returns:
        Path to the project root directory.
    """
    return Path(__file__).parent.parent


def resolve_path(path: Union[str, Path]) -> Path:
    """
    Resolve a path relative to the project root unless it is absolute.

    Args:
        path: Absolute path, or path relative to the project root.

    Returns:
        Absolute Path.
    """
    path = Path(path)
    if path.is_absolute():
        return path
    return get_project_root() / path


def get_data_dir(subdir: Optional[str] = None) -> Path:
    """
    Get the data directory path.

    Args:
        subdir: Optional subdirectory (e.g., 'raw', 'scenarios')

    Returns:
        Path to the data directory or subdirectory.
    """
    data_dir = get_project_root() / "data"
    if subdir:
        data_dir = data_dir / subdir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional log file name, written under <project>/logs/
        format_string: Optional custom format string

    Returns:
        Configured logger instance.
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logger = logging.getLogger("loan_loss")
    logger.setLevel(level)

    # Clear existing handlers and keep records out of the root logger
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    logger.addHandler(console_handler)

    if log_file:
        log_path = get_project_root() / "logs"
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(format_string))
        logger.addHandler(file_handler)

    return logger


def load_environment() -> None:
    """
    Load environment variables from .env file.

    Searches for .env file in the project root directory. Variables
    already present in the environment take precedence.
    """
    env_path = get_project_root() / ".env"
    load_dotenv(env_path)


def get_env(key_name: str) -> Optional[str]:
    """
    Get a setting from environment variables.

    Args:
        key_name: Name of the environment variable

    Returns:
        Value or None if not set (or left blank).
    """
    value = os.getenv(key_name)
    if value is None or value.strip() == "":
        return None
    return value


def worker_pool(n_jobs: Optional[int] = -1, backend: str = "loky"):
    """
    Register a multi-process worker pool for scikit-learn.

    Estimators created with ``n_jobs=None`` pick up this pool for their
    internal cross-validation fold fits.

    Args:
        n_jobs: Number of workers (-1 = all cores, None = joblib default).
        backend: joblib backend name.

    Returns:
        Context manager; use as ``with worker_pool(4): model.fit(...)``.
    """
    logging.getLogger("loan_loss.utils").debug(
        f"Registering '{backend}' worker pool with n_jobs={n_jobs}"
    )
    return parallel_backend(backend, n_jobs=n_jobs)
