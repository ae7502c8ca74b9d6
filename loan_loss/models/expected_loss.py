"""
Expected loss from PD and LGD estimates.

EL = PD x LGD (x EAD when an exposure is supplied).
"""

from typing import Optional, Sequence, Union

import numpy as np

ArrayLike = Union[np.ndarray, Sequence[float]]


def expected_loss(
    pd_values: ArrayLike,
    lgd_values: ArrayLike,
    exposure: Optional[ArrayLike] = None,
) -> np.ndarray:
    """
    Combine per-record PD and LGD into expected loss.

    Args:
        pd_values: Probabilities of default in [0, 1].
        lgd_values: Loss given default as fractions in [0, 1].
        exposure: Optional exposure at default per record. Without it the
            result is a fraction of exposure.

    Returns:
        NumPy array of expected losses.

    Raises:
        ValueError: If the inputs have different lengths or PD is out of range.
    """
    pd_arr = np.asarray(pd_values, dtype=float)
    lgd_arr = np.asarray(lgd_values, dtype=float)

    if pd_arr.shape != lgd_arr.shape:
        raise ValueError(f"PD has shape {pd_arr.shape} but LGD has shape {lgd_arr.shape}")
    if np.any((pd_arr < 0) | (pd_arr > 1)):
        raise ValueError("PD values must lie in [0, 1]")

    el = pd_arr * lgd_arr

    if exposure is not None:
        ead = np.asarray(exposure, dtype=float)
        if ead.shape != pd_arr.shape:
            raise ValueError(f"Exposure has shape {ead.shape} but PD has shape {pd_arr.shape}")
        el = el * ead

    return el
