"""
Geometric mean with an explicit positivity precondition.

The geometric mean is undefined for zero or negative values. Rather than
letting numpy return NaN or -inf, invalid input is rejected up front.
"""

import numpy as np
from scipy.stats import gmean


def check_positive(values, name='values'):
    """Validate that values form a non-empty, finite, strictly positive vector.

    Parameters
    ----------
    values : array-like
        Values to check.
    name : str, default='values'
        Name used in error messages.

    Returns
    -------
    ndarray
        values as a 1-D float array.

    Raises
    ------
    ValueError
        If values is empty, not 1-D, or contains non-finite, zero or
        negative entries.
    """
    values = np.asarray(values, dtype=float)

    if values.ndim != 1:
        raise ValueError(f"{name} must be 1-D, got shape {values.shape}")
    if values.size == 0:
        raise ValueError(f"{name} is empty")

    bad_finite = np.flatnonzero(~np.isfinite(values))
    if bad_finite.size:
        raise ValueError(
            f"{name} contains non-finite entries at positions {bad_finite.tolist()}"
        )

    bad_sign = np.flatnonzero(values <= 0)
    if bad_sign.size:
        raise ValueError(
            f"{name} must be strictly positive for a geometric mean; "
            f"non-positive entries at positions {bad_sign.tolist()}: "
            f"{values[bad_sign].tolist()}"
        )

    return values


def geometric_mean(values):
    """Geometric mean of a strictly positive vector.

    GM = (Π x_i)^(1/n), computed in log space by scipy.

    Parameters
    ----------
    values : array-like
        Strictly positive values.

    Returns
    -------
    float
        Geometric mean.

    Raises
    ------
    ValueError
        If any value is zero, negative or non-finite, or values is empty.

    Examples
    --------
    >>> geometric_mean([1.0, 4.0])
    2.0
    """
    values = check_positive(values)
    return float(gmean(values))
