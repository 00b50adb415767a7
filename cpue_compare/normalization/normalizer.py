"""
Coefficient normalization: put year effects from different models on one scale.

Year-effect coefficients come out of each model on its own link scale and
under its own parameterization (treatment contrasts drop the first year,
no-intercept models keep every year). This module reconstructs the full
series, maps it to the response scale, and rescales it so its geometric mean
matches a reference series. After that, series from a lognormal GLM, a gamma
GAM and a binomial hurdle component can be overlaid on one plot.
"""

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.utils.validation import check_is_fitted

from .geometric import check_positive, geometric_mean
from .links import get_inverse_link


def _check_reference(reference_geometric_mean):
    value = float(reference_geometric_mean)
    if not np.isfinite(value) or value <= 0:
        raise ValueError(
            f"reference_geometric_mean must be finite and > 0, got {reference_geometric_mean}"
        )
    return value


def expand_treatment_contrasts(raw_coefficients):
    """Prepend the implicit zero for the dropped baseline level.

    Parameters
    ----------
    raw_coefficients : array-like
        Contrasts of levels 2..k against level 1.

    Returns
    -------
    ndarray
        Array of length k with 0.0 at position 0.
    """
    raw = np.asarray(raw_coefficients, dtype=float).ravel()
    return np.concatenate([[0.0], raw])


def to_response_scale(raw_coefficients, inverse_link='log', treatment_contrasts=False):
    """Apply the inverse link, reconstructing the baseline level if needed.

    Parameters
    ----------
    raw_coefficients : array-like
        Link-scale coefficients, one per year (one fewer under treatment
        contrasts).
    inverse_link : str or callable, default='log'
        Inverse link name ('log', 'logit', 'identity') or callable.
    treatment_contrasts : bool, default=False
        Whether the first level was dropped as the baseline.

    Returns
    -------
    ndarray
        Response-scale series, strictly positive.

    Raises
    ------
    ValueError
        If the transformed series has zero, negative or non-finite values.
    """
    raw = np.asarray(raw_coefficients, dtype=float).ravel()
    if treatment_contrasts:
        raw = expand_treatment_contrasts(raw)

    inv = get_inverse_link(inverse_link)
    transformed = np.asarray(inv(raw), dtype=float)
    return check_positive(transformed, name='transformed coefficients')


def normalize(
    raw_coefficients,
    inverse_link='log',
    reference_geometric_mean=1.0,
    treatment_contrasts=False
):
    """
    Rescale year-effect coefficients to a common geometric-mean anchor.

    Steps:
    1. Prepend 0 for the baseline level if treatment contrasts were used.
    2. Apply the inverse link elementwise.
    3. Compute the geometric mean of the transformed series.
    4. Divide by it and multiply by reference_geometric_mean.

    Parameters
    ----------
    raw_coefficients : array-like
        Link-scale year coefficients.

    inverse_link : str or callable, default='log'
        - 'log': exponential (lognormal, gamma)
        - 'logit': logistic (binomial / hurdle probability)
        - 'identity': values already on the response scale
        - callable: custom inverse link

    reference_geometric_mean : float, default=1.0
        Target geometric mean, usually that of the reference series.

    treatment_contrasts : bool, default=False
        Whether raw_coefficients omit the baseline level.

    Returns
    -------
    normalized : ndarray
        Series whose geometric mean equals reference_geometric_mean.

    Raises
    ------
    ValueError
        If the transformed series is not strictly positive, or the reference
        geometric mean is not finite and positive.

    Examples
    --------
    >>> normalize([0.1, -0.2], 'log', 1.0, treatment_contrasts=True)
    array([1.03389..., 1.14263..., 0.84648...])
    """
    reference = _check_reference(reference_geometric_mean)
    if isinstance(inverse_link, str) and inverse_link == 'log':
        return _normalize_log(raw_coefficients, treatment_contrasts) * reference
    transformed = to_response_scale(raw_coefficients, inverse_link, treatment_contrasts)
    return transformed / geometric_mean(transformed) * reference


def _normalize_log(raw_coefficients, treatment_contrasts):
    """exp(eta - mean(eta)): the log-link anchor without forming exp(eta)."""
    eta = np.asarray(raw_coefficients, dtype=float).ravel()
    if treatment_contrasts:
        eta = expand_treatment_contrasts(eta)
    if len(eta) == 0 or not np.all(np.isfinite(eta)):
        # raises with the usual empty / non-finite message
        check_positive(np.exp(eta), name='transformed coefficients')
    return check_positive(np.exp(eta - eta.mean()), name='transformed coefficients')


def anchor_to_reference(series, reference_series):
    """Rescale a response-scale series to the geometric mean of a reference.

    Parameters
    ----------
    series : array-like
        Strictly positive series to rescale.
    reference_series : array-like
        Strictly positive reference series.

    Returns
    -------
    ndarray
        series rescaled so that geometric_mean(result) == geometric_mean(reference_series).
    """
    return normalize(
        series,
        inverse_link='identity',
        reference_geometric_mean=geometric_mean(reference_series),
    )


class YearEffectNormalizer(BaseEstimator, TransformerMixin):
    """
    Scikit-learn style transformer wrapping :func:`normalize`.

    ``fit`` learns the anchor from a response-scale reference series (or
    uses ``reference_geometric_mean`` when given); ``transform`` normalizes
    link-scale coefficients of any model to that anchor.

    Parameters
    ----------
    inverse_link : str or callable, default='log'
        Inverse link applied in transform.

    treatment_contrasts : bool, default=False
        Whether transform input omits the baseline level.

    reference_geometric_mean : float or None, default=None
        Fixed anchor. If None, learned from the series passed to fit.

    Attributes
    ----------
    reference_geometric_mean_ : float
        Anchor used by transform.

    Examples
    --------
    >>> norm = YearEffectNormalizer(inverse_link='logit', treatment_contrasts=True)
    >>> norm.fit([0.4, 0.6, 0.5]).transform([0.5, -0.3])
    """

    def __init__(self, inverse_link='log', treatment_contrasts=False,
                 reference_geometric_mean=None):
        self.inverse_link = inverse_link
        self.treatment_contrasts = treatment_contrasts
        self.reference_geometric_mean = reference_geometric_mean

    def fit(self, reference=None, y=None):
        """
        Learn the anchor.

        Parameters
        ----------
        reference : array-like or None
            Response-scale reference series. Ignored when
            reference_geometric_mean is set.
        y : ignored

        Returns
        -------
        self : object
        """
        if self.reference_geometric_mean is not None:
            self.reference_geometric_mean_ = _check_reference(self.reference_geometric_mean)
        elif reference is None:
            raise ValueError(
                "fit() needs a reference series when reference_geometric_mean is None"
            )
        else:
            self.reference_geometric_mean_ = geometric_mean(
                np.asarray(reference, dtype=float).ravel()
            )
        return self

    def transform(self, raw_coefficients):
        """Normalize link-scale coefficients to the learned anchor."""
        check_is_fitted(self, 'reference_geometric_mean_')
        return normalize(
            raw_coefficients,
            inverse_link=self.inverse_link,
            reference_geometric_mean=self.reference_geometric_mean_,
            treatment_contrasts=self.treatment_contrasts,
        )
