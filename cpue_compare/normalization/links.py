"""
Inverse link functions for year-effect coefficients.

This module provides the inverse links used to move coefficients from a
model's linear-predictor scale back to the response scale, and a factory
function for retrieving them by name or accepting custom callables.
"""

import numpy as np
from scipy.special import expit


def exp_inverse(eta):
    """Inverse of the log link.

    Used for lognormal (log CPUE) and gamma models with a log link.

    Parameters
    ----------
    eta : ndarray
        Coefficients on the log scale.

    Returns
    -------
    ndarray
        exp(eta), strictly positive for finite input.
    """
    return np.exp(eta)


def logistic_inverse(eta):
    """Inverse of the logit link.

    Used for binomial (presence / hurdle probability) models.

    Parameters
    ----------
    eta : ndarray
        Coefficients on the log-odds scale.

    Returns
    -------
    ndarray
        1 / (1 + exp(-eta)), in (0, 1) for finite input.
    """
    return expit(eta)


def identity_inverse(eta):
    """Identity link: values are already on the response scale."""
    return np.asarray(eta, dtype=float)


# Registry of built-in inverse links
INVERSE_LINKS = {
    'log': exp_inverse,
    'logit': logistic_inverse,
    'identity': identity_inverse,
}


def get_inverse_link(link):
    """Get an inverse link function by name or return a custom callable.

    Parameters
    ----------
    link : str or callable
        Either a link name ('log', 'logit', 'identity') or a custom
        callable mapping link-scale values to the response scale.

    Returns
    -------
    callable
        The inverse link function.

    Raises
    ------
    ValueError
        If link is a string but not a recognized name.

    Examples
    --------
    >>> inv = get_inverse_link('log')
    >>> inv(np.array([0.0]))
    array([1.])
    """
    if callable(link):
        return link

    if link not in INVERSE_LINKS:
        valid_names = list(INVERSE_LINKS.keys())
        raise ValueError(
            f"Unknown link '{link}'. Use {valid_names} or a callable."
        )

    return INVERSE_LINKS[link]
