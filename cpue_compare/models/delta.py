"""
Delta (hurdle) index: presence probability times positive-catch mean.
"""

import warnings

import numpy as np
from scipy.special import expit

from .effects import YearEffects


def combine_delta(binomial, positive, name=None):
    """
    Combine a binomial and a positive-catch fit into one index.

    index_t = expit(η_bin,t) · exp(η_pos,t), with η including each model's
    intercept so the probability is not evaluated at log-odds 0.

    Parameters
    ----------
    binomial : YearEffects
        Logit-link presence model.
    positive : YearEffects
        Log-link positive-catch model.
    name : str or None, default=None
        Series name. Defaults to 'delta_<method>'.

    Returns
    -------
    YearEffects
        Identity-link series over the years both parts share.
    """
    if binomial.link != 'logit' or positive.link != 'log':
        raise ValueError(
            f"combine_delta needs a logit binomial part and a log positive part, "
            f"got '{binomial.link}' and '{positive.link}'"
        )

    years = np.intersect1d(binomial.years, positive.years)
    dropped = sorted(set(binomial.years.tolist()) ^ set(positive.years.tolist()))
    if dropped:
        warnings.warn(
            f"Delta index drops years missing from one component: {dropped}",
            UserWarning
        )

    p = expit(binomial.linear_predictor())[np.searchsorted(binomial.years, years)]
    mu = np.exp(positive.linear_predictor())[np.searchsorted(positive.years, years)]

    method = positive.method
    return YearEffects(
        name=name or f'delta_{method}',
        years=years,
        coefficients=p * mu,
        link='identity',
        treatment_contrasts=False,
        family='delta',
        method=f'delta_{method}',
        metadata={
            'probability': p,
            'positive_mean': mu,
            'converged': (binomial.metadata.get('converged', True)
                          and positive.metadata.get('converged', True)),
        },
    )


def fit_delta(data, fit_fn, name=None, **kwargs):
    """
    Fit both delta components with the same adapter and combine them.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table including zero catches.
    fit_fn : callable
        Adapter accepting family='binomial' and family='lognormal'
        (fit_glm or fit_gam).
    name : str or None, default=None
        Series name.
    **kwargs
        Passed to fit_fn.

    Returns
    -------
    YearEffects
    """
    binomial = fit_fn(data, family='binomial', **kwargs)
    # zeros belong to the binomial part
    positive = fit_fn(data[data['cpue'] > 0], family='lognormal', **kwargs)
    return combine_delta(binomial, positive, name=name)
