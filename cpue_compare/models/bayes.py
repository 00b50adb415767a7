"""
Bayesian hierarchical year effects via PyMC.

log CPUE ~ Normal(year[t] + group[g], σ), with a non-centred hierarchical
prior on the group intercepts. Year effects are posterior means, one per
year (no baseline dropped). PyMC and ArviZ are optional dependencies.
"""

import warnings

import numpy as np

from .base import prepare_model_data
from .effects import YearEffects, get_family_link


def fit_bayes(data, family='lognormal', year_col='year', group_col='site',
              draws=1000, tune=1000, chains=2, target_accept=0.9,
              random_state=None, name=None, verbose=False):
    """
    Fit a hierarchical Bayesian model to log CPUE with NUTS.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    family : str, default='lognormal'
        Only 'lognormal' is supported.
    year_col : str, default='year'
        Year column.
    group_col : str or None, default='site'
        Random-intercept groups. None fits year effects only.
    draws, tune, chains : int
        Sampler settings passed to pymc.sample.
    target_accept : float, default=0.9
        NUTS target acceptance rate.
    random_state : int or None, default=None
        Sampler seed.
    name : str or None, default=None
        Series name. Defaults to 'bayes_<family>'.
    verbose : bool, default=False
        Show the sampler progress bar.

    Returns
    -------
    YearEffects
        Posterior means with posterior SDs as standard errors; the
        InferenceData is in metadata['result'].
    """
    try:
        import pymc as pm
        import arviz as az
    except ImportError:
        raise ImportError(
            "pymc and arviz are required for fit_bayes(). "
            "Install with: pip install cpue-compare[bayes]"
        )

    if family != 'lognormal':
        raise ValueError(
            f"fit_bayes supports family='lognormal' only, got '{family}'"
        )
    link = get_family_link(family)
    frame, response, years = prepare_model_data(data, family, year_col, verbose)
    if group_col is not None and group_col not in frame.columns:
        raise ValueError(f"group_col '{group_col}' not in data")

    y = frame[response].values.astype(float)
    year_idx = np.searchsorted(years, frame[year_col].values)
    coords = {'year': years}
    if group_col is not None:
        groups = np.sort(frame[group_col].unique())
        group_idx = np.searchsorted(groups, frame[group_col].values)
        coords['group'] = groups

    name = name or f'bayes_{family}'

    with pm.Model(coords=coords):
        year_effect = pm.Normal('year_effect', mu=0.0, sigma=10.0, dims='year')
        mu = year_effect[year_idx]
        if group_col is not None:
            sigma_group = pm.HalfNormal('sigma_group', sigma=1.0)
            z_group = pm.Normal('z_group', mu=0.0, sigma=1.0, dims='group')
            mu = mu + (z_group * sigma_group)[group_idx]
        sigma = pm.HalfNormal('sigma', sigma=1.0)
        pm.Normal('obs', mu=mu, sigma=sigma, observed=y)

        idata = pm.sample(
            draws=draws,
            tune=tune,
            chains=chains,
            cores=1,
            target_accept=target_accept,
            random_seed=random_state,
            progressbar=verbose,
        )

    posterior = idata.posterior['year_effect']
    means = posterior.mean(dim=('chain', 'draw')).values
    sds = posterior.std(dim=('chain', 'draw')).values

    n_divergent = int(idata.sample_stats['diverging'].sum())
    max_rhat = float(az.rhat(idata, var_names=['year_effect'])['year_effect'].max())
    converged = n_divergent == 0 and max_rhat < 1.05
    if not converged:
        warnings.warn(
            f"{name}: sampler diagnostics flagged ({n_divergent} divergences, "
            f"max R-hat {max_rhat:.3f}). Increase tune or target_accept.",
            UserWarning
        )

    return YearEffects(
        name=name,
        years=years,
        coefficients=means,
        link=link,
        treatment_contrasts=False,
        family=family,
        method='bayes',
        standard_errors=sds,
        metadata={
            'n_obs': len(y),
            'group_col': group_col,
            'n_divergent': n_divergent,
            'max_rhat': max_rhat,
            'converged': converged,
            'result': idata,
        },
    )
