"""
Generalized linear model year effects via statsmodels formulas.

Year enters as a treatment-contrast factor, so the first year is the
baseline and its coefficient is implicitly zero.
"""

import numpy as np
import statsmodels.api as sm
import statsmodels.formula.api as smf

from .base import collect_warnings, default_covariates, prepare_model_data
from .effects import YearEffects, get_family_link


def build_formula(response, year_col='year', covariates=()):
    """Patsy formula with year and categorical covariates as factors.

    Examples
    --------
    >>> build_formula('log_cpue', 'year', ['vessel'])
    'log_cpue ~ C(year) + C(vessel)'
    """
    terms = [f'C({year_col})'] + [f'C({c})' for c in covariates]
    return f"{response} ~ " + ' + '.join(terms)


def year_param_names(years, year_col='year'):
    """Parameter names statsmodels assigns to the non-baseline years."""
    return [f'C({year_col})[T.{y}]' for y in years[1:]]


def fit_glm(data, family='lognormal', year_col='year', covariates=None,
            name=None, verbose=False):
    """
    Fit a GLM and extract year effects.

    - lognormal: OLS on log(CPUE) of positive catches
    - gamma: Gamma GLM with log link on positive catches
    - binomial: Binomial GLM with logit link on presence

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    family : str, default='lognormal'
        'lognormal', 'gamma' or 'binomial'.
    year_col : str, default='year'
        Year column.
    covariates : list of str or None, default=None
        Categorical covariates. If None, uses 'vessel' when present.
    name : str or None, default=None
        Series name. Defaults to 'glm_<family>'.
    verbose : bool, default=False
        Print progress.

    Returns
    -------
    YearEffects
        Treatment-contrast coefficients with standard errors; the fitted
        statsmodels result is in metadata['result'].
    """
    link = get_family_link(family)
    frame, response, years = prepare_model_data(data, family, year_col, verbose)
    if covariates is None:
        covariates = default_covariates(frame)

    formula = build_formula(response, year_col, covariates)
    name = name or f'glm_{family}'
    if verbose:
        print(f"Fitting {name}: {formula}")

    def _fit():
        if family == 'lognormal':
            return smf.ols(formula, data=frame).fit()
        if family == 'gamma':
            glm_family = sm.families.Gamma(link=sm.families.links.Log())
        else:
            glm_family = sm.families.Binomial()
        return smf.glm(formula, data=frame, family=glm_family).fit()

    result, messages = collect_warnings(_fit, name)

    names = year_param_names(years, year_col)
    return YearEffects(
        name=name,
        years=years,
        coefficients=result.params[names].values,
        link=link,
        treatment_contrasts=True,
        intercept=float(result.params['Intercept']),
        family=family,
        method='glm',
        standard_errors=result.bse[names].values,
        metadata={
            'formula': formula,
            'n_obs': int(result.nobs),
            'aic': float(result.aic),
            'converged': bool(getattr(result, 'converged', True)) and not messages,
            'warnings': messages,
            'result': result,
        },
    )
