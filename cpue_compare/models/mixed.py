"""
Mixed-model year effects via statsmodels MixedLM.

Fixed year effects (treatment contrasts) with a random intercept per group,
by default the fishing site, fitted by REML. The site intercepts absorb
spatial structure the way a Laplace-approximated random effect would.
"""

import statsmodels.formula.api as smf

from .base import collect_warnings, default_covariates, prepare_model_data
from .effects import YearEffects, get_family_link
from .glm import build_formula, year_param_names


def fit_mixed(data, family='lognormal', year_col='year', group_col='site',
              covariates=None, reml=True, name=None, verbose=False):
    """
    Fit a linear mixed model to log CPUE and extract year effects.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    family : str, default='lognormal'
        Only 'lognormal' is supported.
    year_col : str, default='year'
        Year column.
    group_col : str, default='site'
        Column defining the random-intercept groups.
    covariates : list of str or None, default=None
        Fixed categorical covariates. If None, uses 'vessel' when present.
    reml : bool, default=True
        Fit by REML rather than ML.
    name : str or None, default=None
        Series name. Defaults to 'mixed_<family>'.
    verbose : bool, default=False
        Print progress.

    Returns
    -------
    YearEffects
        Treatment-contrast coefficients with standard errors; the fitted
        result is in metadata['result'].
    """
    if family != 'lognormal':
        raise ValueError(
            f"fit_mixed supports family='lognormal' only, got '{family}'"
        )
    link = get_family_link(family)
    frame, response, years = prepare_model_data(data, family, year_col, verbose)
    if group_col not in frame.columns:
        raise ValueError(f"group_col '{group_col}' not in data")
    if covariates is None:
        covariates = default_covariates(frame)

    formula = build_formula(response, year_col, covariates)
    name = name or f'mixed_{family}'
    if verbose:
        print(f"Fitting {name}: {formula} | {group_col}")

    model = smf.mixedlm(formula, data=frame, groups=frame[group_col])
    result, messages = collect_warnings(lambda: model.fit(reml=reml), name)

    names = year_param_names(years, year_col)
    return YearEffects(
        name=name,
        years=years,
        coefficients=result.fe_params[names].values,
        link=link,
        treatment_contrasts=True,
        intercept=float(result.fe_params['Intercept']),
        family=family,
        method='mixed',
        standard_errors=result.bse_fe[names].values,
        metadata={
            'formula': formula,
            'group_col': group_col,
            'n_obs': int(result.nobs),
            'group_variance': float(result.cov_re.iloc[0, 0]),
            'converged': bool(result.converged) and not messages,
            'warnings': messages,
            'result': result,
        },
    )
