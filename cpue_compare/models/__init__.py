"""
Model adapters: fit a third-party model and return its year effects.

Each adapter takes a CPUE DataFrame and returns a :class:`YearEffects`
carrying link-scale coefficients, the link, and the parameterization needed
to normalize them.
"""

from functools import partial

from .effects import YearEffects, FAMILY_LINKS, get_family_link
from .base import prepare_model_data
from .glm import fit_glm
from .gam import fit_gam
from .mixed import fit_mixed
from .bayes import fit_bayes
from .delta import fit_delta, combine_delta

# Registry of fitting methods by name
METHODS = {
    'glm': fit_glm,
    'gam': fit_gam,
    'mixed': fit_mixed,
    'bayes': fit_bayes,
    'delta_glm': partial(fit_delta, fit_fn=fit_glm),
    'delta_gam': partial(fit_delta, fit_fn=fit_gam),
}


def fit_year_effects(data, method='glm', family='lognormal', **kwargs):
    """
    Fit a model by method name.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    method : str, default='glm'
        One of 'glm', 'gam', 'mixed', 'bayes', 'delta_glm', 'delta_gam'.
    family : str, default='lognormal'
        Observation family; ignored by the delta methods.
    **kwargs
        Passed to the adapter.

    Returns
    -------
    YearEffects
    """
    if method not in METHODS:
        raise ValueError(
            f"Unknown method '{method}'. Use {list(METHODS)}."
        )
    if method.startswith('delta_'):
        return METHODS[method](data, **kwargs)
    return METHODS[method](data, family=family, **kwargs)


__all__ = [
    'YearEffects',
    'FAMILY_LINKS',
    'get_family_link',
    'prepare_model_data',
    'fit_glm',
    'fit_gam',
    'fit_mixed',
    'fit_bayes',
    'fit_delta',
    'combine_delta',
    'fit_year_effects',
    'METHODS',
]
