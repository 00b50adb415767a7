"""
CPUE Standardization Comparison
===============================

Tools for comparing catch-per-unit-effort (CPUE) standardization models:
simulate spatial and spatio-temporal CPUE, fit GLM, GAM, mixed and Bayesian
hierarchical models through their own libraries, and put every model's year
effects on one scale by geometric-mean anchoring.

Main Entry Points
-----------------
normalize : Anchor link-scale year coefficients to a reference geometric mean
run_comparison : Simulate, fit, align and tabulate in one call

Quick Start
-----------
>>> from cpue_compare import normalize
>>> normalize([0.1, -0.2], inverse_link='log', treatment_contrasts=True)
>>>
>>> from cpue_compare import run_comparison, plot_index_comparison
>>> result = run_comparison({'scenario': 'spatiotemporal', 'random_state': 1})
>>> plot_index_comparison(result.table)
"""

from .normalization import (
    normalize,
    anchor_to_reference,
    to_response_scale,
    YearEffectNormalizer,
    geometric_mean,
    get_inverse_link,
    INVERSE_LINKS,
)
from .simulation import (
    simulate_spatial_cpue,
    simulate_spatiotemporal_cpue,
    simulate_gaussian_field,
    exponential_covariance,
    read_cpue_csv,
)
from .models import (
    YearEffects,
    fit_glm,
    fit_gam,
    fit_mixed,
    fit_bayes,
    fit_delta,
    fit_year_effects,
)
from .cache import ResultCache, compute_config_hash
from .comparison import (
    DEFAULT_CONFIG,
    ComparisonConfig,
    ComparisonResult,
    ModelSpec,
    build_comparison_table,
    fit_all,
    nominal_index,
    run_comparison,
    true_year_effects,
    usable_models,
)
from .plotting import plot_index_comparison, plot_simulated_field

__version__ = "0.1.0"

__all__ = [
    # Normalization
    'normalize',
    'anchor_to_reference',
    'to_response_scale',
    'YearEffectNormalizer',
    'geometric_mean',
    'get_inverse_link',
    'INVERSE_LINKS',

    # Simulation
    'simulate_spatial_cpue',
    'simulate_spatiotemporal_cpue',
    'simulate_gaussian_field',
    'exponential_covariance',
    'read_cpue_csv',

    # Models
    'YearEffects',
    'fit_glm',
    'fit_gam',
    'fit_mixed',
    'fit_bayes',
    'fit_delta',
    'fit_year_effects',

    # Cache
    'ResultCache',
    'compute_config_hash',

    # Comparison
    'DEFAULT_CONFIG',
    'ComparisonConfig',
    'ComparisonResult',
    'ModelSpec',
    'build_comparison_table',
    'fit_all',
    'nominal_index',
    'run_comparison',
    'true_year_effects',
    'usable_models',

    # Plotting
    'plot_index_comparison',
    'plot_simulated_field',
]
