"""
Fit several standardization models and align their indices.

Usage
-----
>>> from cpue_compare import ComparisonConfig, run_comparison
>>> result = run_comparison(ComparisonConfig.from_dict({'n_years': 8}))
>>> result.table.head()
>>> result.summary()
"""

import json
import warnings
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .cache import ResultCache, dataframe_fingerprint, make_key
from .models import YearEffects, fit_year_effects
from .normalization import geometric_mean
from .simulation import simulate_spatial_cpue, simulate_spatiotemporal_cpue

# ============================================================================
# CONFIGURATION
# ============================================================================
DEFAULT_CONFIG = {
    'scenario': 'spatial',
    'family': 'lognormal',
    'random_state': 42,
    'n_years': 10,
    'n_sites': 60,
    'n_vessels': 6,
    'n_samples_per_year': 80,
    'models': None,
    'reference': 'truth',
    'recompute': False,
    'cache_dir': None,
    'verbose': False,
}

SCENARIOS = {
    'spatial': simulate_spatial_cpue,
    'spatiotemporal': simulate_spatiotemporal_cpue,
}

# Series added by run_comparison itself
RESERVED_NAMES = ('nominal', 'truth')

# Methods with random intercepts and the default grouping column they need
GROUPED_METHODS = {
    'mixed': 'site',
    'bayes': 'site',
}


@dataclass
class ModelSpec:
    """One model to fit: adapter name, family and adapter options."""
    name: str
    method: str
    family: str = 'lognormal'
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_models(family='lognormal'):
    """Model line-up for a simulated observation family."""
    if family == 'hurdle':
        return [
            ModelSpec('delta_glm', 'delta_glm'),
            ModelSpec('delta_gam', 'delta_gam'),
            ModelSpec('glm_binomial', 'glm', 'binomial'),
            ModelSpec('glm_lognormal', 'glm', 'lognormal'),
        ]
    fit_family = 'gamma' if family == 'gamma' else 'lognormal'
    return [
        ModelSpec(f'glm_{fit_family}', 'glm', fit_family),
        ModelSpec(f'gam_{fit_family}', 'gam', fit_family),
        ModelSpec('mixed_lognormal', 'mixed', 'lognormal'),
    ]


def usable_models(specs, data):
    """
    Drop grouped models whose grouping column is missing from data.

    Real CPUE tables only need 'year' and 'cpue', so mixed and Bayesian
    models are skipped (with a UserWarning) when there is no site column.

    Parameters
    ----------
    specs : list of ModelSpec
        Configured models.
    data : pd.DataFrame
        CPUE table the models will be fitted to.

    Returns
    -------
    list of ModelSpec
    """
    kept, skipped = [], []
    for spec in specs:
        group_col = spec.options.get('group_col', GROUPED_METHODS.get(spec.method))
        if spec.method in GROUPED_METHODS and group_col is not None \
                and group_col not in data.columns:
            skipped.append(f"{spec.name} (needs '{group_col}')")
        else:
            kept.append(spec)

    if skipped:
        warnings.warn(
            f"Skipping models whose grouping column is not in the data: {skipped}",
            UserWarning
        )
    if not kept:
        raise ValueError("None of the configured models can be fitted to this data")
    return kept


@dataclass
class ComparisonConfig:
    """
    Settings for one comparison run.

    ``recompute`` decides whether cached fits are reused; ``reference``
    names the series whose geometric mean anchors every other series.
    """
    scenario: str = 'spatial'
    family: str = 'lognormal'
    random_state: Optional[int] = 42
    n_years: int = 10
    n_sites: int = 60
    n_vessels: int = 6
    n_samples_per_year: int = 80
    models: List[ModelSpec] = field(default_factory=list)
    reference: Optional[str] = 'truth'
    recompute: bool = False
    cache_dir: Optional[str] = None
    verbose: bool = False

    def __post_init__(self):
        if self.scenario not in SCENARIOS:
            raise ValueError(
                f"Unknown scenario '{self.scenario}'. Use {list(SCENARIOS)}."
            )
        if not self.models:
            self.models = default_models(self.family)
        self.models = [m if isinstance(m, ModelSpec) else ModelSpec(**m) for m in self.models]

        names = [m.name for m in self.models]
        duplicated = sorted({n for n in names if names.count(n) > 1})
        if duplicated:
            raise ValueError(f"Model names must be unique; duplicated: {duplicated}")
        reserved = [n for n in names if n in RESERVED_NAMES]
        if reserved:
            raise ValueError(
                f"Model names {reserved} are reserved for {list(RESERVED_NAMES)} series"
            )

    @classmethod
    def from_dict(cls, overrides: Optional[dict] = None) -> 'ComparisonConfig':
        """DEFAULT_CONFIG merged with overrides; unknown keys raise ValueError."""
        overrides = overrides or {}
        unknown = set(overrides) - set(DEFAULT_CONFIG)
        if unknown:
            raise ValueError(
                f"Unknown config keys {sorted(unknown)}. Valid keys: {list(DEFAULT_CONFIG)}"
            )
        config = {**DEFAULT_CONFIG, **overrides}
        config['models'] = config['models'] or []
        return cls(**config)

    @classmethod
    def from_json(cls, path) -> 'ComparisonConfig':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        with open(path) as fh:
            return cls.from_dict(json.load(fh))

    def to_dict(self) -> dict:
        return asdict(self)

    def simulation_kwargs(self) -> dict:
        return {
            'n_sites': self.n_sites,
            'n_years': self.n_years,
            'n_vessels': self.n_vessels,
            'n_samples_per_year': self.n_samples_per_year,
            'family': self.family,
            'random_state': self.random_state,
        }


def simulate_from_config(config: ComparisonConfig) -> dict:
    """Simulated data set for the configured scenario."""
    return SCENARIOS[config.scenario](**config.simulation_kwargs())


# ============================================================================
# REFERENCE SERIES
# ============================================================================
def nominal_index(data, year_col='year', value_col='cpue', positive_only=True,
                  name='nominal'):
    """
    Unstandardized index: per-year geometric mean of CPUE.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    year_col, value_col : str
        Year and CPUE columns.
    positive_only : bool, default=True
        Ignore zero catches. If False, zeros raise ValueError through the
        geometric mean.
    name : str, default='nominal'
        Series name.

    Returns
    -------
    YearEffects
        Identity-link series.
    """
    frame = data[data[value_col] > 0] if positive_only else data
    by_year = (
        frame
        .groupby(year_col)[value_col]
        .apply(lambda v: geometric_mean(v.values))
        .sort_index()
    )
    return YearEffects(
        name=name,
        years=by_year.index.values,
        coefficients=by_year.values,
        link='identity',
        family='nominal',
        method='nominal',
        metadata={'n_obs': len(frame), 'converged': True},
    )


def true_year_effects(sim, name='truth'):
    """Known simulated year effects as a log-link series."""
    return YearEffects(
        name=name,
        years=sim['years'],
        coefficients=sim['year_effects'],
        link='log',
        family=sim['params']['family'],
        method='simulation',
        metadata={'converged': True},
    )


# ============================================================================
# FITTING AND ALIGNMENT
# ============================================================================
def fit_all(data, specs, cache=None, verbose=False):
    """
    Fit every model spec, going through the cache when given.

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table.
    specs : list of ModelSpec
        Models to fit.
    cache : ResultCache or None, default=None
        Result store; keys combine the spec and a fingerprint of data.
        Entries are stored without metadata['result']; freshly fitted
        series keep it.
    verbose : bool, default=False
        Print progress.

    Returns
    -------
    list of YearEffects
    """
    fingerprint = dataframe_fingerprint(data) if cache is not None else None
    effects = []
    for spec in specs:
        def _fit(spec=spec):
            return fit_year_effects(
                data, method=spec.method, family=spec.family,
                name=spec.name, **spec.options
            )

        if verbose:
            print(f"[{spec.name}] method={spec.method} family={spec.family}")

        if cache is None:
            effects.append(_fit())
            continue

        key_config = {**spec.to_dict(), 'data': fingerprint}
        key = make_key(spec.name, key_config)
        if not cache.recompute and key in cache:
            effects.append(cache.load(key))
        else:
            fitted = _fit()
            cache.save(key, _without_result(fitted), config=key_config)
            effects.append(fitted)
    return effects


def _without_result(effects):
    # fitted library objects stay out of the cache
    return replace(
        effects,
        metadata={k: v for k, v in effects.metadata.items() if k != 'result'},
    )


def _resolve_reference(effects, reference):
    if reference is None:
        return None
    if isinstance(reference, YearEffects):
        return reference
    for e in effects:
        if e.name == reference:
            return e
    raise ValueError(
        f"Unknown reference '{reference}'. Available: {[e.name for e in effects]}"
    )


def build_comparison_table(effects, reference: Union[str, YearEffects, None] = None):
    """
    Normalize every series to the reference geometric mean and stack them.

    Parameters
    ----------
    effects : list of YearEffects
        Series to compare.
    reference : str, YearEffects or None, default=None
        Reference series (by name or object). Its response-scale geometric
        mean is the common anchor. If None, every series is anchored to 1.0.

    Returns
    -------
    table : pd.DataFrame
        Columns: model, method, family, year, raw, index.
    """
    if not effects:
        raise ValueError("effects is empty")

    ref = _resolve_reference(effects, reference)
    anchor = 1.0 if ref is None else geometric_mean(ref.response_scale())

    table = pd.concat([e.to_frame(anchor) for e in effects], ignore_index=True)
    table.attrs['reference'] = None if ref is None else ref.name
    table.attrs['reference_geometric_mean'] = anchor
    return table


@dataclass
class ComparisonResult:
    """Output of :func:`run_comparison`."""
    table: pd.DataFrame
    effects: List[YearEffects]
    data: pd.DataFrame
    config: ComparisonConfig
    simulation: Optional[dict] = None

    @property
    def reference(self) -> Optional[str]:
        return self.table.attrs.get('reference')

    def wide(self) -> pd.DataFrame:
        """Normalized indices with one column per model."""
        return self.table.pivot(index='year', columns='model', values='index')

    def summary(self) -> pd.DataFrame:
        """
        Per-model comparison against the reference.

        Columns: n_years, geometric_mean, correlation and rmse_log (both
        against the reference over shared years; NaN without a reference),
        converged.
        """
        wide = self.wide()
        ref = self.reference
        rows = []
        for e in self.effects:
            series = wide[e.name].dropna()
            row = {
                'model': e.name,
                'method': e.method,
                'n_years': len(series),
                'geometric_mean': geometric_mean(series.values),
                'correlation': np.nan,
                'rmse_log': np.nan,
                'converged': e.metadata.get('converged', True),
            }
            if ref is not None:
                both = wide[[e.name, ref]].dropna()
                if len(both) > 1:
                    row['correlation'] = float(np.corrcoef(both[e.name], both[ref])[0, 1])
                    row['rmse_log'] = float(np.sqrt(np.mean(
                        np.log(both[e.name] / both[ref]) ** 2
                    )))
            rows.append(row)
        return pd.DataFrame(rows).set_index('model')


def run_comparison(config=None, data=None, cache=None):
    """
    Simulate (unless data is given), fit all models, align and tabulate.

    Parameters
    ----------
    config : ComparisonConfig, dict or None
        Run settings. dict values override DEFAULT_CONFIG.
    data : pd.DataFrame or None, default=None
        Real CPUE data. If None, data is simulated from config and the
        true year effects are added as the 'truth' series. Grouped models
        are skipped when data lacks their grouping column.
    cache : ResultCache or None, default=None
        Result store. If None and config.cache_dir is set, one is created
        with config.recompute.

    Returns
    -------
    ComparisonResult
    """
    if config is None or isinstance(config, dict):
        config = ComparisonConfig.from_dict(config)

    if cache is None and config.cache_dir:
        cache = ResultCache(config.cache_dir, recompute=config.recompute,
                            verbose=config.verbose)

    sim = None
    reference = config.reference
    if data is None:
        if config.verbose:
            print(f"Simulating {config.scenario} data ({config.family}, seed={config.random_state})")
        sim = simulate_from_config(config)
        data = sim['data']

    specs = usable_models(config.models, data)
    if sim is None and reference == 'truth':
        reference = specs[0].name
        warnings.warn(
            f"No simulated truth for supplied data; using '{reference}' as reference.",
            UserWarning
        )

    effects = fit_all(data, specs, cache=cache, verbose=config.verbose)
    effects.append(nominal_index(data))
    if sim is not None:
        effects.append(true_year_effects(sim))

    table = build_comparison_table(effects, reference=reference)
    return ComparisonResult(table=table, effects=effects, data=data,
                            config=config, simulation=sim)
