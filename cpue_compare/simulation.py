"""
Synthetic CPUE data for comparing standardization models.

Provides:
- Gaussian random fields with exponential covariance over fishing sites
- Spatial (one field for all years) and spatio-temporal (AR(1) fields) CPUE
- Lognormal, gamma and hurdle (delta) observation models
- Loading real CPUE tables from CSV
"""

from pathlib import Path

import numpy as np
import pandas as pd
from scipy.spatial.distance import cdist
from scipy.special import expit

FAMILIES = ('lognormal', 'gamma', 'hurdle')

REQUIRED_COLUMNS = ('year', 'cpue')


def exponential_covariance(coords, field_range=0.3, sigma=0.5):
    """
    Exponential covariance matrix between site coordinates.

    C_ij = σ² · exp(-d_ij / range)

    Parameters
    ----------
    coords : array-like of shape (n_sites, 2)
        Site coordinates.
    field_range : float, default=0.3
        Distance at which correlation drops to exp(-1).
    sigma : float, default=0.5
        Marginal standard deviation of the field.

    Returns
    -------
    cov : ndarray of shape (n_sites, n_sites)
    """
    if field_range <= 0:
        raise ValueError(f"field_range must be > 0, got {field_range}")
    coords = np.asarray(coords, dtype=float)
    distances = cdist(coords, coords)
    return sigma ** 2 * np.exp(-distances / field_range)


def simulate_gaussian_field(coords, field_range=0.3, sigma=0.5, n_fields=1, jitter=1e-8):
    """
    Draw zero-mean Gaussian random fields at the given coordinates.

    Parameters
    ----------
    coords : array-like of shape (n_sites, 2)
        Site coordinates.
    field_range : float, default=0.3
        Range of the exponential covariance.
    sigma : float, default=0.5
        Marginal standard deviation.
    n_fields : int, default=1
        Number of independent fields.
    jitter : float, default=1e-8
        Diagonal added before the Cholesky factorization.

    Returns
    -------
    fields : ndarray of shape (n_fields, n_sites)
    """
    cov = exponential_covariance(coords, field_range, sigma)
    chol = np.linalg.cholesky(cov + jitter * np.eye(len(cov)))
    z = np.random.normal(0, 1, (len(cov), n_fields))
    return (chol @ z).T


def _default_year_effects(n_years, sigma_year):
    """Mean-zero random walk."""
    steps = np.random.normal(0, sigma_year, n_years)
    walk = np.cumsum(steps)
    return walk - walk.mean()


def _observe(eta, family, sigma_obs, logit_presence, field_at_obs):
    """Draw CPUE observations given the linear predictor."""
    n = len(eta)

    if family == 'lognormal':
        cpue = np.exp(eta + np.random.normal(0, sigma_obs, n))
        present = np.ones(n, dtype=bool)

    elif family == 'gamma':
        # sigma_obs is the coefficient of variation here
        shape = 1 / sigma_obs ** 2
        cpue = np.random.gamma(shape, np.exp(eta) / shape)
        present = np.ones(n, dtype=bool)

    else:
        p = expit(logit_presence + field_at_obs)
        present = np.random.uniform(0, 1, n) < p
        positive = np.exp(eta + np.random.normal(0, sigma_obs, n))
        cpue = np.where(present, positive, 0.0)

    return cpue, present


def _simulate(
    n_sites,
    n_years,
    n_vessels,
    n_samples_per_year,
    family,
    year_effects,
    base_cpue,
    sigma_year,
    sigma_vessel,
    sigma_obs,
    sigma_field,
    field_range,
    rho,
    logit_presence,
    first_year,
    spatiotemporal,
    random_state,
):
    if family not in FAMILIES:
        raise ValueError(f"Unknown family '{family}'. Use {list(FAMILIES)}.")
    if n_years < 2:
        raise ValueError(f"n_years must be >= 2, got {n_years}")
    if not -1 < rho < 1:
        raise ValueError(f"rho must be in (-1, 1), got {rho}")

    if random_state is not None:
        np.random.seed(random_state)

    if year_effects is None:
        year_effects = _default_year_effects(n_years, sigma_year)
    else:
        year_effects = np.asarray(year_effects, dtype=float)
        if len(year_effects) != n_years:
            raise ValueError(
                f"year_effects has {len(year_effects)} elements, "
                f"but n_years is {n_years}"
            )

    coords = np.random.uniform(0, 1, (n_sites, 2))
    vessel_effects = np.random.normal(0, sigma_vessel, n_vessels)

    # field[t, i]: latent field at site i in year t
    if spatiotemporal:
        innovations = simulate_gaussian_field(coords, field_range, sigma_field, n_fields=n_years)
        field = np.zeros((n_years, n_sites))
        field[0] = innovations[0]
        for t in range(1, n_years):
            field[t] = rho * field[t - 1] + np.sqrt(1 - rho ** 2) * innovations[t]
    else:
        field = np.repeat(simulate_gaussian_field(coords, field_range, sigma_field), n_years, axis=0)

    year_idx = np.repeat(np.arange(n_years), n_samples_per_year)
    n_obs = len(year_idx)
    site_idx = np.random.randint(0, n_sites, n_obs)
    vessel_idx = np.random.randint(0, n_vessels, n_obs)

    field_at_obs = field[year_idx, site_idx]
    eta = (np.log(base_cpue) + year_effects[year_idx]
           + vessel_effects[vessel_idx] + field_at_obs)

    cpue, present = _observe(eta, family, sigma_obs, logit_presence, field_at_obs)

    data = pd.DataFrame({
        'year': first_year + year_idx,
        'site': site_idx,
        'vessel': vessel_idx,
        'lon': coords[site_idx, 0],
        'lat': coords[site_idx, 1],
        'cpue': cpue,
    })
    data['log_cpue'] = np.log(data['cpue'].where(data['cpue'] > 0))
    data['present'] = present.astype(int)

    sites = pd.DataFrame({'site': np.arange(n_sites), 'lon': coords[:, 0], 'lat': coords[:, 1]})

    return {
        'data': data,
        'year_effects': year_effects,
        'true_index': np.exp(year_effects),
        'years': first_year + np.arange(n_years),
        'field': field.T,
        'sites': sites,
        'vessel_effects': vessel_effects,
        'params': {
            'scenario': 'spatiotemporal' if spatiotemporal else 'spatial',
            'family': family,
            'n_sites': n_sites,
            'n_years': n_years,
            'n_vessels': n_vessels,
            'n_samples_per_year': n_samples_per_year,
            'base_cpue': base_cpue,
            'sigma_obs': sigma_obs,
            'sigma_field': sigma_field,
            'field_range': field_range,
            'rho': rho if spatiotemporal else None,
            'logit_presence': logit_presence if family == 'hurdle' else None,
            'random_state': random_state,
        },
    }


def simulate_spatial_cpue(
    n_sites=60,
    n_years=10,
    n_vessels=6,
    n_samples_per_year=80,
    family='lognormal',
    year_effects=None,
    base_cpue=10.0,
    sigma_year=0.2,
    sigma_vessel=0.2,
    sigma_obs=0.3,
    sigma_field=0.5,
    field_range=0.3,
    logit_presence=0.5,
    first_year=2000,
    random_state=None
):
    """
    Simulate CPUE with a spatial field that is constant over years.

    Model: log E[CPUE] = log(base) + year_t + vessel_v + ω(site)

    Parameters
    ----------
    n_sites : int, default=60
        Number of fishing sites, placed uniformly in the unit square.

    n_years : int, default=10
        Number of years (at least 2).

    n_vessels : int, default=6
        Number of vessels.

    n_samples_per_year : int, default=80
        Fishing events per year; site and vessel drawn at random.

    family : str, default='lognormal'
        Observation model: 'lognormal', 'gamma' (sigma_obs is the CV) or
        'hurdle' (Bernoulli presence, lognormal positives).

    year_effects : array-like or None, default=None
        True log-scale year effects. If None, a mean-zero random walk with
        step SD sigma_year.

    base_cpue : float, default=10.0
        CPUE at zero effects.

    sigma_year, sigma_vessel, sigma_obs, sigma_field : float
        Standard deviations of the random walk steps, vessel effects,
        observation error and spatial field.

    field_range : float, default=0.3
        Range of the exponential covariance.

    logit_presence : float, default=0.5
        Presence log-odds at zero field (hurdle only).

    first_year : int, default=2000
        Label of the first year.

    random_state : int or None, default=None
        Random seed for reproducibility.

    Returns
    -------
    sim : dict
        Dictionary containing:
        - 'data': DataFrame of fishing events
        - 'year_effects': true log-scale year effects
        - 'true_index': exp(year_effects)
        - 'years': year labels
        - 'field': latent field, shape (n_sites, n_years)
        - 'sites': DataFrame of site coordinates
        - 'vessel_effects': true vessel effects
        - 'params': dict of generating parameters

    Examples
    --------
    >>> sim = simulate_spatial_cpue(n_years=8, random_state=42)
    >>> sim['data'].groupby('year')['cpue'].mean()
    """
    return _simulate(
        n_sites, n_years, n_vessels, n_samples_per_year, family, year_effects,
        base_cpue, sigma_year, sigma_vessel, sigma_obs, sigma_field, field_range,
        rho=0.0, logit_presence=logit_presence, first_year=first_year,
        spatiotemporal=False, random_state=random_state,
    )


def simulate_spatiotemporal_cpue(
    n_sites=60,
    n_years=10,
    n_vessels=6,
    n_samples_per_year=80,
    family='lognormal',
    year_effects=None,
    base_cpue=10.0,
    sigma_year=0.2,
    sigma_vessel=0.2,
    sigma_obs=0.3,
    sigma_field=0.5,
    field_range=0.3,
    rho=0.6,
    logit_presence=0.5,
    first_year=2000,
    random_state=None
):
    """
    Simulate CPUE with a spatial field that evolves over years.

    ω_t = ρ·ω_{t-1} + sqrt(1-ρ²)·ε_t, so each year's field keeps the same
    marginal variance. All other parameters are as in
    :func:`simulate_spatial_cpue`.

    Parameters
    ----------
    rho : float, default=0.6
        AR(1) correlation between consecutive years' fields, in (-1, 1).
    """
    return _simulate(
        n_sites, n_years, n_vessels, n_samples_per_year, family, year_effects,
        base_cpue, sigma_year, sigma_vessel, sigma_obs, sigma_field, field_range,
        rho=rho, logit_presence=logit_presence, first_year=first_year,
        spatiotemporal=True, random_state=random_state,
    )


def read_cpue_csv(path, column_map=None, **read_kwargs):
    """
    Load a real CPUE table.

    Parameters
    ----------
    path : str or Path
        CSV file.
    column_map : dict or None, default=None
        Renames applied before validation, e.g. {'Year': 'year', 'CPUE': 'cpue'}.
    **read_kwargs
        Passed to pandas.read_csv.

    Returns
    -------
    data : pd.DataFrame
        Table with at least 'year' and 'cpue', plus derived 'log_cpue'
        (NaN for zero catches) and 'present'.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CPUE data not found: {path}")

    data = pd.read_csv(path, **read_kwargs)
    if column_map:
        data = data.rename(columns=column_map)

    missing = [c for c in REQUIRED_COLUMNS if c not in data.columns]
    if missing:
        raise ValueError(
            f"CPUE data is missing required columns {missing}; "
            f"found {list(data.columns)}"
        )

    return (
        data
        .assign(
            year=lambda d: pd.to_numeric(d['year'], errors='coerce'),
            cpue=lambda d: pd.to_numeric(d['cpue'], errors='coerce'),
        )
        .dropna(subset=['year', 'cpue'])
        .query('cpue >= 0')
        .assign(
            year=lambda d: d['year'].astype(int),
            log_cpue=lambda d: np.log(d['cpue'].where(d['cpue'] > 0)),
            present=lambda d: (d['cpue'] > 0).astype(int),
        )
        .sort_values('year')
        .reset_index(drop=True)
    )
