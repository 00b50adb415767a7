"""
Shared data preparation for the model adapters.
"""

import warnings

import numpy as np

from .effects import get_family_link

_PASSTHROUGH = (DeprecationWarning, PendingDeprecationWarning, FutureWarning)


def default_covariates(data, candidates=('vessel',)):
    """Categorical covariates present in data, in candidate order."""
    return [c for c in candidates if c in data.columns]


def prepare_model_data(data, family, year_col='year', verbose=False):
    """
    Select the response and rows appropriate for a family.

    - lognormal: 'log_cpue' on positive catches
    - gamma: 'cpue' on positive catches
    - binomial: 'present' on all rows

    Parameters
    ----------
    data : pd.DataFrame
        CPUE table with year_col, 'cpue' and, for binomial, 'present'.
    family : str
        Observation family.
    year_col : str, default='year'
        Year column.
    verbose : bool, default=False
        Print row counts.

    Returns
    -------
    frame : pd.DataFrame
        Rows used for fitting, with a 'log_cpue' / 'present' column derived
        if missing.
    response : str
        Response column name.
    years : ndarray
        Sorted year levels present in frame.
    """
    get_family_link(family)

    missing = [c for c in (year_col, 'cpue') if c not in data.columns]
    if missing:
        raise ValueError(f"data is missing required columns {missing}")

    frame = data.copy()
    if 'present' not in frame.columns:
        frame['present'] = (frame['cpue'] > 0).astype(int)

    if family == 'binomial':
        response = 'present'
    else:
        n_zero = int((frame['cpue'] <= 0).sum())
        if n_zero:
            warnings.warn(
                f"Dropped {n_zero} zero-catch observations for the {family} fit. "
                f"Use a delta method to model them.",
                UserWarning
            )
        frame = frame[frame['cpue'] > 0].copy()
        frame['log_cpue'] = np.log(frame['cpue'])
        response = 'log_cpue' if family == 'lognormal' else 'cpue'

    years = np.sort(frame[year_col].unique())
    if len(years) < 2:
        raise ValueError(
            f"Need at least 2 years with data for the {family} fit, got {len(years)}"
        )

    if verbose:
        print(f"  {family}: {len(frame)} rows, {len(years)} years")

    return frame.reset_index(drop=True), response, years


def collect_warnings(fit_fn, label):
    """
    Run fit_fn, re-issuing fit warnings as UserWarning tagged with label.

    Deprecation-style warnings pass through unchanged and are not counted.

    Returns
    -------
    result : object
        Return value of fit_fn.
    messages : list of str
        Warning messages raised during the fit.
    """
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        result = fit_fn()

    messages = []
    for w in caught:
        if issubclass(w.category, _PASSTHROUGH):
            warnings.warn(w.message)
            continue
        messages.append(str(w.message))
        warnings.warn(f"{label}: {w.message}", UserWarning)
    return result, messages
