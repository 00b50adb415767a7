"""
Year-effect container shared by every model adapter.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from ..normalization import normalize, to_response_scale


# Link function of each supported observation family
FAMILY_LINKS = {
    'lognormal': 'log',
    'gamma': 'log',
    'binomial': 'logit',
}


def get_family_link(family: str) -> str:
    """Link name for a family, raising ValueError for unknown families."""
    if family not in FAMILY_LINKS:
        raise ValueError(
            f"Unknown family '{family}'. Use {list(FAMILY_LINKS)}."
        )
    return FAMILY_LINKS[family]


@dataclass
class YearEffects:
    """
    Per-year coefficients from one fitted model.

    ``coefficients`` are on the model's link scale. Under treatment
    contrasts the first year is the baseline and is not stored, so
    ``len(coefficients) == len(years) - 1``.
    """
    name: str
    years: np.ndarray
    coefficients: np.ndarray
    link: str
    treatment_contrasts: bool = False
    intercept: float = 0.0
    family: str = ''
    method: str = ''
    standard_errors: Optional[np.ndarray] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.years = np.asarray(self.years)
        self.coefficients = np.asarray(self.coefficients, dtype=float).ravel()
        expected = len(self.years) - 1 if self.treatment_contrasts else len(self.years)
        if len(self.coefficients) != expected:
            raise ValueError(
                f"{self.name}: {len(self.coefficients)} coefficients for "
                f"{len(self.years)} years (treatment_contrasts={self.treatment_contrasts}); "
                f"expected {expected}"
            )

    def full_coefficients(self) -> np.ndarray:
        """Link-scale coefficients for every year, baseline included."""
        if self.treatment_contrasts:
            return np.concatenate([[0.0], self.coefficients])
        return self.coefficients.copy()

    def linear_predictor(self) -> np.ndarray:
        """Intercept plus year coefficients, other covariates at their reference."""
        return self.intercept + self.full_coefficients()

    @property
    def n_years(self) -> int:
        return len(self.years)

    def response_scale(self) -> np.ndarray:
        """Full series on the response scale (baseline reconstructed)."""
        return to_response_scale(self.coefficients, self.link, self.treatment_contrasts)

    def normalized(self, reference_geometric_mean: float = 1.0) -> np.ndarray:
        """Series anchored to the given geometric mean."""
        return normalize(
            self.coefficients,
            inverse_link=self.link,
            reference_geometric_mean=reference_geometric_mean,
            treatment_contrasts=self.treatment_contrasts,
        )

    def to_frame(self, reference_geometric_mean: Optional[float] = None) -> pd.DataFrame:
        """Long-format table: one row per year."""
        raw = self.response_scale()
        frame = pd.DataFrame({
            'model': self.name,
            'method': self.method,
            'family': self.family,
            'year': self.years,
            'raw': raw,
        })
        if reference_geometric_mean is not None:
            frame['index'] = self.normalized(reference_geometric_mean)
        return frame
