"""
Coefficient normalization module.

Inverse links, a positivity-checked geometric mean, and the normalizer that
anchors year-effect series from different models to a common geometric mean.
"""

from .normalizer import (
    normalize,
    anchor_to_reference,
    to_response_scale,
    expand_treatment_contrasts,
    YearEffectNormalizer,
)
from .links import get_inverse_link, exp_inverse, logistic_inverse, identity_inverse, INVERSE_LINKS
from .geometric import geometric_mean, check_positive

__all__ = [
    # Main entry points
    'normalize',
    'anchor_to_reference',
    'to_response_scale',
    'expand_treatment_contrasts',
    'YearEffectNormalizer',
    # Links
    'get_inverse_link',
    'exp_inverse',
    'logistic_inverse',
    'identity_inverse',
    'INVERSE_LINKS',
    # Geometric mean
    'geometric_mean',
    'check_positive',
]
