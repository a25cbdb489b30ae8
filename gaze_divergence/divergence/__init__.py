"""
Per-subject divergence detection and bootstrapped population estimates.
"""

from gaze_divergence.divergence.divergence_errors import (
    DivergenceError, MalformedSeries, InvalidConfiguration, InsufficientData
)
from gaze_divergence.divergence.divergence_functions import (
    DivergencePoint, detect, detect_divergence_single
)
from gaze_divergence.divergence.divergence_stats import (
    DivergenceEstimate, estimate
)

__all__ = [
    "DivergenceError",
    "MalformedSeries",
    "InvalidConfiguration",
    "InsufficientData",
    "DivergencePoint",
    "detect",
    "detect_divergence_single",
    "DivergenceEstimate",
    "estimate",
]
