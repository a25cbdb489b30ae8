"""
Bootstrapped population estimate of the mean divergence time.

Per-subject divergence times are expected to be right-skewed: divergence
cannot happen before the start of the analysis window but may happen
arbitrarily late. The interval is therefore taken from the empirical
distribution of resampled means instead of a normal-theory formula.

Quantiles use linear interpolation between order statistics
(``numpy.quantile(..., method="linear")``).
"""
import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field

import numpy as np
from joblib import Parallel, delayed

from gaze_divergence.divergence.divergence_errors import (
    InsufficientData, InvalidConfiguration, MalformedSeries
)
from gaze_divergence.divergence.divergence_functions import DivergencePoint, check_n_jobs

NEVER_DIVERGED_POLICIES = ("exclude", "impute")
QUANTILE_METHOD = "linear"
# resample trials per child generator; fixed so results do not depend on n_jobs
CHUNK_SIZE = 1000


@dataclass(frozen=True)
class DivergenceEstimate:
    """Population interval for the mean divergence time."""
    lower_bound: float
    point_estimate: float
    upper_bound: float
    n_subjects: int
    n_excluded: int
    n_resamples: int
    lower_quantile: float
    upper_quantile: float
    never_diverged: str = "exclude"
    n_imputed: int = 0
    resampled_means: np.ndarray = field(default=None, compare=False, repr=False)


def check_resamples(resamples):
    if isinstance(resamples, bool) or not isinstance(resamples, numbers.Integral):
        raise InvalidConfiguration(f"resamples must be an integer, got {resamples!r}")
    if resamples < 1:
        raise InvalidConfiguration(f"resamples must be positive, got {resamples}")
    return int(resamples)


def check_quantiles(lower_quantile, upper_quantile):
    for q in (lower_quantile, upper_quantile):
        if isinstance(q, bool) or not isinstance(q, numbers.Real) or not 0 < q < 1:
            raise InvalidConfiguration(f"quantiles must be real numbers in (0, 1), got {q!r}")
    if not lower_quantile < upper_quantile:
        raise InvalidConfiguration(
            f"lower_quantile ({lower_quantile}) must be below upper_quantile ({upper_quantile})"
        )
    return float(lower_quantile), float(upper_quantile)


def check_never_diverged(never_diverged, impute_time):
    if never_diverged not in NEVER_DIVERGED_POLICIES:
        raise InvalidConfiguration(
            f"never_diverged must be one of {NEVER_DIVERGED_POLICIES}, got {never_diverged!r}"
        )
    if never_diverged == "impute":
        if isinstance(impute_time, bool) or not isinstance(impute_time, numbers.Real) \
                or not math.isfinite(impute_time):
            raise InvalidConfiguration(
                f"never_diverged='impute' needs a finite impute_time, got {impute_time!r}"
            )
    return never_diverged


def partition_points(points):
    """
    Split divergence points into defined times and a never-diverged count.

    Parameters:
    -----------
    points : sequence of DivergencePoint, or mapping subject -> DivergencePoint

    Returns:
    --------
    defined : np.ndarray
        Divergence times of subjects that diverged.
    n_never : int
        Number of subjects that never diverged.
    """
    if isinstance(points, Mapping):
        points = list(points.values())
    defined = []
    n_never = 0
    for point in points:
        if not isinstance(point, DivergencePoint):
            raise InvalidConfiguration(f"expected DivergencePoint, got {type(point).__name__}")
        if point.diverged:
            defined.append(point.time_bin)
        else:
            n_never += 1
    try:
        defined = np.asarray(defined, dtype=float)
    except (TypeError, ValueError) as e:
        raise MalformedSeries(f"divergence times must be numeric to be averaged ({e})") from e
    return defined, n_never


def _resample_means(values, n_trials, rng):
    """Means of ``n_trials`` with-replacement samples of ``values``."""
    idx = rng.integers(0, len(values), size=(n_trials, len(values)))
    return values[idx].mean(axis=1)


def bootstrap_means(values, resamples, random_state=None, n_jobs=1):
    """
    Draw the bootstrap distribution of the mean.

    Trials are split into chunks of ``CHUNK_SIZE``; each chunk draws from its
    own generator spawned from ``random_state``, so the output is the same
    for every ``n_jobs``.

    Parameters:
    -----------
    values : np.ndarray
        Observed values.
    resamples : int
        Number of resample trials.
    random_state : None, int or np.random.Generator
        Single source of randomness. An int gives reproducible output;
        a Generator is advanced by each call.
    n_jobs : int
        Number of parallel jobs (joblib convention).

    Returns:
    --------
    means : np.ndarray, shape (resamples,)
    """
    n_jobs = check_n_jobs(n_jobs)
    values = np.asarray(values, dtype=float)
    rng = np.random.default_rng(random_state)
    chunk_sizes = [CHUNK_SIZE] * (resamples // CHUNK_SIZE)
    if resamples % CHUNK_SIZE:
        chunk_sizes.append(resamples % CHUNK_SIZE)
    child_rngs = rng.spawn(len(chunk_sizes))

    if n_jobs == 1:
        chunks = [_resample_means(values, size, child) for size, child in zip(chunk_sizes, child_rngs)]
    else:
        chunks = Parallel(n_jobs=n_jobs)(
            delayed(_resample_means)(values, size, child) for size, child in zip(chunk_sizes, child_rngs)
        )
    return np.concatenate(chunks)


def estimate(points, resamples, lower_quantile, upper_quantile, random_state=None,
             never_diverged="exclude", impute_time=None, n_jobs=1, verbose=False):
    """
    Estimate the population mean divergence time and its bootstrap interval.

    Parameters:
    -----------
    points : sequence of DivergencePoint, or mapping subject -> DivergencePoint
        Output of the divergence detector.
    resamples : int
        Number of bootstrap resamples (>= 1).
    lower_quantile, upper_quantile : float
        Quantile levels of the interval, 0 < lower < upper < 1.
    random_state : None, int or np.random.Generator, optional
        Source of randomness threaded through all resamples.
    never_diverged : str, optional
        "exclude" drops never-diverged subjects; "impute" sets them to
        ``impute_time`` (e.g. the end of the analysis window).
    impute_time : float, optional
        Time assigned to never-diverged subjects under "impute".
    n_jobs : int, optional
        Number of parallel jobs for the resampling.
    verbose : bool, optional
        Print a summary.

    Returns:
    --------
    estimate : DivergenceEstimate

    Raises:
    -------
    InvalidConfiguration
        For invalid resamples, quantiles, never-diverged policy or n_jobs, and
        when the mean of the resampled means falls outside the quantile bounds.
    InsufficientData
        If no subject contributes a divergence time.
    """
    resamples = check_resamples(resamples)
    lower_quantile, upper_quantile = check_quantiles(lower_quantile, upper_quantile)
    never_diverged = check_never_diverged(never_diverged, impute_time)
    n_jobs = check_n_jobs(n_jobs)

    defined, n_never = partition_points(points)
    n_imputed = 0
    n_excluded = n_never
    if never_diverged == "impute" and n_never:
        defined = np.concatenate([defined, np.full(n_never, float(impute_time))])
        n_imputed = n_never
        n_excluded = 0

    if len(defined) == 0:
        raise InsufficientData(
            f"no subject with a defined divergence point ({n_excluded} never diverged)"
        )

    means = bootstrap_means(defined, resamples, random_state=random_state, n_jobs=n_jobs)
    lower_bound, upper_bound = np.quantile(means, [lower_quantile, upper_quantile], method=QUANTILE_METHOD)
    point_estimate = float(np.mean(means))
    if not lower_bound <= point_estimate <= upper_bound:
        # summation rounding when the resampled means are all equal
        bounds = np.array([lower_bound, upper_bound])
        if np.isclose(point_estimate, bounds, rtol=1e-9, atol=1e-9).any():
            point_estimate = float(np.clip(point_estimate, lower_bound, upper_bound))
        else:
            raise InvalidConfiguration(
                f"mean of resampled means ({point_estimate:.4g}) lies outside the "
                f"({lower_quantile}, {upper_quantile}) quantile bounds "
                f"[{lower_bound:.4g}, {upper_bound:.4g}]; choose quantiles that bracket it"
            )

    result = DivergenceEstimate(
        lower_bound=float(lower_bound),
        point_estimate=point_estimate,
        upper_bound=float(upper_bound),
        n_subjects=len(defined),
        n_excluded=n_excluded,
        n_resamples=resamples,
        lower_quantile=lower_quantile,
        upper_quantile=upper_quantile,
        never_diverged=never_diverged,
        n_imputed=n_imputed,
        resampled_means=means,
    )
    if verbose:
        print(f"Divergence estimate: {result.point_estimate:.2f} "
              f"[{result.lower_bound:.2f}, {result.upper_bound:.2f}] "
              f"from {result.n_subjects} subjects ({result.n_excluded} excluded, "
              f"{result.n_imputed} imputed), {resamples} resamples")
    return result
