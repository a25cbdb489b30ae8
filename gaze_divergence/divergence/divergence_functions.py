"""
Module for detecting the divergence point of a condition-difference signal.

A subject diverges at the first time bin whose forward window of
``window_width`` bins (the bin itself and the following ones) holds only
defined values that all lie strictly beyond the threshold. Windows that
run past the end of the series or contain a missing value are never
candidates.
"""
import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from numpy.lib.stride_tricks import sliding_window_view
from tqdm import tqdm

from gaze_divergence.divergence.divergence_errors import (
    InvalidConfiguration, MalformedSeries
)

DIRECTIONS = ("greater", "less")


@dataclass(frozen=True)
class DivergencePoint:
    """
    Divergence result for one subject.

    ``time_bin`` is the first bin of sustained divergence, or None when the
    subject never diverged. Check ``diverged`` rather than comparing
    ``time_bin`` against a number.
    """
    subject: object
    time_bin: object = None

    @property
    def diverged(self):
        return self.time_bin is not None

    @classmethod
    def never(cls, subject):
        return cls(subject=subject, time_bin=None)


def check_window_width(window_width):
    if isinstance(window_width, bool) or not isinstance(window_width, numbers.Integral):
        raise InvalidConfiguration(f"window_width must be an integer, got {window_width!r}")
    if window_width <= 0:
        raise InvalidConfiguration(f"window_width must be positive, got {window_width}")
    if window_width % 2 == 0:
        raise InvalidConfiguration(f"window_width must be odd, got {window_width}")
    return int(window_width)


def check_threshold(threshold):
    if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real):
        raise InvalidConfiguration(f"threshold must be a real number, got {threshold!r}")
    if not math.isfinite(threshold):
        raise InvalidConfiguration(f"threshold must be finite, got {threshold}")
    return float(threshold)


def check_direction(direction):
    if direction not in DIRECTIONS:
        raise InvalidConfiguration(f"direction must be one of {DIRECTIONS}, got {direction!r}")
    return direction


def check_n_jobs(n_jobs):
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs == 0:
        raise InvalidConfiguration(f"n_jobs must be a non-zero integer, got {n_jobs!r}")
    return int(n_jobs)


def _is_missing(value):
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _series_pairs(series):
    """Return the (time_bin, value) pairs of one subject's series."""
    if series is None:
        return []
    if isinstance(series, pd.Series):
        return list(zip(series.index, series.to_numpy()))
    if isinstance(series, Mapping):
        return list(series.items())
    return [tuple(pair) for pair in series]


def order_series(series, subject=None):
    """
    Sort one subject's series by time bin and split it into arrays.

    Parameters:
    -----------
    series : mapping, pd.Series or iterable of (time_bin, value) pairs
        The subject's difference signal. Missing values are None or NaN.
    subject : hashable, optional
        Subject identifier, used in error messages only.

    Returns:
    --------
    time_bins : list
        Time bins in ascending order.
    values : np.ndarray
        Float values aligned with ``time_bins``, NaN where missing.

    Raises:
    -------
    MalformedSeries
        If time bins are duplicated, NaN or not mutually comparable.
    """
    pairs = _series_pairs(series)
    for time_bin, _ in pairs:
        if _is_missing(time_bin):
            raise MalformedSeries(f"subject {subject!r}: missing time bin in series")
    try:
        pairs = sorted(pairs, key=lambda pair: pair[0])
        for (t_prev, _), (t_next, _) in zip(pairs[:-1], pairs[1:]):
            if not t_prev < t_next:
                raise MalformedSeries(
                    f"subject {subject!r}: duplicate or unordered time bin {t_next!r}"
                )
    except TypeError as e:
        raise MalformedSeries(f"subject {subject!r}: time bins are not comparable ({e})") from e

    time_bins = [time_bin for time_bin, _ in pairs]
    values = np.full(len(pairs), np.nan)
    for i, (time_bin, value) in enumerate(pairs):
        if _is_missing(value):
            continue
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise MalformedSeries(
                f"subject {subject!r}: non-numeric difference value {value!r} at time bin {time_bin!r}"
            )
        values[i] = float(value)
    return time_bins, values


def candidate_mask(values, window_width, threshold=0.0, direction="greater"):
    """
    Flag the positions whose forward window fully exceeds the threshold.

    Parameters:
    -----------
    values : np.ndarray
        Time-ordered difference values, NaN where missing.
    window_width : int
        Number of consecutive bins in the forward window.
    threshold : float
        Values must lie strictly beyond this level.
    direction : str
        "greater" for values > threshold, "less" for values < threshold.

    Returns:
    --------
    mask : np.ndarray of bool, shape (len(values),)
        True at candidate divergence bins. The last ``window_width - 1``
        positions are always False.
    """
    values = np.asarray(values, dtype=float)
    mask = np.zeros(len(values), dtype=bool)
    if len(values) < window_width:
        return mask
    # NaN compares False either way, so missing values fail the predicate
    with np.errstate(invalid="ignore"):
        if direction == "greater":
            beyond = values > threshold
        else:
            beyond = values < threshold
    windows = sliding_window_view(beyond, window_width)
    mask[:len(windows)] = windows.all(axis=1)
    return mask


def detect_divergence_single(series, window_width, threshold=0.0, direction="greater", subject=None):
    """
    Find the divergence point of a single subject.

    Parameters:
    -----------
    series : mapping, pd.Series or iterable of (time_bin, value) pairs
        The subject's difference signal.
    window_width : int
        Positive odd number of consecutive bins required.
    threshold : float
        Divergence level; the comparison is strict.
    direction : str
        "greater" or "less".
    subject : hashable, optional
        Subject identifier stored on the result.

    Returns:
    --------
    point : DivergencePoint
        The first candidate bin, or a "never diverged" point.
    """
    window_width = check_window_width(window_width)
    threshold = check_threshold(threshold)
    direction = check_direction(direction)

    time_bins, values = order_series(series, subject=subject)
    mask = candidate_mask(values, window_width, threshold, direction)
    if not mask.any():
        return DivergencePoint.never(subject)
    return DivergencePoint(subject=subject, time_bin=time_bins[int(np.argmax(mask))])


def detect(series, window_width, threshold=0.0, direction="greater", n_jobs=1, verbose=False):
    """
    Detect the divergence point of every subject independently.

    Parameters:
    -----------
    series : mapping
        Subject id -> that subject's series (see ``detect_divergence_single``).
    window_width : int
        Positive odd number of consecutive bins required.
    threshold : float, optional
        Divergence level; the comparison is strict.
    direction : str, optional
        "greater" or "less".
    n_jobs : int, optional
        Number of parallel jobs (joblib convention). 1 runs sequentially.
    verbose : bool, optional
        Print progress.

    Returns:
    --------
    points : dict
        Subject id -> DivergencePoint.

    Raises:
    -------
    InvalidConfiguration
        For an invalid window width, threshold, direction or n_jobs.
    MalformedSeries
        If any subject's series is malformed; no partial result is returned.
    """
    window_width = check_window_width(window_width)
    threshold = check_threshold(threshold)
    direction = check_direction(direction)
    n_jobs = check_n_jobs(n_jobs)
    if not isinstance(series, Mapping):
        raise InvalidConfiguration("series must be a mapping from subject id to series")

    subjects = list(series.keys())
    if verbose:
        print(f"Detecting divergence for {len(subjects)} subjects "
              f"(window_width={window_width}, threshold={threshold}, direction={direction})")

    if n_jobs == 1:
        points = [
            detect_divergence_single(series[subject], window_width, threshold, direction, subject)
            for subject in tqdm(subjects, desc="Detecting divergence", disable=not verbose)
        ]
    else:
        points = Parallel(n_jobs=n_jobs, verbose=10 if verbose else 0)(
            delayed(detect_divergence_single)(series[subject], window_width, threshold, direction, subject)
            for subject in subjects
        )

    points = dict(zip(subjects, points))
    if verbose:
        n_diverged = sum(point.diverged for point in points.values())
        print(f"{n_diverged}/{len(points)} subjects diverged")
    return points
