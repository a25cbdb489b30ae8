"""
Module for loading binned looking data and shaping divergence results into tables.
"""
import os
from collections.abc import Mapping

import numpy as np
import pandas as pd
from scipy.stats import skew

from gaze_divergence.divergence.divergence_errors import MalformedSeries
from gaze_divergence.divergence.divergence_params import (
    SUBJECT_COL, TIME_COL, CONDITION_COL, VALUE_COL, DIFFERENCE_COL
)
from gaze_divergence.divergence.divergence_stats import partition_points


def _require_columns(df, columns):
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise KeyError(f"Missing required columns: {missing}. Available: {list(df.columns)}")


def load_time_bin_data(data_file, subject_col=SUBJECT_COL, time_col=TIME_COL,
                       condition_col=CONDITION_COL, value_col=VALUE_COL):
    """
    Load a long-format table of binned looking proportions.

    Parameters:
    -----------
    data_file : str
        Path to a CSV file with one row per subject, time bin and condition.
    subject_col, time_col, condition_col, value_col : str
        Column names.

    Returns:
    --------
    time_bin_df : pd.DataFrame
        The loaded table.
    """
    if not os.path.exists(data_file):
        raise FileNotFoundError(f"Data file not found: {data_file}")

    time_bin_df = pd.read_csv(data_file)
    _require_columns(time_bin_df, [subject_col, time_col, condition_col, value_col])
    print(f"Loaded {len(time_bin_df)} rows from {data_file}")
    print(f"Subjects: {time_bin_df[subject_col].nunique()}, "
          f"time bins: {time_bin_df[time_col].nunique()}, "
          f"conditions: {sorted(time_bin_df[condition_col].astype(str).unique())}")
    return time_bin_df


def make_difference_data(time_bin_df, condition_a, condition_b, subject_col=SUBJECT_COL,
                         time_col=TIME_COL, condition_col=CONDITION_COL, value_col=VALUE_COL,
                         difference_col=DIFFERENCE_COL, time_bins=None):
    """
    Contrast two conditions per subject and time bin.

    Parameters:
    -----------
    time_bin_df : pd.DataFrame
        Long-format table with subject, time bin, condition and value columns.
    condition_a, condition_b : str
        Conditions to contrast; the difference is A minus B.
    time_bins : sequence, optional
        Full grid of time bins expected for every subject. Defaults to the
        union of the bins present in the table, which cannot reveal a bin
        that no subject has.

    Returns:
    --------
    diff_df : pd.DataFrame
        Columns subject, time bin and difference, sorted by subject and time.
        The difference is NaN where either condition is missing, including
        time bins that a subject has no rows for at all.
    """
    _require_columns(time_bin_df, [subject_col, time_col, condition_col, value_col])
    for condition in (condition_a, condition_b):
        if condition not in set(time_bin_df[condition_col]):
            raise KeyError(f"Condition {condition!r} not found in column {condition_col!r}")

    subset = time_bin_df[time_bin_df[condition_col].isin([condition_a, condition_b])]
    try:
        wide = subset.pivot(index=[subject_col, time_col], columns=condition_col, values=value_col)
    except ValueError as e:
        raise MalformedSeries(
            f"duplicate rows for the same {subject_col}, {time_col} and {condition_col}"
        ) from e

    if time_bins is None:
        time_bins = subset[time_col].unique()
    # every subject gets every time bin; bins without rows become NaN instead of vanishing
    full_index = pd.MultiIndex.from_product(
        [sorted(subset[subject_col].unique()), sorted(time_bins)],
        names=[subject_col, time_col]
    )
    wide = wide.reindex(index=full_index, columns=[condition_a, condition_b])
    diff_df = (wide[condition_a] - wide[condition_b]).rename(difference_col).reset_index()
    diff_df = diff_df.sort_values([subject_col, time_col], ignore_index=True)
    n_missing = int(diff_df[difference_col].isna().sum())
    print(f"Difference {condition_a} - {condition_b}: {len(diff_df)} bins, {n_missing} missing")
    return diff_df


def series_by_subject(diff_df, subject_col=SUBJECT_COL, time_col=TIME_COL,
                      difference_col=DIFFERENCE_COL):
    """
    Split a difference table into one series per subject.

    Duplicate time bins are kept so that detection can reject them.

    Returns:
    --------
    series : dict
        Subject id -> pd.Series of differences indexed by time bin.
    """
    _require_columns(diff_df, [subject_col, time_col, difference_col])
    return {
        subject: group.set_index(time_col)[difference_col]
        for subject, group in diff_df.groupby(subject_col, sort=True)
    }


def divergence_points_to_frame(points, subject_col=SUBJECT_COL):
    """
    Tabulate divergence points, one row per subject.

    Never-diverged subjects get ``diverged=False`` and a missing time.
    """
    if isinstance(points, Mapping):
        points = list(points.values())
    rows = [
        {
            subject_col: point.subject,
            "diverged": point.diverged,
            "divergence_time": point.time_bin if point.diverged else np.nan,
        }
        for point in points
    ]
    return pd.DataFrame(rows, columns=[subject_col, "diverged", "divergence_time"])


def estimate_to_frame(estimate, points=None):
    """
    Tabulate a divergence estimate as a single-row DataFrame.

    Parameters:
    -----------
    estimate : DivergenceEstimate
    points : mapping or sequence of DivergencePoint, optional
        When given, the raw mean, median and skewness of the observed
        divergence times (imputed subjects left out) are added.
    """
    row = {
        "lower_bound": estimate.lower_bound,
        "point_estimate": estimate.point_estimate,
        "upper_bound": estimate.upper_bound,
        "n_subjects": estimate.n_subjects,
        "n_excluded": estimate.n_excluded,
        "n_imputed": estimate.n_imputed,
        "n_resamples": estimate.n_resamples,
        "lower_quantile": estimate.lower_quantile,
        "upper_quantile": estimate.upper_quantile,
        "never_diverged": estimate.never_diverged,
    }
    if points is not None:
        defined, _ = partition_points(points)
        row["raw_mean"] = float(np.mean(defined)) if len(defined) else np.nan
        row["raw_median"] = float(np.median(defined)) if len(defined) else np.nan
        # right skew is expected: divergence is bounded below by the window start
        row["skewness"] = float(skew(defined)) if len(defined) > 2 else np.nan
    return pd.DataFrame([row])
