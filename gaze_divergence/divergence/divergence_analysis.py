#!/usr/bin/env python3
"""
Main script for estimating when looking behaviour diverges between two conditions.
Loads binned looking proportions, detects one divergence time per subject and
bootstraps an interval for the population mean divergence time.

Usage:
    python divergence_analysis.py --data_file time_bins.csv --condition_a target --condition_b distractor
"""

import os
import sys
import argparse

from gaze_divergence.config import DATA_FILE, OUTPUT_DIR
from gaze_divergence.divergence.divergence_dataloader import (
    load_time_bin_data, make_difference_data, series_by_subject,
    divergence_points_to_frame, estimate_to_frame
)
from gaze_divergence.divergence.divergence_errors import InsufficientData
from gaze_divergence.divergence.divergence_functions import detect
from gaze_divergence.divergence.divergence_stats import estimate
from gaze_divergence.divergence.divergence_params import (
    CONDITION_A, CONDITION_B, WINDOW_WIDTH, THRESHOLD, DIRECTION, N_RESAMPLES,
    QUANTILES, RANDOM_STATE, N_JOBS, NEVER_DIVERGED, IMPUTE_TIME
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Per-subject divergence detection with bootstrapped population interval")
    parser.add_argument("--data_file", default=DATA_FILE, help="Long-format CSV of binned looking proportions")
    parser.add_argument("--output_dir", default=OUTPUT_DIR, help="Directory for result tables and figures")
    parser.add_argument("--condition_a", default=CONDITION_A, help="Condition expected to be looked at more")
    parser.add_argument("--condition_b", default=CONDITION_B, help="Baseline or competing condition")
    parser.add_argument("--window_width", type=int, default=WINDOW_WIDTH, help="Consecutive bins that must exceed the threshold")
    parser.add_argument("--threshold", type=float, default=THRESHOLD, help="Divergence threshold on the difference")
    parser.add_argument("--direction", choices=["greater", "less"], default=DIRECTION)
    parser.add_argument("--n_resamples", type=int, default=N_RESAMPLES, help="Number of bootstrap resamples")
    parser.add_argument("--quantiles", type=float, nargs=2, default=list(QUANTILES), metavar=("LOWER", "UPPER"))
    parser.add_argument("--seed", type=int, default=RANDOM_STATE, help="Random seed for resampling")
    parser.add_argument("--n_jobs", type=int, default=N_JOBS, help="Parallel jobs (-1 all cores, -2 all but one)")
    parser.add_argument("--never_diverged", choices=["exclude", "impute"], default=NEVER_DIVERGED,
                        help="How subjects without divergence enter the interval")
    parser.add_argument("--impute_time", type=float, default=IMPUTE_TIME,
                        help="Time assigned to never-diverged subjects with --never_diverged impute")
    parser.add_argument("--no_plot", action="store_true", help="Skip the figures")
    args = parser.parse_args(argv)
    if args.data_file is None:
        parser.error("no data file given (use --data_file or set GAZE_DIVERGENCE_DATA_FILE)")
    return args


def run_divergence_analysis(time_bin_df, condition_a, condition_b, window_width, threshold,
                            direction, n_resamples, quantiles, seed, n_jobs, never_diverged,
                            impute_time=None):
    """
    Run detection and estimation on a long-format time-bin table.

    Returns:
    --------
    diff_df : pd.DataFrame
        Condition difference per subject and time bin.
    points : dict
        Subject id -> DivergencePoint.
    result : DivergenceEstimate
        Population estimate.

    Raises:
    -------
    InsufficientData
        If no subject diverged. ``diff_df`` and ``points`` are attached to
        the exception as ``diff_df`` and ``points``.
    """
    diff_df = make_difference_data(time_bin_df, condition_a, condition_b)
    series = series_by_subject(diff_df)
    points = detect(series, window_width, threshold=threshold, direction=direction,
                    n_jobs=n_jobs, verbose=True)
    try:
        result = estimate(points, n_resamples, quantiles[0], quantiles[1], random_state=seed,
                          never_diverged=never_diverged, impute_time=impute_time,
                          n_jobs=n_jobs, verbose=True)
    except InsufficientData as e:
        e.diff_df = diff_df
        e.points = points
        raise
    return diff_df, points, result


def main(argv=None):
    """Main function to run the divergence analysis."""
    args = parse_args(argv)

    print(f"Contrast: {args.condition_a} - {args.condition_b}")
    print(f"Window width: {args.window_width} bins, threshold: {args.threshold}, direction: {args.direction}")
    print(f"Resamples: {args.n_resamples}, quantiles: {tuple(args.quantiles)}, seed: {args.seed}")
    print(f"Never-diverged policy: {args.never_diverged}")

    os.makedirs(args.output_dir, exist_ok=True)
    print(f"Output directory: {args.output_dir}")

    time_bin_df = load_time_bin_data(args.data_file)
    try:
        diff_df, points, result = run_divergence_analysis(
            time_bin_df, args.condition_a, args.condition_b, args.window_width,
            args.threshold, args.direction, args.n_resamples, args.quantiles,
            args.seed, args.n_jobs, args.never_diverged, args.impute_time
        )
    except InsufficientData as e:
        points_file = os.path.join(args.output_dir, "divergence_points.csv")
        divergence_points_to_frame(e.points).to_csv(points_file, index=False)
        print(f"Saved divergence points to {points_file}")
        print(f"Estimate failed: {e}")
        return 1

    points_file = os.path.join(args.output_dir, "divergence_points.csv")
    divergence_points_to_frame(points).to_csv(points_file, index=False)
    print(f"Saved divergence points to {points_file}")

    estimate_file = os.path.join(args.output_dir, "divergence_estimate.csv")
    estimate_to_frame(result, points).to_csv(estimate_file, index=False)
    print(f"Saved divergence estimate to {estimate_file}")

    if not args.no_plot:
        from gaze_divergence.divergence.divergence_plotting import (
            plot_divergence_overview, plot_bootstrap_distribution
        )
        plot_divergence_overview(diff_df, points, result, args.output_dir, threshold=args.threshold)
        plot_bootstrap_distribution(result, args.output_dir)

    print("Analysis complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
