"""
Figures for divergence results: difference curves with per-subject divergence
markers and the population interval, and the bootstrap distribution.
"""
import os
from collections.abc import Mapping

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from gaze_divergence.divergence.divergence_params import (
    SUBJECT_COL, TIME_COL, DIFFERENCE_COL
)


def plot_divergence_overview(diff_df, points, estimate, output_dir, threshold=0.0,
                             subject_col=SUBJECT_COL, time_col=TIME_COL,
                             difference_col=DIFFERENCE_COL, fname="divergence_overview"):
    """
    Plot the condition difference over time with divergence markers.

    Parameters:
    -----------
    diff_df : pd.DataFrame
        Long table with subject, time bin and difference columns.
    points : mapping or sequence of DivergencePoint
        Per-subject divergence points; each diverged subject gets a marker.
    estimate : DivergenceEstimate or None
        Population estimate drawn as a shaded interval, if given.
    output_dir : str
        Directory for the PNG and PDF files.
    threshold : float
        Divergence threshold drawn as a horizontal line.

    Returns:
    --------
    fig_path : str
        Path of the saved figure without extension.
    """
    if isinstance(points, Mapping):
        points = list(points.values())

    sns.set_context("talk")
    fig, ax = plt.subplots(figsize=(12, 8), dpi=150)

    sns.lineplot(
        data=diff_df, x=time_col, y=difference_col, units=subject_col,
        estimator=None, color="grey", alpha=0.3, linewidth=1, ax=ax
    )
    sns.lineplot(
        data=diff_df, x=time_col, y=difference_col, color="black",
        estimator="mean", errorbar=None, linewidth=3, ax=ax, label="mean difference"
    )

    ax.axhline(threshold, color="black", linestyle="--", zorder=1)

    diverged_times = [point.time_bin for point in points if point.diverged]
    palette = sns.color_palette("magma", max(len(diverged_times), 1))
    for color, t in zip(palette, sorted(diverged_times)):
        ax.axvline(t, color=color, alpha=0.6, linewidth=1)
    # legend entry for the subject markers
    ax.plot([], [], color=palette[0], label=f"subject divergence (n={len(diverged_times)})")

    if estimate is not None:
        ax.axvspan(estimate.lower_bound, estimate.upper_bound, color="tab:blue", alpha=0.15,
                   label=f"{estimate.lower_quantile:g}-{estimate.upper_quantile:g} interval")
        ax.axvline(estimate.point_estimate, color="tab:blue", linewidth=3, label="mean divergence")

    ax.set_xlabel("time [ms]")
    ax.set_ylabel("looking proportion difference")
    sns.despine(ax=ax)
    ax.legend(frameon=False)
    plt.tight_layout()

    os.makedirs(output_dir, exist_ok=True)
    fig_path = os.path.join(output_dir, fname)
    print(f"Saving divergence overview to {fig_path}.png")
    fig.savefig(fig_path + ".png")
    fig.savefig(fig_path + ".pdf")
    plt.close(fig)
    return fig_path


def plot_bootstrap_distribution(estimate, output_dir, fname="divergence_bootstrap"):
    """
    Histogram of the resampled means with the interval and point estimate.
    """
    if estimate.resampled_means is None:
        raise ValueError("estimate carries no resampled means to plot")

    sns.set_context("talk")
    fig, ax = plt.subplots(figsize=(10, 6), dpi=150)
    sns.histplot(np.asarray(estimate.resampled_means), bins=50, color="grey", ax=ax)
    for bound in (estimate.lower_bound, estimate.upper_bound):
        ax.axvline(bound, color="tab:blue", linestyle="--")
    ax.axvline(estimate.point_estimate, color="tab:blue", linewidth=3)
    ax.set_xlabel("mean divergence time [ms]")
    ax.set_ylabel("resamples")
    ax.set_title(f"n={estimate.n_subjects} subjects, {estimate.n_resamples} resamples")
    sns.despine(ax=ax)
    plt.tight_layout()

    os.makedirs(output_dir, exist_ok=True)
    fig_path = os.path.join(output_dir, fname)
    print(f"Saving bootstrap distribution to {fig_path}.png")
    fig.savefig(fig_path + ".png")
    fig.savefig(fig_path + ".pdf")
    plt.close(fig)
    return fig_path
