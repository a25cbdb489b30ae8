"""End-to-end tests for the divergence analysis pipeline."""

import pandas as pd
import pytest

from gaze_divergence.divergence import divergence_analysis
from gaze_divergence.divergence.divergence_errors import InsufficientData


def test_run_divergence_analysis(time_bin_df) -> None:
    """Detection and estimation run on a long-format table."""
    diff_df, points, result = divergence_analysis.run_divergence_analysis(
        time_bin_df, "target", "distractor", window_width=3, threshold=0.0,
        direction="greater", n_resamples=500, quantiles=(0.025, 0.975), seed=1,
        n_jobs=1, never_diverged="exclude"
    )

    assert len(diff_df) == 30
    assert {subject: point.time_bin for subject, point in points.items()} == {
        "s01": 150, "s02": 250, "s03": None
    }
    assert result.n_subjects == 2
    assert result.n_excluded == 1
    assert 150 <= result.lower_bound <= result.point_estimate <= result.upper_bound <= 250


def test_run_divergence_analysis_without_divergence(time_bin_df) -> None:
    """InsufficientData carries the per-subject results."""
    flat = time_bin_df.assign(proportion=0.5)

    with pytest.raises(InsufficientData) as excinfo:
        divergence_analysis.run_divergence_analysis(
            flat, "target", "distractor", 3, 0.0, "greater", 100, (0.025, 0.975), 1, 1, "exclude"
        )

    assert set(excinfo.value.points) == {"s01", "s02", "s03"}


def test_main_writes_tables_and_figures(tmp_path, time_bin_df) -> None:
    """The command line entry point saves result tables and figures."""
    data_file = tmp_path / "time_bins.csv"
    time_bin_df.to_csv(data_file, index=False)
    output_dir = tmp_path / "out"

    status = divergence_analysis.main([
        "--data_file", str(data_file), "--output_dir", str(output_dir),
        "--n_resamples", "300", "--n_jobs", "1", "--seed", "3",
    ])

    assert status == 0
    points = pd.read_csv(output_dir / "divergence_points.csv")
    assert points["diverged"].tolist() == [True, True, False]
    summary = pd.read_csv(output_dir / "divergence_estimate.csv")
    assert summary["n_subjects"].iloc[0] == 2
    assert summary["never_diverged"].iloc[0] == "exclude"
    for name in ("divergence_overview", "divergence_bootstrap"):
        assert (output_dir / f"{name}.png").exists()
        assert (output_dir / f"{name}.pdf").exists()


def test_main_impute_policy(tmp_path, time_bin_df) -> None:
    """With imputation every subject contributes to the estimate."""
    data_file = tmp_path / "time_bins.csv"
    time_bin_df.to_csv(data_file, index=False)

    status = divergence_analysis.main([
        "--data_file", str(data_file), "--output_dir", str(tmp_path),
        "--n_resamples", "200", "--n_jobs", "1", "--no_plot",
        "--never_diverged", "impute", "--impute_time", "450",
    ])

    summary = pd.read_csv(tmp_path / "divergence_estimate.csv")
    assert status == 0
    assert summary["n_subjects"].iloc[0] == 3
    assert summary["n_imputed"].iloc[0] == 1


def test_main_reports_insufficient_data(tmp_path, time_bin_df) -> None:
    """Without any divergence the per-subject table is saved and the exit status is 1."""
    data_file = tmp_path / "flat.csv"
    time_bin_df.assign(proportion=0.5).to_csv(data_file, index=False)

    status = divergence_analysis.main([
        "--data_file", str(data_file), "--output_dir", str(tmp_path), "--n_jobs", "1", "--no_plot",
    ])

    assert status == 1
    assert (tmp_path / "divergence_points.csv").exists()
    assert not (tmp_path / "divergence_estimate.csv").exists()


def test_main_requires_data_file(monkeypatch) -> None:
    """Without a data file argparse exits with an error."""
    monkeypatch.setattr(divergence_analysis, "DATA_FILE", None)

    with pytest.raises(SystemExit):
        divergence_analysis.main(["--n_jobs", "1"])
