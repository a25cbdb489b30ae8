"""Tests for run-level configuration."""

import os

from gaze_divergence.config import configure_run


def test_configure_run_defaults_output_dir() -> None:
    """Without an output directory the results folder below the cwd is used."""
    config = configure_run()

    assert config["DATA_FILE"] is None
    assert config["OUTPUT_DIR"] == os.path.join(os.getcwd(), "results", "divergence")
    assert config["DEBUG"] is False


def test_configure_run_keeps_explicit_values(capsys) -> None:
    """Explicit settings are returned and printed in debug mode."""
    config = configure_run(data_file="bins.csv", output_dir="out", debug=True)

    assert config["DATA_FILE"] == "bins.csv"
    assert config["OUTPUT_DIR"] == "out"
    assert "DATA_FILE: bins.csv" in capsys.readouterr().out
