import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def example_series():
    """Difference signal that diverges at t=3 with a window of 3."""
    return {0: 0.6, 1: 0.7, 2: -0.1, 3: 0.55, 4: 0.6, 5: 0.65}


@pytest.fixture
def time_bin_df():
    """Long-format proportions for three subjects and two conditions."""
    time_bins = np.arange(0, 500, 50)
    target = {
        "s01": [0.5, 0.5, 0.4, 0.6, 0.7, 0.8, 0.8, 0.9, 0.9, 0.9],  # diverges at 150
        "s02": [0.5, 0.5, 0.5, 0.5, 0.5, 0.6, 0.7, 0.8, 0.8, 0.8],  # diverges at 250
        "s03": [0.5, 0.4, 0.5, 0.4, 0.5, 0.4, 0.5, 0.4, 0.5, 0.4],  # never
    }
    rows = []
    for subject, values in target.items():
        for t, v in zip(time_bins, values):
            rows.append({"subject": subject, "time_bin": t, "condition": "target", "proportion": v})
            rows.append({"subject": subject, "time_bin": t, "condition": "distractor", "proportion": 0.5})
    return pd.DataFrame(rows)
