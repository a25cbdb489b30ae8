"""
Parameter definitions for divergence analysis.
"""

# Input table columns
SUBJECT_COL = "subject"
TIME_COL = "time_bin"  # bin onset in ms, as produced by the upstream binning
CONDITION_COL = "condition"
VALUE_COL = "proportion"
DIFFERENCE_COL = "difference"

# Conditions to contrast (difference = A - B)
CONDITION_A = "target"
CONDITION_B = "distractor"

# Detection parameters
WINDOW_WIDTH = 3  # consecutive bins that must all exceed the threshold
THRESHOLD = 0.0
DIRECTION = "greater"  # "greater" or "less"

# Bootstrap parameters
N_RESAMPLES = 5000
QUANTILES = (0.025, 0.975)
RANDOM_STATE = 42
N_JOBS = -2  # -1 for all cores, -2 for all but one
NEVER_DIVERGED = "exclude"  # "exclude" or "impute"
IMPUTE_TIME = None  # used with "impute"; set to the end of the analysis window
