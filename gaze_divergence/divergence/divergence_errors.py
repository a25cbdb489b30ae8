"""
Errors raised by divergence detection and estimation.
"""


class DivergenceError(ValueError):
    """Base class for all divergence analysis errors."""


class MalformedSeries(DivergenceError):
    """A subject's series has duplicate or non-orderable time bins."""


class InvalidConfiguration(DivergenceError):
    """An analysis parameter is out of range or of the wrong type."""


class InsufficientData(DivergenceError):
    """No subject with a defined divergence point reached the estimator."""
