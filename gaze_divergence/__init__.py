"""
Divergence-time estimation for binned eye-tracking data.
"""

__version__ = "0.1.0"
