"""
errors.py – the few exceptions that cross package boundaries
"""


class ConfigError(ValueError):
    """Bad startup configuration – the process must refuse to run."""


class FeedError(RuntimeError):
    """Indicator / price feed could not deliver a reading."""


class InsufficientHistory(FeedError):
    """Not enough closed bars yet – distinct from a zero-valued reading."""
