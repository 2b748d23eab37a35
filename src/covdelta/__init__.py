"""covdelta: LCOV coverage diff reports for pull requests."""

__version__ = "0.1.0"


class CovdeltaError(Exception):
    """Base class for errors raised by covdelta."""
