"""Coverage adapters producing the unified coverage model."""

from covdelta.adapters.coverage.lcov import (
    LcovAdapter,
    LcovLine,
    LcovLineKind,
    classify_line,
    parse_lcov,
)

__all__ = [
    "LcovAdapter",
    "LcovLine",
    "LcovLineKind",
    "classify_line",
    "parse_lcov",
]
