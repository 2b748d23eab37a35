"""Data models for covdelta."""

from covdelta.models.coverage import (
    CoverageCounts,
    CoverageModel,
    FileDelta,
    FileSummary,
    Metric,
    ReportDelta,
    ReportSummary,
    SourceFileRecord,
    coverage_percentage,
)

__all__ = [
    "CoverageCounts",
    "CoverageModel",
    "FileDelta",
    "FileSummary",
    "Metric",
    "ReportDelta",
    "ReportSummary",
    "SourceFileRecord",
    "coverage_percentage",
]
