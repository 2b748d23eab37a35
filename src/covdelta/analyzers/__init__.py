"""Coverage analyzers: aggregation, diffing and change filtering."""

from covdelta.analyzers.changes import filter_changed
from covdelta.analyzers.coverage import summarize, summarize_file
from covdelta.analyzers.diff import diff, order_file_deltas

__all__ = [
    "diff",
    "filter_changed",
    "order_file_deltas",
    "summarize",
    "summarize_file",
]
