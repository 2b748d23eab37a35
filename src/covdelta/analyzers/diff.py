"""Coverage diff engine: compare a current coverage model against a baseline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from covdelta.analyzers.coverage import summarize
from covdelta.models.coverage import FileDelta, ReportDelta

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covdelta.models.coverage import CoverageModel

logger = logging.getLogger(__name__)


def _regression_first(row: FileDelta) -> tuple[int, str]:
    delta = row.line_delta
    return (0 if delta is not None and delta < 0 else 1, row.path)


def order_file_deltas(rows: Iterable[FileDelta], *, has_baseline: bool) -> list[FileDelta]:
    """Order rows by significance.

    With a baseline, files whose line coverage dropped come first; each group
    is sorted by path. Without a baseline rows are sorted by path only.
    """
    if has_baseline:
        return sorted(rows, key=_regression_first)
    return sorted(rows, key=lambda row: row.path)


def diff(current: CoverageModel, baseline: CoverageModel | None = None) -> ReportDelta:
    """Build the per-file and whole-report comparison of two coverage models.

    Args:
        current: Coverage of the revision under test.
        baseline: Coverage of the base revision, if available.

    Returns:
        A :class:`ReportDelta` with one row per path present in either model.
        Files missing from the baseline carry no delta; they are reported as
        new rather than as improvements.
    """
    current_files, current_total = summarize(current)
    if baseline is not None:
        baseline_files, baseline_total = summarize(baseline)
    else:
        baseline_files, baseline_total = {}, None

    records = {record.path: record for record in current}
    rows: list[FileDelta] = []
    for path in current_files.keys() | baseline_files.keys():
        record = records.get(path)
        rows.append(
            FileDelta(
                path=path,
                current=current_files.get(path),
                baseline=baseline_files.get(path),
                uncovered_lines=record.uncovered_lines if record is not None else (),
            )
        )

    ordered = order_file_deltas(rows, has_baseline=baseline is not None)
    logger.debug(
        "Diffed %d current and %d baseline files into %d rows",
        len(current_files),
        len(baseline_files),
        len(ordered),
    )
    return ReportDelta(current=current_total, baseline=baseline_total, files=tuple(ordered))
