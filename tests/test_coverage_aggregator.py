"""Tests for coverage aggregation (analyzers/coverage.py) and the summary models."""

from __future__ import annotations

import pytest

from covdelta.adapters.coverage.lcov import parse_lcov
from covdelta.analyzers.coverage import summarize, summarize_file
from covdelta.models.coverage import (
    CoverageModel,
    FileSummary,
    Metric,
    ReportSummary,
    SourceFileRecord,
    coverage_percentage,
)


def test_coverage_percentage() -> None:
    assert coverage_percentage(4, 5) == pytest.approx(80.0)
    assert coverage_percentage(0, 3) == 0.0


def test_nothing_found_counts_as_fully_covered() -> None:
    assert coverage_percentage(0, 0) == 100.0


def test_summarize_file_counts_distinct_units() -> None:
    record = SourceFileRecord(
        path="a.js",
        lines={1: 3, 2: 0, 3: 1},
        branches={(1, "0,0"): 1, (1, "0,1"): 0},
        functions={"f": 2, "g": 0, "h": 0},
    )

    summary = summarize_file(record)

    assert summary == FileSummary(
        lines_found=3,
        lines_hit=2,
        branches_found=2,
        branches_hit=1,
        functions_found=3,
        functions_hit=1,
    )
    assert summary.line_percentage == pytest.approx(200 / 3)
    assert summary.branch_percentage == pytest.approx(50.0)
    assert summary.function_percentage == pytest.approx(100 / 3)


def test_empty_record_is_fully_covered() -> None:
    summary = summarize_file(SourceFileRecord(path="empty.js"))
    for metric in Metric:
        assert summary.percentage(metric) == 100.0


def test_hit_never_exceeds_found() -> None:
    model = parse_lcov("SF:a.js\nDA:1,9\nDA:1,9\nDA:2,0\nFNDA:4,f\nend_of_record\n")
    per_file, total = summarize(model)
    summary = per_file["a.js"]
    assert summary.lines_hit <= summary.lines_found
    assert summary.functions_hit <= summary.functions_found
    assert total.lines_hit <= total.lines_found


def test_report_summary_is_elementwise_sum() -> None:
    model = CoverageModel(
        files=(
            SourceFileRecord(path="a.js", lines={1: 1, 2: 0}, functions={"f": 1}),
            SourceFileRecord(path="b.js", lines={1: 0}, branches={(1, "0,0"): 5}),
        )
    )

    per_file, total = summarize(model)

    assert list(per_file) == ["a.js", "b.js"]
    assert total == ReportSummary.total(per_file.values())
    assert total.lines_found == 3
    assert total.lines_hit == 1
    assert total.branches_found == 1
    assert total.branches_hit == 1
    assert total.functions_found == 1
    assert total.functions_hit == 1


def test_empty_model_summary() -> None:
    per_file, total = summarize(CoverageModel())
    assert per_file == {}
    assert total == ReportSummary()
    assert total.line_percentage == 100.0
