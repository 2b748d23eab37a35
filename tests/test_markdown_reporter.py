"""Tests for the markdown report renderer (reporters/markdown.py)."""

from __future__ import annotations

import pytest

from covdelta.adapters.coverage.lcov import parse_lcov
from covdelta.analyzers.changes import filter_changed
from covdelta.analyzers.diff import diff
from covdelta.models.coverage import ReportDelta
from covdelta.reporters.markdown import (
    DEFAULT_TITLE,
    RenderOptions,
    collapse_ranges,
    render,
    report_signature,
)


def _lcov(*files: tuple[str, int, int]) -> str:
    sections = []
    for path, hit, found in files:
        lines = [f"SF:{path}"]
        lines.extend(f"DA:{n},{1 if n <= hit else 0}" for n in range(1, found + 1))
        lines.append("end_of_record")
        sections.append("\n".join(lines))
    return "\n".join(sections) + "\n"


@pytest.fixture
def compared() -> ReportDelta:
    """a.js went from 50% to 80%; b.js is new."""
    current = parse_lcov(_lcov(("src/a.js", 8, 10), ("src/b.js", 5, 5)))
    baseline = parse_lcov(_lcov(("src/a.js", 5, 10)))
    return diff(current, baseline)


@pytest.fixture
def many_files() -> ReportDelta:
    files = tuple((f"src/module_{i:03d}.js", i % 7, 7) for i in range(200))
    return diff(parse_lcov(_lcov(*files)))


def _table_lines(body: str) -> list[str]:
    return [line for line in body.splitlines() if line.startswith("|")]


# ── Structure ────────────────────────────────────────────────────


def test_body_starts_with_signature_and_title(compared: ReportDelta) -> None:
    body = render(compared)
    lines = body.splitlines()
    assert lines[0] == report_signature(DEFAULT_TITLE)
    assert lines[1] == f"## {DEFAULT_TITLE}"
    assert body.endswith("*Generated by covdelta*\n")


def test_custom_title(compared: ReportDelta) -> None:
    body = render(compared, RenderOptions(title="Frontend Coverage"))
    assert "## Frontend Coverage" in body
    assert report_signature("Frontend Coverage") in body


def test_title_whitespace_is_collapsed(compared: ReportDelta) -> None:
    body = render(compared, RenderOptions(title="Web\n| x |\n"))
    lines = body.splitlines()
    assert lines[1] == "## Web | x |"
    assert "| x |" not in lines
    assert lines[0] == report_signature("Web\n| x |\n")


def test_summary_line_shows_totals_and_delta(compared: ReportDelta) -> None:
    body = render(compared)
    # 13 of 15 lines now, 5 of 10 before.
    assert "**Lines:** 86.67% (+36.67% 📈)" in body
    assert "**Branches:** 100.00% (0.00%)" in body


def test_rows_show_delta_and_new_marker(compared: ReportDelta) -> None:
    rows = _table_lines(render(compared, RenderOptions(show_uncovered=False)))
    assert rows[0] == "| File | Lines | Δ Lines | Branches | Functions |"
    assert "| `src/a.js` | 80.00% | +30.00% 📈 | 100.00% | 100.00% |" in rows
    assert "| `src/b.js` 🆕 | 100.00% | new | 100.00% | 100.00% |" in rows


def test_no_baseline_has_no_delta_column() -> None:
    delta = diff(parse_lcov(_lcov(("a.js", 1, 2))))
    body = render(delta)
    assert "Δ Lines" not in body
    assert "🆕" not in body
    assert "📈" not in body


def test_regression_is_marked() -> None:
    delta = diff(parse_lcov(_lcov(("a.js", 1, 4))), parse_lcov(_lcov(("a.js", 2, 4))))
    assert "-25.00% 📉" in render(delta)


def test_removed_file_row() -> None:
    current = parse_lcov(_lcov(("a.js", 1, 1)))
    baseline = parse_lcov(_lcov(("a.js", 1, 1), ("gone.js", 1, 2)))
    body = render(diff(current, baseline))
    assert "~~`gone.js`~~" in body
    assert "removed (was 50.00%)" in body


def test_hidden_columns() -> None:
    delta = diff(parse_lcov(_lcov(("a.js", 1, 2))))
    options = RenderOptions(show_branches=False, show_functions=False, show_uncovered=False)
    rows = _table_lines(render(delta, options))
    assert rows[0] == "| File | Lines |"
    assert "**Branches:**" not in render(delta, options)


def test_merge_summary_line(compared: ReportDelta) -> None:
    body = render(compared, RenderOptions(head="feature", base="main"))
    assert "Coverage after merging `feature` into `main` will be **86.67%**" in body


def test_pipe_in_path_is_escaped() -> None:
    delta = diff(parse_lcov(_lcov(("weird|name.js", 1, 1))))
    assert "`weird\\|name.js`" in render(delta)


def test_empty_report_message() -> None:
    assert "_No files with coverage data._" in render(diff(parse_lcov("")))


def test_changed_only_empty_message(compared: ReportDelta) -> None:
    body = render(filter_changed(compared, set()), RenderOptions(changed_only=True))
    assert "_No changed files with coverage data._" in body
    assert "**Lines:** 86.67%" in body


# ── Uncovered lines ──────────────────────────────────────────────


def test_collapse_ranges() -> None:
    assert collapse_ranges([1, 2, 3, 5, 7, 8]) == [(1, 3), (5, 5), (7, 8)]
    assert collapse_ranges([]) == []
    assert collapse_ranges([4, 4, 3]) == [(3, 4)]


def test_uncovered_lines_are_linked() -> None:
    delta = diff(parse_lcov(_lcov(("src/a.js", 2, 5))))
    body = render(delta, RenderOptions(blob_url="https://github.com/o/r/blob/abc/"))
    assert "[3-5](https://github.com/o/r/blob/abc/src/a.js#L3-L5)" in body


def test_uncovered_line_links_encode_the_path() -> None:
    delta = diff(parse_lcov(_lcov(("src/my app (v2).js", 0, 1))))
    body = render(delta, RenderOptions(blob_url="https://github.com/o/r/blob/abc/"))
    assert "[1](https://github.com/o/r/blob/abc/src/my%20app%20%28v2%29.js#L1)" in body


def test_uncovered_lines_without_links() -> None:
    text = "SF:a.js\nDA:1,0\nDA:2,1\nDA:3,0\nDA:4,0\nend_of_record\n"
    assert "| 1, 3-4 |" in render(diff(parse_lcov(text)))


def test_uncovered_ranges_are_capped() -> None:
    lines = "\n".join(f"DA:{n},{n % 2}" for n in range(1, 41))
    body = render(diff(parse_lcov(f"SF:a.js\n{lines}\nend_of_record\n")))
    assert "18, 20, …" in body
    assert "22," not in body


# ── Signature ────────────────────────────────────────────────────


def test_signature_is_stable_and_keyed_by_title() -> None:
    assert report_signature("Coverage Report") == report_signature("Coverage Report")
    assert report_signature("Coverage Report") != report_signature("Backend")
    assert report_signature("Coverage Report").startswith("<!-- covdelta:coverage-report:")


# ── Truncation ───────────────────────────────────────────────────


def test_unbounded_render_keeps_every_row(many_files: ReportDelta) -> None:
    body = render(many_files)
    assert len(_table_lines(body)) == 2 + 200
    assert "omitted" not in body


def test_truncates_at_row_boundary(many_files: ReportDelta) -> None:
    full = render(many_files)
    budget = len(full) // 2

    body = render(many_files, max_chars=budget)

    assert len(body) <= budget
    rows = _table_lines(body)[2:]
    assert 0 < len(rows) < 200
    assert rows == _table_lines(full)[2 : 2 + len(rows)]
    assert f"_{200 - len(rows)} files omitted_" in body
    assert all(line.endswith("|") for line in _table_lines(body))


def test_truncation_keeps_as_many_rows_as_fit(many_files: ReportDelta) -> None:
    full = render(many_files)
    body = render(many_files, max_chars=len(full) - 1)
    assert len(_table_lines(body)) == 2 + 199
    assert "_1 file omitted_" in body


def test_budget_larger_than_report_is_a_no_op(compared: ReportDelta) -> None:
    full = render(compared)
    assert render(compared, max_chars=len(full)) == full


@pytest.mark.parametrize("budget", [0, 1, 10, 50, 120, 400, 1000, 5000])
def test_render_never_exceeds_budget(many_files: ReportDelta, budget: int) -> None:
    assert len(render(many_files, max_chars=budget)) <= budget
