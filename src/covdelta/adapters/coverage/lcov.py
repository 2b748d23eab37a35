"""LCOV tracefile adapter.

Parses the ``.info`` text format written by lcov/geninfo, Istanbul/nyc,
c8, cargo-llvm-cov and friends into a :class:`CoverageModel`.

Every input line is first classified into a closed set of record kinds
(:class:`LcovLineKind`); kinds the model does not use (``TN``, ``LF``, ``LH``,
``FNF``, ``BRF``, ``VER`` ...) are classified as ``UNKNOWN`` and skipped.
Parsing never fails: malformed numbers become 0 and truncated sections are
kept as far as they go.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from covdelta.models.coverage import CoverageModel, SourceFileRecord

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_LCOV_END = "end_of_record"
_LCOV_DA_PARTS = 2
_LCOV_BRDA_PARTS = 4
_LCOV_FN_PARTS = 2
_LCOV_NOT_TAKEN = "-"


class LcovLineKind(Enum):
    """Record line kinds understood by the parser."""

    SOURCE_FILE = "SF"
    LINE_DATA = "DA"
    BRANCH_DATA = "BRDA"
    FUNCTION = "FN"
    FUNCTION_DATA = "FNDA"
    END_OF_RECORD = _LCOV_END
    UNKNOWN = "?"


_KINDS_BY_TAG = {
    kind.value: kind
    for kind in LcovLineKind
    if kind not in (LcovLineKind.END_OF_RECORD, LcovLineKind.UNKNOWN)
}


@dataclass(frozen=True)
class LcovLine:
    """One classified LCOV line: its kind and the text after ``TAG:``."""

    kind: LcovLineKind
    value: str = ""


def classify_line(raw: str) -> LcovLine:
    """Classify a raw LCOV line. Never raises."""
    line = raw.strip()
    if line == _LCOV_END:
        return LcovLine(LcovLineKind.END_OF_RECORD)
    tag, sep, value = line.partition(":")
    if not sep:
        return LcovLine(LcovLineKind.UNKNOWN, line)
    kind = _KINDS_BY_TAG.get(tag.strip(), LcovLineKind.UNKNOWN)
    return LcovLine(kind, value.strip())


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def _to_hits(text: str) -> int:
    if text.strip() == _LCOV_NOT_TAKEN:
        return 0
    return max(0, _to_int(text))


def _pad(parts: list[str], size: int) -> list[str]:
    return parts + [""] * (size - len(parts))


# ── Record accumulation ──────────────────────────────────────────


@dataclass
class _RecordBuilder:
    path: str
    lines: dict[int, int] = field(default_factory=dict)
    branches: dict[tuple[int, str], int] = field(default_factory=dict)
    functions: dict[str, int] = field(default_factory=dict)
    function_lines: dict[str, int] = field(default_factory=dict)

    def apply(self, entry: LcovLine) -> None:
        """Fold one data line into the section; the last duplicate wins."""
        if entry.kind is LcovLineKind.LINE_DATA:
            # DA:<line>,<hits>[,<checksum>]
            line, hits = _pad(entry.value.split(","), _LCOV_DA_PARTS)[:_LCOV_DA_PARTS]
            self.lines[_to_int(line)] = _to_hits(hits)
        elif entry.kind is LcovLineKind.BRANCH_DATA:
            # BRDA:<line>,<block>,<branch>,<taken>
            parts = _pad(entry.value.split(",", _LCOV_BRDA_PARTS - 1), _LCOV_BRDA_PARTS)
            line, block, branch, taken = parts
            branch_id = f"{block.strip()},{branch.strip()}"
            self.branches[(_to_int(line), branch_id)] = _to_hits(taken)
        elif entry.kind is LcovLineKind.FUNCTION:
            # FN:<line>,<name>  (names may contain commas)
            line, name = _pad(entry.value.split(",", 1), _LCOV_FN_PARTS)
            name = name.strip()
            self.function_lines[name] = _to_int(line)
            self.functions.setdefault(name, 0)
        elif entry.kind is LcovLineKind.FUNCTION_DATA:
            # FNDA:<hits>,<name>
            hits, name = _pad(entry.value.split(",", 1), _LCOV_FN_PARTS)
            self.functions[name.strip()] = _to_hits(hits)

    def merge(self, other: _RecordBuilder) -> None:
        """Add the counts of a later section for the same file."""
        for line, hits in other.lines.items():
            self.lines[line] = self.lines.get(line, 0) + hits
        for key, hits in other.branches.items():
            self.branches[key] = self.branches.get(key, 0) + hits
        for name, hits in other.functions.items():
            self.functions[name] = self.functions.get(name, 0) + hits
        for name, line in other.function_lines.items():
            self.function_lines.setdefault(name, line)

    def build(self) -> SourceFileRecord:
        return SourceFileRecord(
            path=self.path,
            lines=dict(self.lines),
            branches=dict(self.branches),
            functions=dict(self.functions),
            function_lines=dict(self.function_lines),
        )


def _close_section(records: dict[str, _RecordBuilder], section: _RecordBuilder | None) -> None:
    if section is None:
        return
    if not section.path:
        logger.debug("Skipping LCOV section without a source file path")
        return
    existing = records.get(section.path)
    if existing is None:
        records[section.path] = section
    else:
        logger.debug("Merging repeated LCOV section for %s", section.path)
        existing.merge(section)


def parse_lcov(text: str, *, normalizer: Callable[[str], str] | None = None) -> CoverageModel:
    """Parse LCOV *text* into a :class:`CoverageModel`.

    Args:
        text: Raw tracefile contents. Any string is accepted.
        normalizer: Optional path normalizer applied to every ``SF`` path.

    Returns:
        One record per source file, in the order files first appear.
    """
    records: dict[str, _RecordBuilder] = {}
    section: _RecordBuilder | None = None

    for raw_line in text.splitlines():
        entry = classify_line(raw_line)
        if entry.kind is LcovLineKind.SOURCE_FILE:
            # A new SF implicitly closes an unterminated section.
            _close_section(records, section)
            path = normalizer(entry.value) if normalizer else entry.value
            section = _RecordBuilder(path=path)
        elif entry.kind is LcovLineKind.END_OF_RECORD:
            _close_section(records, section)
            section = None
        elif section is not None and entry.kind is not LcovLineKind.UNKNOWN:
            section.apply(entry)

    _close_section(records, section)
    return CoverageModel(files=tuple(builder.build() for builder in records.values()))


# ── Adapter ──────────────────────────────────────────────────────


class LcovAdapter:
    """Adapter turning LCOV tracefiles into the unified coverage model."""

    def __init__(self, normalizer: Callable[[str], str] | None = None) -> None:
        """Initialize the adapter.

        Args:
            normalizer: Path normalizer applied to every source file path.
        """
        self._normalizer = normalizer

    @property
    def name(self) -> str:
        return "lcov"

    def parse(self, text: str) -> CoverageModel:
        """Parse LCOV text into a :class:`CoverageModel`."""
        model = parse_lcov(text, normalizer=self._normalizer)
        logger.debug("Parsed %d source files from LCOV data", len(model))
        return model

    def parse_file(self, coverage_file: Path) -> CoverageModel:
        """Parse an LCOV file; a missing or unreadable file yields an empty model."""
        if not coverage_file.exists():
            logger.warning("Coverage file does not exist: %s", coverage_file)
            return CoverageModel()
        try:
            return self.parse(coverage_file.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.error("Failed to read LCOV file %s: %s", coverage_file, e)
            return CoverageModel()
