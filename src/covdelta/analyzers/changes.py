"""Restrict report rows to the files touched by the revision under test."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection

    from covdelta.models.coverage import ReportDelta

logger = logging.getLogger(__name__)


def filter_changed(delta: ReportDelta, changed_paths: Collection[str]) -> ReportDelta:
    """Drop rows whose path is not in *changed_paths*.

    Row order is preserved. The whole-report summaries are left untouched:
    they keep describing the full project, not just the changed files.
    """
    changed = set(changed_paths)
    kept = tuple(row for row in delta.files if row.path in changed)
    logger.info(
        "Change filter kept %d of %d files (%d changed paths)",
        len(kept),
        len(delta.files),
        len(changed),
    )
    return replace(delta, files=kept)
