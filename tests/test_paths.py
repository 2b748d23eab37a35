"""Tests for path normalization (utils/paths.py)."""

from __future__ import annotations

import pytest

from covdelta.utils.paths import PathNormalizer, normalize_path, normalize_prefix


@pytest.mark.parametrize(
    ("prefix", "expected"),
    [
        ("./", ""),
        (".", ""),
        ("", ""),
        ("./packages/web/", "packages/web"),
        ("packages/web", "packages/web"),
        (".\\packages\\web\\", "packages/web"),
    ],
)
def test_normalize_prefix(prefix: str, expected: str) -> None:
    assert normalize_prefix(prefix) == expected


def test_strips_leading_current_dir() -> None:
    assert normalize_path("./src/a.js") == "src/a.js"


def test_converts_backslashes() -> None:
    assert normalize_path("src\\lib\\a.js") == "src/lib/a.js"


def test_strips_working_directory_prefix() -> None:
    assert normalize_path("packages/web/src/a.js", "./packages/web/") == "src/a.js"


def test_working_directory_must_match_whole_segment() -> None:
    assert normalize_path("packages/webapp/a.js", "packages/web") == "packages/webapp/a.js"


def test_strips_absolute_workspace_root() -> None:
    result = normalize_path(
        "/home/runner/work/repo/repo/packages/web/src/a.js",
        "packages/web",
        root="/home/runner/work/repo/repo",
    )
    assert result == "src/a.js"


def test_root_with_trailing_slash() -> None:
    assert normalize_path("/ws/src/a.js", root="/ws/") == "src/a.js"


def test_unrelated_absolute_path_is_kept() -> None:
    assert normalize_path("/usr/include/stdio.h", root="/ws") == "/usr/include/stdio.h"


@pytest.mark.parametrize(
    "path",
    [
        "./src/a.js",
        "././packages/web/packages/web/a.js",
        "/ws/./packages/web/a.js",
        "src\\b.ts",
        "",
        "packages/web",
    ],
)
def test_normalization_is_idempotent(path: str) -> None:
    once = normalize_path(path, "packages/web", root="/ws")
    assert normalize_path(once, "packages/web", root="/ws") == once


def test_path_normalizer_is_callable() -> None:
    normalizer = PathNormalizer(working_dir="./app/", root="/ws")
    assert normalizer("/ws/app/lib/x.py") == "lib/x.py"
    assert normalizer("./app/lib/x.py") == "lib/x.py"
