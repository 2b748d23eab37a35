"""Path canonicalization shared by coverage reports and changed-file lookups."""

from __future__ import annotations

from dataclasses import dataclass

_CURRENT_DIR = "./"


def normalize_prefix(prefix: str) -> str:
    """Canonicalize a directory prefix (``./packages/web/`` -> ``packages/web``)."""
    value = prefix.replace("\\", "/")
    while value.startswith(_CURRENT_DIR):
        value = value[len(_CURRENT_DIR) :]
    value = value.rstrip("/")
    if value == ".":
        return ""
    return value


def _strip_dir(path: str, directory: str) -> str:
    if directory and path.startswith(directory + "/"):
        return path[len(directory) + 1 :]
    return path


def _normalize_once(path: str, prefix: str, root: str) -> str:
    value = path.replace("\\", "/")
    value = _strip_dir(value, root)
    while value.startswith(_CURRENT_DIR):
        value = value[len(_CURRENT_DIR) :]
    return _strip_dir(value, prefix)


def normalize_path(path: str, working_dir: str = "", *, root: str = "") -> str:
    """Return *path* with ``/`` separators and known prefixes removed.

    Strips a leading ``./``, an absolute *root* (usually the CI workspace) and
    the *working_dir* prefix. Rules are reapplied until nothing changes, which
    makes the function idempotent.
    """
    prefix = normalize_prefix(working_dir)
    root_dir = root.replace("\\", "/").rstrip("/")
    current = path
    while True:
        normalized = _normalize_once(current, prefix, root_dir)
        if normalized == current:
            return normalized
        current = normalized


@dataclass(frozen=True)
class PathNormalizer:
    """Callable normalizer bound to one working directory and workspace root."""

    working_dir: str = ""
    root: str = ""

    def __call__(self, path: str) -> str:
        return normalize_path(path, self.working_dir, root=self.root)
