"""Path helpers shared by the classifier, resolver and HTTP layer."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from os import PathLike
from pathlib import Path

__all__ = ["coerce_path", "iter_unique_paths"]


def coerce_path(
    value: str | Path | PathLike[str],
    *,
    empty_error: str | None = None,
) -> Path:
    """Return *value* as an absolute, user-expanded :class:`~pathlib.Path`.

    Parameters
    ----------
    value:
        Path-like object or raw query string. Surrounding whitespace is
        stripped from strings before the path is built.
    empty_error:
        Optional message for the :class:`ValueError` raised when *value* is
        blank.
    """

    if isinstance(value, Path):
        candidate = value
    else:
        text = os.fspath(value).strip()
        if not text:
            raise ValueError(empty_error or "Path value cannot be empty.")
        candidate = Path(text)

    candidate = candidate.expanduser()
    if not candidate.is_absolute():
        candidate = Path.cwd() / candidate
    return Path(os.path.normpath(candidate))


def iter_unique_paths(paths: Iterable[Path]) -> Iterator[Path]:
    """Yield *paths* in order, skipping entries that were already produced."""

    seen: set[str] = set()
    for path in paths:
        key = os.path.normcase(os.path.normpath(path))
        if key in seen:
            continue
        seen.add(key)
        yield path
