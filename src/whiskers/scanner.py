"""Directory scanning for the views root.

Walks the views tree and lists:
- template files whose root-relative path matches the configured globs
- every directory (root inclusive), for watch enumeration

Glob semantics follow the usual web tooling convention: ``**`` crosses
directory separators, ``*`` and ``?`` stay within one path segment. So
``**.mustache`` matches ``home.mustache`` and ``partials/header.mustache``,
while ``*.mustache`` matches only files directly in the root.

Results are sorted by relative path so that index construction is
deterministic across platforms.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger("whiskers.scanner")


def _translate(pattern: str) -> str:
    """Translate one glob pattern into a regex body."""
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**/", i):
                out.append("(?:.*/)?")
                i += 3
                continue
            if pattern.startswith("**", i):
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


@lru_cache(maxsize=64)
def _compile(patterns: tuple[str, ...]) -> re.Pattern[str]:
    if not patterns:
        return re.compile(r"(?!)")
    alternatives = "|".join(f"(?:{_translate(p.removeprefix('./'))})" for p in patterns)
    return re.compile(f"(?:{alternatives})\\Z")


def compile_patterns(patterns: Iterable[str]) -> re.Pattern[str]:
    """Compile glob patterns into one regex matched against relative paths.

    An empty pattern list matches nothing.
    """
    return _compile(tuple(patterns))


def _walk(root: Path) -> Iterable[tuple[str, list[str], list[str]]]:
    def on_error(exc: OSError) -> None:
        # A directory removed mid-walk is skipped; the next refresh catches up
        logger.debug("Skipping unreadable path during scan: %s", exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        yield dirpath, dirnames, filenames


def scan_files(root: str | Path, patterns: Iterable[str]) -> list[Path]:
    """List files under *root* matching any of *patterns*.

    Args:
        root: The views root directory.
        patterns: Glob patterns, matched against root-relative POSIX paths.

    Returns:
        Absolute file paths, sorted by their path relative to *root*.
    """
    base = Path(root).resolve()
    matcher = compile_patterns(patterns)
    found: list[tuple[str, Path]] = []
    for dirpath, _dirnames, filenames in _walk(base):
        directory = Path(dirpath)
        for name in filenames:
            path = directory / name
            relative = path.relative_to(base).as_posix()
            if matcher.match(relative):
                found.append((relative, path))
    found.sort(key=lambda item: item[0])
    return [path for _, path in found]


def scan_directories(root: str | Path) -> list[Path]:
    """List every directory under *root*, *root* included.

    Returns:
        Absolute directory paths, root first, then sorted by relative path.
    """
    base = Path(root).resolve()
    if not base.is_dir():
        return []
    directories = [Path(dirpath) for dirpath, _dirnames, _filenames in _walk(base)]
    directories.sort(key=lambda path: path.relative_to(base).parts)
    return directories
