"""Bottom-up directory enumeration with exclude patterns."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


def glob_match(rel_path: str, pattern: str) -> bool:
    """Segment-aware glob: ``*`` never matches across a ``/``."""
    path_parts = PurePosixPath(rel_path).parts
    pattern_parts = PurePosixPath(pattern.strip("/")).parts
    if len(path_parts) != len(pattern_parts):
        return False
    return all(
        fnmatch.fnmatchcase(part, pat) for part, pat in zip(path_parts, pattern_parts)
    )


def _matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    return any(glob_match(rel_path, p) for p in patterns)


class PathScanner:
    """Yields every directory under the roots after all of its subdirectories.

    Directories that cannot be listed are skipped along with their subtree.
    Symlinks are never followed.
    """

    def __init__(self, roots: Iterable[str | Path], excludes: Iterable[str] = ()) -> None:
        self.roots = [Path(os.path.abspath(r)) for r in roots]
        self.excludes = tuple(excludes)

    def __iter__(self) -> Iterator[Path]:
        return self.scan()

    def scan(self) -> Iterator[Path]:
        for root in self.roots:
            yield from self._scan_root(root)

    def _subdirectories(self, root: Path, directory: Path) -> list[Path]:
        children: list[Path] = []
        with os.scandir(directory) as it:
            for entry in it:
                if not entry.is_dir(follow_symlinks=False):
                    continue
                child = directory / entry.name
                rel = child.relative_to(root).as_posix()
                if _matches_any(rel, self.excludes):
                    logger.debug("Excluded %s", child)
                    continue
                children.append(child)
        return children

    def _scan_root(self, root: Path) -> Iterator[Path]:
        # Each frame: (directory, iterator over its pending children or None)
        stack: list[tuple[Path, Iterator[Path] | None]] = [(root, None)]
        while stack:
            directory, pending = stack[-1]
            if pending is None:
                try:
                    children = self._subdirectories(root, directory)
                except OSError as e:
                    logger.debug("Skipping unreadable directory %s: %s", directory, e)
                    stack.pop()
                    continue
                stack[-1] = (directory, iter(children))
                continue
            child = next(pending, None)
            if child is None:
                stack.pop()
                yield directory
            else:
                stack.append((child, None))
