"""Checksum sets: the live or recorded digests of one directory's children."""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from treeseal_core.events.models import (
    ChangeEvent,
    DirectoryChanged,
    DirectoryUnchanged,
    ItemAdded,
    ItemChanged,
    ItemRemoved,
    ItemUnchanged,
)
from treeseal_core.merkle.models import (
    MANIFEST_NAME,
    UNCHECKED,
    UNSUPPORTED,
    ChecksumOrderError,
    Entry,
    ManifestError,
)

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1 << 16


def compute_hash(content: bytes) -> str:
    """SHA-256 hex digest of *content*."""
    return hashlib.sha256(content).hexdigest()


def compute_file_hash(path: Path) -> str:
    """Stream a file from disk and return its SHA-256 hex digest."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def _manifest_digest(directory: Path, manifest_name: str) -> str:
    try:
        return compute_file_hash(directory / manifest_name)
    except OSError:
        return UNCHECKED


def entry_digest(path: Path, manifest_name: str = MANIFEST_NAME) -> str:
    """Digest of a single directory entry, classified by ``lstat``.

    Symlinks hash their target string and are never followed; child
    directories hash their own manifest file, or carry the unchecked
    sentinel when they have none.
    """
    mode = os.lstat(path).st_mode
    if stat.S_ISLNK(mode):
        return compute_hash(os.fsencode(os.readlink(path)))
    if stat.S_ISDIR(mode):
        return _manifest_digest(path, manifest_name)
    if stat.S_ISREG(mode):
        return compute_file_hash(path)
    return UNSUPPORTED


@dataclass(frozen=True)
class ChecksumSet:
    """Entries strictly sorted by name; equality is structural."""

    entries: tuple[Entry, ...] = ()

    def __post_init__(self) -> None:
        for prev, cur in zip(self.entries, self.entries[1:]):
            if not prev.name < cur.name:
                raise ChecksumOrderError(
                    f"entries out of order: {prev.name!r} before {cur.name!r}"
                )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def get(self, name: str) -> str | None:
        for entry in self.entries:
            if entry.name == name:
                return entry.digest
        return None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_entries(cls, entries: Iterable[Entry]) -> ChecksumSet:
        return cls(tuple(sorted(entries, key=lambda e: e.name)))

    @classmethod
    def for_files(
        cls,
        directory: Path,
        names: Iterable[str],
        manifest_name: str = MANIFEST_NAME,
    ) -> ChecksumSet:
        """Hash the named children of *directory* as they are on disk now."""
        entries: list[Entry] = []
        for name in names:
            try:
                digest = entry_digest(directory / name, manifest_name)
            except FileNotFoundError:
                logger.debug("Entry vanished while hashing: %s", directory / name)
                continue
            entries.append(Entry(name=name, digest=digest))
        return cls.from_entries(entries)

    @classmethod
    def from_manifest_text(cls, text: str) -> ChecksumSet:
        """Parse ``<digest>  <name>`` lines.

        Each line splits at its first two-space run; names are not escaped,
        so a name containing a newline does not survive this format.
        """
        entries: dict[str, Entry] = {}
        for lineno, line in enumerate(text.split("\n"), start=1):
            if not line:
                continue
            digest, sep, name = line.partition("  ")
            if not sep:
                raise ManifestError("missing two-space separator", line=lineno)
            if name in entries:
                raise ManifestError(f"duplicate entry {name!r}", line=lineno)
            entries[name] = Entry(name=name, digest=digest)
        return cls.from_entries(entries.values())

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_manifest_text(self) -> str:
        return "".join(e.to_line() for e in self.entries)


def diff(
    expected: ChecksumSet, actual: ChecksumSet, directory: Path
) -> Iterator[ChangeEvent]:
    """Merge two sorted sets and yield the change events for *directory*.

    An unchanged directory yields a single ``DirectoryUnchanged`` and no
    per-item events.
    """
    if expected == actual:
        yield DirectoryUnchanged(directory=directory)
        return

    yield DirectoryChanged(directory=directory)

    exp, act = expected.entries, actual.entries
    i = j = 0
    while i < len(exp) or j < len(act):
        e = exp[i] if i < len(exp) else None
        a = act[j] if j < len(act) else None

        if e is not None and a is not None and e.name == a.name:
            if e.digest == a.digest:
                yield ItemUnchanged(directory=directory, name=e.name, digest=e.digest)
            else:
                yield ItemChanged(
                    directory=directory,
                    name=e.name,
                    expected=e.digest,
                    actual=a.digest,
                )
            i += 1
            j += 1
        elif e is not None and (a is None or e.name < a.name):
            yield ItemRemoved(directory=directory, name=e.name, digest=e.digest)
            i += 1
        elif a is not None and (e is None or a.name < e.name):
            yield ItemAdded(directory=directory, name=a.name, digest=a.digest)
            j += 1
        else:
            raise ChecksumOrderError(
                f"merge pointers crossed in {directory} at "
                f"expected[{i}]={e!r}, actual[{j}]={a!r}"
            )
