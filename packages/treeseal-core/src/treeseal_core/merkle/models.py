"""Data models for the manifest tree."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Fixed name of the per-directory manifest file
MANIFEST_NAME = ".treeseal"

# Sentinel digests; real SHA-256 hex digests are 64 chars so neither can collide
UNCHECKED = ""
UNSUPPORTED = "-"


class TreeSealError(Exception):
    """Base class for errors raised by the manifest tree."""


class ChecksumOrderError(TreeSealError):
    """Entries were not strictly sorted by name (internal consistency failure)."""


class ManifestError(TreeSealError):
    """A manifest payload could not be parsed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class Entry:
    """One child of a directory and its digest."""

    name: str
    digest: str

    def to_line(self) -> str:
        return f"{self.digest}  {self.name}\n"


@dataclass(frozen=True)
class PlannedAction:
    """A write/delete decision taken (or planned, in dry-run mode) for a directory."""

    directory: Path
    action: str
    reason: str = ""
