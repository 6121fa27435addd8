"""Manifest tree: per-directory signed checksums linked bottom-up."""

from treeseal_core.merkle.attest import Attestor
from treeseal_core.merkle.checksums import (
    ChecksumSet,
    compute_file_hash,
    compute_hash,
    diff,
    entry_digest,
)
from treeseal_core.merkle.directory import DirectoryState
from treeseal_core.merkle.models import (
    MANIFEST_NAME,
    UNCHECKED,
    UNSUPPORTED,
    ChecksumOrderError,
    Entry,
    ManifestError,
    PlannedAction,
    TreeSealError,
)
from treeseal_core.merkle.roots import RootSet
from treeseal_core.merkle.scanner import PathScanner, glob_match

__all__ = [
    "Attestor",
    "ChecksumOrderError",
    "ChecksumSet",
    "DirectoryState",
    "Entry",
    "MANIFEST_NAME",
    "ManifestError",
    "PathScanner",
    "PlannedAction",
    "RootSet",
    "TreeSealError",
    "UNCHECKED",
    "UNSUPPORTED",
    "compute_file_hash",
    "compute_hash",
    "diff",
    "entry_digest",
    "glob_match",
]
