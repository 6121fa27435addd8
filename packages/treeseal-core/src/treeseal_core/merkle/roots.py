"""The ordered sequence of directories a run works on."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from treeseal_core.config.models import RunOptions
from treeseal_core.interfaces.trust import TrustPolicy
from treeseal_core.merkle.directory import DirectoryState
from treeseal_core.merkle.models import MANIFEST_NAME
from treeseal_core.merkle.scanner import PathScanner


class RootSet:
    """Directories to process, children always before their parents.

    Iteration is lazy: directories are scanned and filtered as they are
    consumed.
    """

    def __init__(
        self,
        roots: Iterable[str | Path],
        options: RunOptions,
        policy: TrustPolicy,
        manifest_name: str = MANIFEST_NAME,
    ) -> None:
        self.roots = [Path(os.path.abspath(r)) for r in roots]
        self.options = options
        self.policy = policy
        self.manifest_name = manifest_name

    def paths(self) -> Iterator[Path]:
        """Directory paths in processing order, before filtering."""
        if self.options.recursive:
            return PathScanner(self.roots, self.options.excludes).scan()
        return iter(self.roots)

    def states(self, *, include_ignored: bool = False) -> Iterator[DirectoryState]:
        for path in self.paths():
            state = DirectoryState(path, self.policy, self.manifest_name)
            if not include_ignored and state.ignored():
                continue
            yield state

    def __iter__(self) -> Iterator[DirectoryState]:
        return self.states()
