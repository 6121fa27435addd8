"""Batch create/update/verify/clear over a root set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from treeseal_core.config.models import RunOptions
from treeseal_core.events.models import Control
from treeseal_core.interfaces.events import EventSink
from treeseal_core.interfaces.trust import TrustPolicy
from treeseal_core.merkle.models import PlannedAction
from treeseal_core.merkle.roots import RootSet

logger = logging.getLogger(__name__)


class Attestor:
    """Runs one operation over every directory of a :class:`RootSet`.

    Write operations yield a :class:`PlannedAction` per directory after
    acting on it; with ``dry_run`` nothing on disk is touched. Planned
    updates in dry-run mode do not see the mtime bumps a real run would
    make, so parents of stale directories may be under-reported.
    """

    def __init__(
        self,
        roots: Iterable[str | Path],
        options: RunOptions,
        policy: TrustPolicy,
    ) -> None:
        self.options = options
        self.policy = policy
        self.root_set = RootSet(roots, options, policy)

    def create(self) -> Iterator[PlannedAction]:
        for state in self.root_set:
            if not self.options.dry_run:
                state.write()
            yield PlannedAction(state.path, "write", "create")

    def update(self) -> Iterator[PlannedAction]:
        for state in self.root_set:
            if not state.needs_update():
                if self.options.verbose:
                    yield PlannedAction(state.path, "skip", "up to date")
                continue
            reason = "stale" if state.has_manifest() else "no manifest"
            if not self.options.dry_run:
                state.write()
            yield PlannedAction(state.path, "write", reason)

    def clear(self) -> Iterator[PlannedAction]:
        for state in self.root_set.states(include_ignored=True):
            if not state.has_manifest():
                continue
            if not self.options.dry_run:
                state.delete()
            yield PlannedAction(state.path, "delete")

    def verify(self, sink: EventSink) -> int:
        """Verify every directory into *sink*; returns the number checked."""
        checked = 0
        for state in self.root_set:
            control = state.verify(sink)
            if control is not Control.CONTINUE:
                logger.debug("%s: %s", state.path, control.value)
            checked += 1
        return checked
