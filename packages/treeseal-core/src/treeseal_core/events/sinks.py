"""Standard event sinks and the delivery loop that honours their answers."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING

from treeseal_core.events.models import (
    SIGNATURE_EVENTS,
    ChangeEvent,
    ChangeReport,
    Control,
    DirectoryChanged,
)

if TYPE_CHECKING:
    from treeseal_core.interfaces.events import EventSink

logger = logging.getLogger(__name__)

Handler = Callable[[ChangeEvent], Control | None]


def scope_control(
    event: ChangeEvent, *, signatures_only: bool = False, dirs_only: bool = False
) -> Control:
    """Default answer for the ``--signatures-only`` / ``--dirs-only`` modes."""
    if signatures_only and isinstance(event, SIGNATURE_EVENTS):
        return Control.SKIP_DIRECTORY
    if (signatures_only or dirs_only) and isinstance(event, DirectoryChanged):
        return Control.SKIP_ITEMS
    return Control.CONTINUE


def dispatch(events: Iterable[ChangeEvent], sink: EventSink) -> Control:
    """Feed *events* to *sink* until it asks to stop.

    Returns the answer that ended delivery, or ``CONTINUE`` when every
    event was delivered. A generator source is closed on early exit.
    """
    it = iter(events)
    try:
        for event in it:
            control = sink.handle(event) or Control.CONTINUE
            if control is not Control.CONTINUE:
                logger.debug("%s after %s in %s", control.value, event.kind, event.directory)
                return control
        return Control.CONTINUE
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()


class CollectingSink:
    """Collects every delivered event into a :class:`ChangeReport`."""

    def __init__(self, *, signatures_only: bool = False, dirs_only: bool = False) -> None:
        self.report = ChangeReport()
        self.signatures_only = signatures_only
        self.dirs_only = dirs_only

    def handle(self, event: ChangeEvent) -> Control:
        self.report.events.append(event)
        return scope_control(
            event, signatures_only=self.signatures_only, dirs_only=self.dirs_only
        )


class DispatchSink:
    """Routes each event to the handler registered for its ``kind``.

    A handler may return a :class:`Control` to short-circuit; when it
    returns ``None`` (or no handler is registered) the scope flags decide.
    """

    def __init__(
        self,
        handlers: Mapping[str, Handler] | None = None,
        *,
        signatures_only: bool = False,
        dirs_only: bool = False,
    ) -> None:
        self._handlers: dict[str, Handler] = dict(handlers or {})
        self.signatures_only = signatures_only
        self.dirs_only = dirs_only
        self.counts: Counter[str] = Counter()

    def on(self, kind: str, handler: Handler) -> None:
        self._handlers[kind] = handler

    def handle(self, event: ChangeEvent) -> Control:
        self.counts[event.kind] += 1
        handler = self._handlers.get(event.kind)
        control = handler(event) if handler is not None else None
        if control is None:
            control = scope_control(
                event, signatures_only=self.signatures_only, dirs_only=self.dirs_only
            )
        return control

    @property
    def has_changes(self) -> bool:
        return bool(self.counts["directory_changed"] or self.counts["invalid_signature"])
