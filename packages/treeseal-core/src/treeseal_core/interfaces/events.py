"""Event sink interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from treeseal_core.events.models import ChangeEvent, Control


@runtime_checkable
class EventSink(Protocol):
    """Consumer of verify events.

    Returning ``None`` is the same as ``Control.CONTINUE``.
    """

    def handle(self, event: ChangeEvent) -> Control | None: ...
