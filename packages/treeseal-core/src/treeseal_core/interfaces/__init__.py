"""Interfaces for event consumers and trust policies."""

from treeseal_core.interfaces.events import EventSink
from treeseal_core.interfaces.trust import OpenedEnvelope, TrustPolicy

__all__ = [
    "EventSink",
    "OpenedEnvelope",
    "TrustPolicy",
]
