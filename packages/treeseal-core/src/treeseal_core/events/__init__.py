"""Verify events, the sink answers, and the standard sinks."""

from treeseal_core.events.models import (
    ChangeEvent,
    ChangeReport,
    Control,
    DirectoryChanged,
    DirectoryUnchanged,
    InvalidSignature,
    ItemAdded,
    ItemChanged,
    ItemRemoved,
    ItemUnchanged,
    ValidSignature,
)
from treeseal_core.events.sinks import CollectingSink, DispatchSink, dispatch, scope_control

__all__ = [
    "ChangeEvent",
    "ChangeReport",
    "CollectingSink",
    "Control",
    "DirectoryChanged",
    "DirectoryUnchanged",
    "DispatchSink",
    "InvalidSignature",
    "ItemAdded",
    "ItemChanged",
    "ItemRemoved",
    "ItemUnchanged",
    "ValidSignature",
    "dispatch",
    "scope_control",
]
