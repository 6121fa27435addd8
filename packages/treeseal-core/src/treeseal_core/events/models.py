"""Change events emitted while verifying a directory."""

from __future__ import annotations

import os
from collections import Counter
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator


def printable(value: Any) -> str:
    # Undecodable bytes of a file name are shown as \xNN escapes
    return os.fsencode(str(value)).decode("utf-8", "backslashreplace")


def _file_name(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("file name must be a string")
    return value


def _directory(value: Any) -> Path:
    if not isinstance(value, (str, os.PathLike)):
        raise ValueError("directory must be a path")
    return Path(value)


# Names from os.listdir may carry lone surrogates, which pydantic's str
# validation rejects; these types accept them and escape them in JSON.
FileName = Annotated[
    str, PlainValidator(_file_name), PlainSerializer(printable, when_used="json")
]
DirectoryPath = Annotated[
    Path, PlainValidator(_directory), PlainSerializer(printable, when_used="json")
]


class Control(str, Enum):
    """Answer a sink gives for each event it receives."""

    CONTINUE = "continue"
    # Stop comparing items in the current directory
    SKIP_ITEMS = "skip_items"
    # Stop all signature/checksum work for the current directory
    SKIP_DIRECTORY = "skip_directory"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    directory: DirectoryPath


class ValidSignature(_Event):
    kind: Literal["valid_signature"] = "valid_signature"
    identity: str
    message: str


class InvalidSignature(_Event):
    kind: Literal["invalid_signature"] = "invalid_signature"
    identity: str
    message: str


class DirectoryUnchanged(_Event):
    kind: Literal["directory_unchanged"] = "directory_unchanged"


class DirectoryChanged(_Event):
    kind: Literal["directory_changed"] = "directory_changed"


class ItemUnchanged(_Event):
    kind: Literal["item_unchanged"] = "item_unchanged"
    name: FileName
    digest: str


class ItemChanged(_Event):
    kind: Literal["item_changed"] = "item_changed"
    name: FileName
    expected: str
    actual: str


class ItemAdded(_Event):
    kind: Literal["item_added"] = "item_added"
    name: FileName
    digest: str


class ItemRemoved(_Event):
    kind: Literal["item_removed"] = "item_removed"
    name: FileName
    digest: str


ChangeEvent = Annotated[
    Union[
        ValidSignature,
        InvalidSignature,
        DirectoryUnchanged,
        DirectoryChanged,
        ItemUnchanged,
        ItemChanged,
        ItemAdded,
        ItemRemoved,
    ],
    Field(discriminator="kind"),
]

SIGNATURE_EVENTS = (ValidSignature, InvalidSignature)


class ChangeReport(BaseModel):
    """Ordered record of every event seen during a verify run."""

    events: list[ChangeEvent] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return any(
            isinstance(e, (DirectoryChanged, InvalidSignature)) for e in self.events
        )

    def counts(self) -> dict[str, int]:
        return dict(Counter(e.kind for e in self.events))

    def changed_directories(self) -> list[Path]:
        return [e.directory for e in self.events if isinstance(e, DirectoryChanged)]

    def invalid_signatures(self) -> list[InvalidSignature]:
        return [e for e in self.events if isinstance(e, InvalidSignature)]

    def for_directory(self, directory: Path) -> list[ChangeEvent]:
        return [e for e in self.events if e.directory == directory]
