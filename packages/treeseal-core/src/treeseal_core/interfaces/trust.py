"""Trust policy interface."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class OpenedEnvelope(BaseModel):
    """Result of opening a signed manifest blob."""

    model_config = ConfigDict(frozen=True)

    payload: bytes
    valid: bool
    message: str = ""


@runtime_checkable
class TrustPolicy(Protocol):
    """Signs manifest text and decides whether a signed blob is acceptable."""

    def sign(self, text: str) -> bytes: ...

    def open(self, blob: bytes) -> OpenedEnvelope: ...

    def describe(self) -> str: ...
