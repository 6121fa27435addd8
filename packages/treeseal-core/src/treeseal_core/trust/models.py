"""Pydantic models and errors for the trust subsystem."""

from __future__ import annotations

import hashlib
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

# Number of trailing fingerprint hex chars that form the short key id
KEY_ID_LENGTH = 16


class TrustError(Exception):
    """Signing identities could not be resolved or used."""


class EnvelopeError(ValueError):
    """A blob is not a well-formed signed envelope."""


class Identity(BaseModel):
    """A public signing identity held in the trust store."""

    model_config = ConfigDict(frozen=True)

    name: str
    public_key: str
    usage: tuple[str, ...] = ("sign",)
    revoked: bool = False
    created: datetime | None = None

    @field_validator("public_key")
    @classmethod
    def _check_public_key(cls, v: str) -> str:
        v = v.strip().lower()
        try:
            raw = bytes.fromhex(v)
        except ValueError:
            raise ValueError("public_key must be hex") from None
        if len(raw) != 32:
            raise ValueError(f"public_key must be 32 bytes, got {len(raw)}")
        return v

    @property
    def fingerprint(self) -> str:
        return hashlib.sha256(bytes.fromhex(self.public_key)).hexdigest().upper()

    @property
    def key_id(self) -> str:
        return self.fingerprint[-KEY_ID_LENGTH:]

    @property
    def can_sign(self) -> bool:
        return "sign" in self.usage and not self.revoked

    def __str__(self) -> str:
        return f"{self.name} [{self.key_id}]"


class Signature(BaseModel):
    """One detached signature inside an envelope."""

    key_id: str
    fingerprint: str
    signature: str
    signed_at: datetime | None = None


class SignatureCheck(BaseModel):
    """Outcome of checking a single signature."""

    key_id: str
    identity: Identity | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class StoreEntry(BaseModel):
    """Listing row for ``treeseal keys list``."""

    identity: Identity
    has_secret: bool = False
    is_default: bool = False
