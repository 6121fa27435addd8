"""JSON envelope carrying a manifest payload and its signatures."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from pydantic import TypeAdapter, ValidationError

from treeseal_core.trust.models import EnvelopeError, Signature

ENVELOPE_FORMAT = "treeseal-signed/1"

_signatures = TypeAdapter(list[Signature])


def encode_payload(text: str) -> bytes:
    """Payload bytes; undecodable file names round-trip via surrogateescape."""
    return text.encode("utf-8", "surrogateescape")


def decode_payload(payload: bytes) -> str:
    return payload.decode("utf-8", "surrogateescape")


@dataclass
class SignedEnvelope:
    """A manifest plus zero or more detached signatures over its bytes.

    The payload may hold lone surrogates (undecodable file names), so it
    is kept out of pydantic validation; only the signatures are models.
    """

    payload: str
    signatures: list[Signature] = field(default_factory=list)
    format: str = ENVELOPE_FORMAT

    @property
    def payload_bytes(self) -> bytes:
        return encode_payload(self.payload)

    def to_bytes(self) -> bytes:
        # ensure_ascii keeps lone surrogates as \udcXX escapes
        data = {
            "format": self.format,
            "payload": self.payload,
            "signatures": [s.model_dump(mode="json") for s in self.signatures],
        }
        return (json.dumps(data, indent=2) + "\n").encode("ascii")

    @classmethod
    def from_bytes(cls, blob: bytes) -> SignedEnvelope:
        try:
            data = json.loads(blob.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise EnvelopeError(f"not a signed envelope: {e}") from e
        if not isinstance(data, dict):
            raise EnvelopeError("not a signed envelope: expected a JSON object")
        if data.get("format") != ENVELOPE_FORMAT:
            raise EnvelopeError(f"unknown envelope format {data.get('format')!r}")
        payload = data.get("payload")
        if not isinstance(payload, str):
            raise EnvelopeError("malformed signed envelope: payload must be a string")
        try:
            signatures = _signatures.validate_python(data.get("signatures", []))
        except ValidationError as e:
            raise EnvelopeError(f"malformed signed envelope: {e}") from e
        return cls(payload=payload, signatures=signatures)
