"""Trust policies: Ed25519 keyring-backed, and the accept-everything null policy."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from treeseal_core.config.models import TrustConfig
from treeseal_core.interfaces.trust import OpenedEnvelope, TrustPolicy
from treeseal_core.trust.envelope import SignedEnvelope, encode_payload
from treeseal_core.trust.keyring import TrustStore
from treeseal_core.trust.models import (
    EnvelopeError,
    Identity,
    Signature,
    SignatureCheck,
    TrustError,
)

logger = logging.getLogger(__name__)


class NullTrustPolicy:
    """Digest-only mode: manifests are written unsigned and always accepted."""

    def sign(self, text: str) -> bytes:
        return encode_payload(text)

    def open(self, blob: bytes) -> OpenedEnvelope:
        try:
            payload = SignedEnvelope.from_bytes(blob).payload_bytes
        except EnvelopeError:
            payload = blob
        return OpenedEnvelope(payload=payload, valid=True, message="signature not checked")

    def describe(self) -> str:
        return "anyone (signatures not checked)"


class KeyringTrustPolicy:
    """Signs with keyring identities; accepts signers matched by *selector*."""

    def __init__(
        self,
        store: TrustStore,
        selector: str,
        signers: Sequence[str] = (),
    ) -> None:
        self.store = store
        self.selector = selector
        self.signers = tuple(signers)
        self._acceptable: dict[str, Identity] | None = None

    def acceptable(self) -> dict[str, Identity]:
        """Signing-capable identities matching the selector, keyed by key id."""
        if self._acceptable is None:
            self._acceptable = {
                i.key_id: i for i in self.store.find(self.selector) if i.can_sign
            }
            logger.debug(
                "Resolved %d acceptable identities for %r",
                len(self._acceptable),
                self.selector,
            )
        return self._acceptable

    def describe(self) -> str:
        acceptable = self.acceptable()
        if not acceptable:
            return f"no identity matching {self.selector!r}"
        return ", ".join(str(i) for i in acceptable.values())

    # ------------------------------------------------------------------
    # Sign
    # ------------------------------------------------------------------

    def _signing_identities(self) -> list[Identity]:
        if not self.signers:
            return [self.store.default_identity()]
        chosen: dict[str, Identity] = {}
        for selector in self.signers:
            usable = [
                i
                for i in self.store.find(selector)
                if i.can_sign and self.store.has_secret(i)
            ]
            if not usable:
                raise TrustError(f"no secret signing key matches {selector!r}")
            for identity in usable:
                chosen.setdefault(identity.key_id, identity)
        return list(chosen.values())

    def sign(self, text: str) -> bytes:
        envelope = SignedEnvelope(payload=text)
        payload = envelope.payload_bytes
        now = datetime.now(timezone.utc)
        for identity in self._signing_identities():
            key = self.store.signing_key(identity)
            envelope.signatures.append(
                Signature(
                    key_id=identity.key_id,
                    fingerprint=identity.fingerprint,
                    signature=key.sign(payload).signature.hex(),
                    signed_at=now,
                )
            )
        return envelope.to_bytes()

    # ------------------------------------------------------------------
    # Open
    # ------------------------------------------------------------------

    def _check(self, payload: bytes, sig: Signature) -> SignatureCheck:
        identity = self.store.get(sig.fingerprint)
        if identity is None or identity.key_id != sig.key_id.upper():
            return SignatureCheck(key_id=sig.key_id, error="no public key")
        try:
            VerifyKey(bytes.fromhex(identity.public_key)).verify(
                payload, bytes.fromhex(sig.signature)
            )
        except BadSignatureError:
            return SignatureCheck(key_id=sig.key_id, identity=identity, error="bad signature")
        except ValueError as e:
            return SignatureCheck(
                key_id=sig.key_id, identity=identity, error=f"malformed signature: {e}"
            )
        return SignatureCheck(key_id=identity.key_id, identity=identity)

    def open(self, blob: bytes) -> OpenedEnvelope:
        """Valid only if every signature verifies and one signer is acceptable."""
        try:
            envelope = SignedEnvelope.from_bytes(blob)
        except EnvelopeError as e:
            return OpenedEnvelope(payload=blob, valid=False, message=str(e))

        payload = envelope.payload_bytes
        if not envelope.signatures:
            return OpenedEnvelope(payload=payload, valid=False, message="no signatures")

        acceptable = self.acceptable()
        checks = [self._check(payload, sig) for sig in envelope.signatures]
        messages: list[str] = []
        trusted = False
        for check in checks:
            who = str(check.identity) if check.identity else f"[{check.key_id}]"
            if not check.ok:
                messages.append(f"{check.error} from {who}")
            elif check.key_id in acceptable:
                trusted = True
                messages.append(f"good signature from {who}")
            else:
                messages.append(f"good signature from untrusted {who}")

        valid = trusted and all(c.ok for c in checks)
        return OpenedEnvelope(payload=payload, valid=valid, message="; ".join(messages))


def create_trust_policy(config: TrustConfig, signer: str | None = None) -> TrustPolicy:
    """Pick the policy for a run: keyring-backed when a selector is configured."""
    selector = signer or config.selector
    if not selector:
        return NullTrustPolicy()
    signers = config.signers or [selector]
    return KeyringTrustPolicy(TrustStore(config.keyring_dir), selector, signers)
