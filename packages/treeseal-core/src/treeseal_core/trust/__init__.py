"""Signing identities, signed envelopes and trust policies."""

from treeseal_core.trust.envelope import SignedEnvelope
from treeseal_core.trust.keyring import TrustStore
from treeseal_core.trust.models import EnvelopeError, Identity, TrustError
from treeseal_core.trust.policy import KeyringTrustPolicy, NullTrustPolicy, create_trust_policy

__all__ = [
    "EnvelopeError",
    "Identity",
    "KeyringTrustPolicy",
    "NullTrustPolicy",
    "SignedEnvelope",
    "TrustError",
    "TrustStore",
    "create_trust_policy",
]
