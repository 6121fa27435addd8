"""Tests for the trust store, signed envelopes and trust policies."""

from __future__ import annotations

import dataclasses
import json
import os
import stat

import pytest
import yaml
from nacl.signing import SigningKey

from treeseal_core.config import TrustConfig
from treeseal_core.interfaces import TrustPolicy
from treeseal_core.trust import (
    EnvelopeError,
    Identity,
    KeyringTrustPolicy,
    NullTrustPolicy,
    SignedEnvelope,
    TrustError,
    TrustStore,
    create_trust_policy,
)
from treeseal_core.trust.envelope import decode_payload, encode_payload

MANIFEST = "aa  a.txt\nbb  b.txt\n"


def _public_identity(name: str) -> Identity:
    key = SigningKey.generate()
    return Identity(name=name, public_key=bytes(key.verify_key).hex())


# ── Identity ─────────────────────────────────────────────────────────


class TestIdentity:
    def test_key_id_is_fingerprint_suffix(self, alice):
        assert len(alice.fingerprint) == 64
        assert alice.fingerprint.endswith(alice.key_id)
        assert len(alice.key_id) == 16

    def test_str_includes_key_id(self, alice):
        assert str(alice) == f"Alice <alice@example.org> [{alice.key_id}]"

    def test_public_key_must_be_32_bytes(self):
        with pytest.raises(ValueError):
            Identity(name="x", public_key="abcd")

    def test_public_key_must_be_hex(self):
        with pytest.raises(ValueError):
            Identity(name="x", public_key="zz" * 32)

    def test_revoked_cannot_sign(self, alice):
        assert alice.can_sign
        assert not alice.model_copy(update={"revoked": True}).can_sign

    def test_encrypt_only_cannot_sign(self, alice):
        assert not alice.model_copy(update={"usage": ("encrypt",)}).can_sign


# ── TrustStore ───────────────────────────────────────────────────────


class TestTrustStore:
    def test_generate_writes_files(self, keyring, alice):
        pub = keyring.directory / f"{alice.key_id}.pub"
        sec = keyring.directory / f"{alice.key_id}.sec"
        assert yaml.safe_load(pub.read_text())["name"] == alice.name
        assert stat.S_IMODE(os.stat(sec).st_mode) == 0o600

    def test_identities_sorted_by_key_id(self, keyring):
        ids = [i.key_id for i in keyring.identities()]
        assert ids == sorted(ids)
        assert len(ids) == 2

    def test_missing_directory_is_empty(self, tmp_path):
        assert TrustStore(tmp_path / "nowhere").identities() == []

    def test_get_by_key_id_and_fingerprint(self, keyring, alice):
        assert keyring.get(alice.key_id) == alice
        assert keyring.get(alice.fingerprint.lower()) == alice
        assert keyring.get("") is None
        assert keyring.get("0" * 16) is None

    def test_find_by_name_substring(self, keyring, alice, bob):
        assert keyring.find("ALICE") == [alice]
        assert sorted(keyring.find("example.org"), key=str) == sorted([alice, bob], key=str)

    def test_find_by_fingerprint_suffix(self, keyring, bob):
        assert keyring.find(bob.key_id[-8:]) == [bob]

    def test_find_multiple_terms(self, keyring, alice, bob):
        assert len(keyring.find("alice, bob")) == 2
        assert len(keyring.find("alice bob")) == 2

    def test_default_identity(self, keyring, alice, bob):
        assert keyring.default_identity() == alice
        keyring.set_default(bob)
        assert keyring.default_identity() == bob

    def test_default_falls_back_to_first_signer(self, tmp_path):
        store = TrustStore(tmp_path / "ring")
        carol = store.generate("Carol")
        assert store.default_identity() == carol

    def test_no_default_available(self, tmp_path):
        store = TrustStore(tmp_path / "ring")
        store.add(_public_identity("Public Only"))
        with pytest.raises(TrustError):
            store.default_identity()

    def test_entries_flags(self, keyring, alice):
        entries = {e.identity.key_id: e for e in keyring.entries()}
        assert entries[alice.key_id].is_default
        assert entries[alice.key_id].has_secret
        assert sum(e.is_default for e in entries.values()) == 1

    def test_malformed_identity_skipped(self, keyring):
        (keyring.directory / "BROKEN.pub").write_text("name: only\n")
        assert len(keyring.identities()) == 2

    def test_signing_key_requires_secret(self, tmp_path):
        store = TrustStore(tmp_path / "ring")
        dave = _public_identity("Dave")
        store.add(dave)
        with pytest.raises(TrustError, match="no secret key"):
            store.signing_key(dave)

    def test_signing_key_must_match(self, keyring, alice, bob):
        bob_secret = (keyring.directory / f"{bob.key_id}.sec").read_text()
        (keyring.directory / f"{alice.key_id}.sec").write_text(bob_secret)
        with pytest.raises(TrustError, match="does not match"):
            keyring.signing_key(alice)


# ── Envelope ─────────────────────────────────────────────────────────


class TestEnvelope:
    def test_round_trip(self):
        envelope = SignedEnvelope(payload=MANIFEST)
        assert SignedEnvelope.from_bytes(envelope.to_bytes()) == envelope

    def test_not_json(self):
        with pytest.raises(EnvelopeError):
            SignedEnvelope.from_bytes(MANIFEST.encode())

    def test_wrong_format(self):
        blob = json.dumps({"format": "other/1", "payload": ""}).encode()
        with pytest.raises(EnvelopeError):
            SignedEnvelope.from_bytes(blob)

    def test_json_array_rejected(self):
        with pytest.raises(EnvelopeError):
            SignedEnvelope.from_bytes(b"[1, 2]")

    def test_undecodable_names_survive(self):
        raw = b"aa  caf\xe9.txt\n"
        text = decode_payload(raw)
        envelope = SignedEnvelope.from_bytes(SignedEnvelope(payload=text).to_bytes())
        assert envelope.payload_bytes == raw
        assert encode_payload(envelope.payload) == raw


# ── KeyringTrustPolicy ───────────────────────────────────────────────


class TestKeyringPolicy:
    def test_satisfies_protocol(self, alice_policy):
        assert isinstance(alice_policy, TrustPolicy)

    def test_sign_and_open(self, alice_policy, alice):
        opened = alice_policy.open(alice_policy.sign(MANIFEST))
        assert opened.valid
        assert opened.payload == MANIFEST.encode()
        assert opened.message == f"good signature from {alice}"

    def test_untrusted_signer(self, keyring, alice_policy):
        bob_policy = KeyringTrustPolicy(keyring, "bob", signers=["bob"])
        opened = alice_policy.open(bob_policy.sign(MANIFEST))
        assert not opened.valid
        assert "untrusted" in opened.message
        assert opened.payload == MANIFEST.encode()

    def test_tampered_payload(self, alice_policy):
        envelope = SignedEnvelope.from_bytes(alice_policy.sign(MANIFEST))
        forged = dataclasses.replace(envelope, payload=MANIFEST.replace("bb", "cc"))
        opened = alice_policy.open(forged.to_bytes())
        assert not opened.valid
        assert "bad signature" in opened.message

    def test_unknown_key(self, tmp_path, alice_policy):
        stranger = KeyringTrustPolicy(TrustStore(tmp_path / "other"), "x")
        stranger.store.generate("Stranger", make_default=True)
        opened = alice_policy.open(stranger.sign(MANIFEST))
        assert not opened.valid
        assert "no public key" in opened.message

    def test_malformed_signature(self, alice_policy):
        envelope = SignedEnvelope.from_bytes(alice_policy.sign(MANIFEST))
        envelope.signatures[0].signature = "not-hex"
        opened = alice_policy.open(envelope.to_bytes())
        assert not opened.valid
        assert "malformed signature" in opened.message

    def test_unsigned_envelope(self, alice_policy):
        opened = alice_policy.open(SignedEnvelope(payload=MANIFEST).to_bytes())
        assert not opened.valid
        assert opened.message == "no signatures"

    def test_bare_manifest_is_invalid(self, alice_policy):
        opened = alice_policy.open(MANIFEST.encode())
        assert not opened.valid
        assert opened.payload == MANIFEST.encode()

    def test_multiple_signers(self, keyring, alice_policy, alice, bob):
        both = KeyringTrustPolicy(keyring, "alice", signers=["alice", "bob"])
        blob = both.sign(MANIFEST)
        keys = [s.key_id for s in SignedEnvelope.from_bytes(blob).signatures]
        assert sorted(keys) == sorted([alice.key_id, bob.key_id])
        opened = alice_policy.open(blob)
        assert opened.valid
        assert "untrusted" in opened.message

    def test_one_bad_signature_invalidates(self, keyring, alice_policy):
        both = KeyringTrustPolicy(keyring, "alice", signers=["alice", "bob"])
        envelope = SignedEnvelope.from_bytes(both.sign(MANIFEST))
        sig = envelope.signatures[1]
        sig.signature = ("00" if sig.signature[:2] != "00" else "11") + sig.signature[2:]
        opened = alice_policy.open(envelope.to_bytes())
        assert not opened.valid
        assert "good signature" in opened.message
        assert "bad signature" in opened.message

    def test_default_signer(self, keyring, alice):
        policy = KeyringTrustPolicy(keyring, "alice")
        keys = [s.key_id for s in SignedEnvelope.from_bytes(policy.sign(MANIFEST)).signatures]
        assert keys == [alice.key_id]

    def test_missing_secret_raises(self, tmp_path, keyring):
        keyring.add(_public_identity("Eve"))
        policy = KeyringTrustPolicy(keyring, "eve", signers=["eve"])
        with pytest.raises(TrustError):
            policy.sign(MANIFEST)

    def test_acceptable_is_cached(self, keyring, alice_policy, alice):
        assert list(alice_policy.acceptable()) == [alice.key_id]
        keyring.generate("Alice Second")
        assert list(alice_policy.acceptable()) == [alice.key_id]

    def test_revoked_not_acceptable(self, keyring, alice):
        revoked = alice.model_copy(update={"revoked": True})
        keyring.add(revoked)
        policy = KeyringTrustPolicy(keyring, "alice")
        assert policy.acceptable() == {}
        assert "no identity" in policy.describe()

    def test_describe_lists_identities(self, alice_policy, alice):
        assert alice_policy.describe() == str(alice)


# ── NullTrustPolicy ──────────────────────────────────────────────────


class TestNullPolicy:
    def test_satisfies_protocol(self, null_policy):
        assert isinstance(null_policy, TrustPolicy)

    def test_sign_writes_bare_text(self, null_policy):
        assert null_policy.sign(MANIFEST) == MANIFEST.encode()

    def test_open_always_valid(self, null_policy):
        opened = null_policy.open(b"anything")
        assert opened.valid
        assert opened.payload == b"anything"

    def test_open_unwraps_envelope(self, null_policy, alice_policy):
        opened = null_policy.open(alice_policy.sign(MANIFEST))
        assert opened.valid
        assert opened.payload == MANIFEST.encode()


# ── Factory ──────────────────────────────────────────────────────────


def test_factory_without_selector_is_null():
    assert isinstance(create_trust_policy(TrustConfig()), NullTrustPolicy)


def test_factory_with_selector(keyring):
    config = TrustConfig(keyring_dir=str(keyring.directory), selector="alice")
    policy = create_trust_policy(config)
    assert isinstance(policy, KeyringTrustPolicy)
    assert policy.signers == ("alice",)


def test_factory_signer_override(keyring):
    config = TrustConfig(keyring_dir=str(keyring.directory), selector="alice")
    policy = create_trust_policy(config, signer="bob")
    assert policy.selector == "bob"


def test_factory_configured_signers(keyring):
    config = TrustConfig(
        keyring_dir=str(keyring.directory), selector="alice", signers=["alice", "bob"]
    )
    assert create_trust_policy(config).signers == ("alice", "bob")
