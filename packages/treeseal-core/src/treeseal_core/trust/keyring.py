"""On-disk trust store of Ed25519 signing identities."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

import yaml
from nacl.signing import SigningKey
from pydantic import ValidationError

from treeseal_core.trust.models import Identity, StoreEntry, TrustError

logger = logging.getLogger(__name__)

PUBLIC_SUFFIX = ".pub"
SECRET_SUFFIX = ".sec"
DEFAULT_FILE = "default"

_HEX_RE = re.compile(r"[0-9a-fA-F]{8,}")


def _terms(selector: str) -> list[str]:
    return [t for t in re.split(r"[\s,]+", selector.strip()) if t]


def _matches(identity: Identity, term: str) -> bool:
    if _HEX_RE.fullmatch(term) and identity.fingerprint.endswith(term.upper()):
        return True
    return term.lower() in identity.name.lower()


class TrustStore:
    """Directory of identities.

    Layout::

        <KEYID>.pub   YAML: name, public_key, usage, revoked, created
        <KEYID>.sec   hex Ed25519 seed, mode 0600
        default       key id of the default signing identity
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def identities(self) -> list[Identity]:
        """All readable public identities, sorted by key id."""
        if not self.directory.is_dir():
            return []
        found: list[Identity] = []
        for path in sorted(self.directory.glob(f"*{PUBLIC_SUFFIX}")):
            try:
                raw = yaml.safe_load(path.read_text())
                found.append(Identity(**raw))
            except (OSError, yaml.YAMLError, TypeError, ValidationError) as e:
                logger.warning("Skipping unreadable identity %s: %s", path, e)
        return found

    def get(self, key: str) -> Identity | None:
        """Find an identity by full fingerprint or key id."""
        key = key.strip().upper()
        if not key:
            return None
        for identity in self.identities():
            if identity.fingerprint.endswith(key):
                return identity
        return None

    def find(self, selector: str) -> list[Identity]:
        """Identities matching any term of *selector*."""
        terms = _terms(selector)
        return [i for i in self.identities() if any(_matches(i, t) for t in terms)]

    def entries(self) -> list[StoreEntry]:
        default = self._default_key_id()
        return [
            StoreEntry(
                identity=i,
                has_secret=self.has_secret(i),
                is_default=i.key_id == default,
            )
            for i in self.identities()
        ]

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def _secret_path(self, identity: Identity) -> Path:
        return self.directory / f"{identity.key_id}{SECRET_SUFFIX}"

    def has_secret(self, identity: Identity) -> bool:
        return self._secret_path(identity).is_file()

    def signing_key(self, identity: Identity) -> SigningKey:
        path = self._secret_path(identity)
        try:
            seed = bytes.fromhex(path.read_text().strip())
            key = SigningKey(seed)
        except FileNotFoundError:
            raise TrustError(f"no secret key for {identity}") from None
        except (OSError, ValueError) as e:
            raise TrustError(f"unusable secret key for {identity}: {e}") from e
        if bytes(key.verify_key).hex() != identity.public_key:
            raise TrustError(f"secret key does not match public key of {identity}")
        return key

    def _default_key_id(self) -> str | None:
        try:
            return (self.directory / DEFAULT_FILE).read_text().strip().upper() or None
        except FileNotFoundError:
            return None

    def default_identity(self) -> Identity:
        """The configured default, else the first identity we can sign with."""
        key_id = self._default_key_id()
        if key_id is not None:
            identity = self.get(key_id)
            if identity is None:
                raise TrustError(f"default identity {key_id} is not in {self.directory}")
            return identity
        for identity in self.identities():
            if identity.can_sign and self.has_secret(identity):
                return identity
        raise TrustError(f"no signing identity available in {self.directory}")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_default(self, identity: Identity) -> None:
        (self.directory / DEFAULT_FILE).write_text(identity.key_id + "\n")

    def add(self, identity: Identity) -> Path:
        """Import a public identity (e.g. a colleague's key)."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{identity.key_id}{PUBLIC_SUFFIX}"
        data = identity.model_dump(mode="json")
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    def generate(self, name: str, *, make_default: bool = False) -> Identity:
        """Create a new Ed25519 identity with its secret key."""
        key = SigningKey.generate()
        identity = Identity(
            name=name,
            public_key=bytes(key.verify_key).hex(),
            created=datetime.now(timezone.utc),
        )
        self.add(identity)

        secret = self._secret_path(identity)
        fd = os.open(secret, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(key.encode().hex() + "\n")

        if make_default:
            self.set_default(identity)
        logger.info("Generated identity %s in %s", identity, self.directory)
        return identity
