"""Shared test fixtures for TreeSeal."""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from treeseal_core.config.models import RunOptions, TreeSealConfig
from treeseal_core.merkle.models import MANIFEST_NAME
from treeseal_core.trust.keyring import TrustStore
from treeseal_core.trust.policy import KeyringTrustPolicy, NullTrustPolicy


def write_files(directory: Path, files: dict[str, str]) -> Path:
    """Create *files* (relative path -> text) under *directory*."""
    for rel, content in files.items():
        path = directory / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return directory


def age_tree(root: Path, entries_age: float = 200, manifest_age: float = 100) -> None:
    """Backdate everything under *root*; manifests stay newer than entries.

    Filesystem timestamps are coarse, so tests that depend on mtime
    ordering set it explicitly instead of relying on wall-clock gaps.
    """
    now = time.time()
    entries = now - entries_age
    manifests = now - manifest_age
    for dirpath, dirnames, filenames in os.walk(root):
        for name in filenames + dirnames:
            path = Path(dirpath) / name
            t = manifests if name == MANIFEST_NAME else entries
            os.utime(path, (t, t), follow_symlinks=False)
    os.utime(root, (entries, entries))


@pytest.fixture
def null_policy():
    return NullTrustPolicy()


@pytest.fixture
def keyring(tmp_path):
    """A trust store with a default identity (alice) and a second one (bob)."""
    store = TrustStore(tmp_path / "keyring")
    store.generate("Alice <alice@example.org>", make_default=True)
    store.generate("Bob <bob@example.org>")
    return store


@pytest.fixture
def alice(keyring):
    return keyring.find("alice")[0]


@pytest.fixture
def bob(keyring):
    return keyring.find("bob")[0]


@pytest.fixture
def alice_policy(keyring):
    return KeyringTrustPolicy(keyring, "alice", signers=["alice"])


@pytest.fixture
def sample_dir(tmp_path):
    """Directory with a.txt='hello' and b.txt='world'."""
    d = tmp_path / "data"
    d.mkdir()
    return write_files(d, {"a.txt": "hello", "b.txt": "world"})


@pytest.fixture
def nested_tree(tmp_path):
    """root/top.txt, root/sub/file.txt, root/sub/deeper/leaf.txt."""
    root = tmp_path / "root"
    root.mkdir()
    return write_files(
        root,
        {
            "top.txt": "top",
            "sub/file.txt": "file",
            "sub/deeper/leaf.txt": "leaf",
        },
    )


@pytest.fixture
def sample_config():
    return TreeSealConfig()


@pytest.fixture
def options():
    return RunOptions()


@pytest.fixture
def recursive_options():
    return RunOptions(recursive=True)
