"""TreeSeal Core - signed per-directory manifests for tamper detection."""

from treeseal_core.config import RunOptions, TreeSealConfig, load_config
from treeseal_core.events import ChangeReport, CollectingSink, Control, DispatchSink
from treeseal_core.merkle import Attestor, ChecksumSet, DirectoryState, PathScanner, RootSet
from treeseal_core.trust import KeyringTrustPolicy, NullTrustPolicy, TrustStore, create_trust_policy

__version__ = "0.1.0"

__all__ = [
    "Attestor",
    "ChangeReport",
    "ChecksumSet",
    "CollectingSink",
    "Control",
    "DirectoryState",
    "DispatchSink",
    "KeyringTrustPolicy",
    "NullTrustPolicy",
    "PathScanner",
    "RootSet",
    "RunOptions",
    "TreeSealConfig",
    "TrustStore",
    "create_trust_policy",
    "load_config",
]
