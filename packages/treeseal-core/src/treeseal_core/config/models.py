from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TrustConfig(BaseModel):
    keyring_dir: str = "~/.treeseal/keyring"
    # Identities accepted on verify; unset means digest-only mode
    selector: str | None = None
    # Identities used to sign; empty means the selector (or the keyring default)
    signers: list[str] = Field(default_factory=list)


class ScanConfig(BaseModel):
    recursive: bool = False
    exclude: list[str] = Field(default_factory=list)


class TreeSealConfig(BaseModel):
    trust: TrustConfig = Field(default_factory=TrustConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"


class RunOptions(BaseModel):
    """Immutable per-run settings handed to root sets and the attestor."""

    model_config = ConfigDict(frozen=True)

    recursive: bool = False
    excludes: tuple[str, ...] = ()
    dry_run: bool = False
    verbose: bool = False
    signer: str | None = None
    signatures_only: bool = False
    dirs_only: bool = False

    @classmethod
    def from_config(
        cls,
        config: TreeSealConfig,
        *,
        recursive: bool = False,
        excludes: tuple[str, ...] | list[str] = (),
        **flags: object,
    ) -> RunOptions:
        """Merge config-file defaults with command-line flags."""
        return cls(
            recursive=recursive or config.scan.recursive,
            excludes=(*config.scan.exclude, *excludes),
            **flags,
        )
