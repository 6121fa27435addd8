"""YAML config loading with env var expansion."""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import TreeSealConfig

CONFIG_ENV_VAR = "TREESEAL_CONFIG"
PROJECT_CONFIG = "treeseal.yaml"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _candidate_paths(cli_path: str | None) -> Iterator[Path]:
    """CLI path, then $TREESEAL_CONFIG, then project-local, then user-global."""
    for explicit in (cli_path, os.environ.get(CONFIG_ENV_VAR)):
        if explicit:
            yield Path(explicit).expanduser()
    yield Path(".") / PROJECT_CONFIG
    yield Path.home() / ".treeseal" / "config.yaml"


def _read(path: Path) -> TreeSealConfig | None:
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: expected a mapping, got {type(raw).__name__}")
    try:
        return TreeSealConfig.model_validate(_expand_env_vars(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e


def load_config(cli_path: str | None = None) -> TreeSealConfig:
    """Return the first non-empty config found, or the defaults.

    Raises ValueError when a config file exists but is not valid.
    """
    for path in _candidate_paths(cli_path):
        if not path.is_file():
            continue
        config = _read(path)
        if config is not None:
            return config
    return TreeSealConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings; unset vars become empty."""
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `treeseal config init`
DEFAULT_CONFIG_TEMPLATE = """\
# treeseal.yaml

# Signing and verification
trust:
  keyring_dir: "~/.treeseal/keyring"
  # selector: "alice"            # accepted signers; unset = digest-only mode
  # signers: ["alice"]           # keys used to sign; default = selector or keyring default

# Directory traversal
scan:
  recursive: false
  exclude: []                    # glob patterns relative to each root, e.g. ".git", "build/*"

# Logging
log_level: "info"                # debug | info | warn | error
"""
