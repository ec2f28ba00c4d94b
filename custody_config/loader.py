"""
Configuration Loader (``custody_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into typed
``custody_config.schema`` dataclass instances.  The single public entry
point for runtime config is ``custody_config.get_active_config()``.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; there are no silent defaults
  for ``config_id``, ``version``, ``token.name`` or ``token.symbol``.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from custody_config.schema import CustodyConfig, LimitsConfig, TokenConfig, VaultConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_token(data: dict[str, Any]) -> TokenConfig:
    """Parse a TokenConfig from a dict."""
    return TokenConfig(
        name=data["name"],
        symbol=data["symbol"],
        decimals=data.get("decimals", 18),
        initial_supply=data.get("initial_supply", 0),
        max_batch_size=data.get("max_batch_size", 100),
        ledger_id=data.get("ledger_id", "token"),
    )


def parse_vault(data: dict[str, Any]) -> VaultConfig:
    """Parse a VaultConfig from a dict."""
    return VaultConfig(vault_id=data.get("vault_id", "custody-vault"))


def parse_limits(data: dict[str, Any]) -> LimitsConfig:
    """Parse a LimitsConfig from a dict."""
    return LimitsConfig(amount_bits=data.get("amount_bits", 256))


def parse_config(data: dict[str, Any]) -> CustodyConfig:
    """Parse a whole configuration document."""
    return CustodyConfig(
        config_id=data["config_id"],
        version=data["version"],
        token=parse_token(data["token"]),
        vault=parse_vault(data.get("vault") or {}),
        limits=parse_limits(data.get("limits") or {}),
        description=data.get("description", ""),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> CustodyConfig:
    """Load and parse one configuration set file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
