"""
CustodyConfig schema.

Human-authored, reviewable configuration for one deployment of the custody
kernel: token metadata and supply, the vault identity and the amount width.
YAML files are parsed into these types by the loader and validated by the
validator before anything is built from them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenConfig:
    """Construction parameters of a TokenLedger."""

    name: str
    symbol: str
    decimals: int = 18
    initial_supply: int = 0
    max_batch_size: int = 100
    ledger_id: str = "token"


@dataclass(frozen=True)
class VaultConfig:
    """Construction parameters of a CustodyVault."""

    vault_id: str = "custody-vault"


@dataclass(frozen=True)
class LimitsConfig:
    """Amount width. Amounts are unsigned integers of ``amount_bits`` bits."""

    amount_bits: int = 256

    @property
    def max_amount(self) -> int:
        return 2**self.amount_bits - 1


@dataclass(frozen=True)
class CustodyConfig:
    """A complete, versioned configuration set."""

    config_id: str
    version: int
    token: TokenConfig
    vault: VaultConfig
    limits: LimitsConfig
    description: str = ""
    checksum: str = ""
