"""
Config -> Kernel Bridges.

Functions that turn a validated CustodyConfig into kernel instances. These
live in custody_config (the producer) because the kernel must NEVER import
custody_config.

Usage:
    from custody_config.bridges import build_custody_vault, build_token_ledger

    config = get_active_config()
    token = build_token_ledger(config, creator="0xabc...")
    vault = build_custody_vault(config, owner="0xabc...")
"""

from __future__ import annotations

from typing import Any

from custody_config.schema import CustodyConfig
from custody_kernel.services.custody_vault import CustodyVault
from custody_kernel.services.token_ledger import TokenLedger


def build_token_ledger(config: CustodyConfig, creator: str, **kwargs: Any) -> TokenLedger:
    """
    Build a TokenLedger from ``config.token`` and ``config.limits``.

    Extra keyword arguments (``clock``, ``sinks``, or overrides of any
    configured parameter) are passed through to the constructor.
    """
    token = config.token
    params: dict[str, Any] = {
        "max_batch_size": token.max_batch_size,
        "max_amount": config.limits.max_amount,
        "name": token.name,
        "symbol": token.symbol,
        "decimals": token.decimals,
        "ledger_id": token.ledger_id,
    }
    params.update(kwargs)
    initial_supply = params.pop("initial_supply", token.initial_supply)
    return TokenLedger(creator, initial_supply, **params)


def build_custody_vault(config: CustodyConfig, owner: str, **kwargs: Any) -> CustodyVault:
    """
    Build a CustodyVault from ``config.vault`` and ``config.limits``.

    Extra keyword arguments (``executor``, ``clock``, ``sinks``) are passed
    through to the constructor.
    """
    params: dict[str, Any] = {
        "vault_id": config.vault.vault_id,
        "max_amount": config.limits.max_amount,
    }
    params.update(kwargs)
    return CustodyVault(owner, **params)
