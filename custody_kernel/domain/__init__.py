"""
Pure domain layer.

The guarded-ledger building blocks: balance bookkeeping, role registry,
reentrancy guard, pause switch and batch coordinator. None of them know
about each other except BatchTransferCoordinator, which is built on
BalanceLedger. Composition happens in custody_kernel.services.
"""

from custody_kernel.domain.access_control import (
    ADMIN_ROLE,
    MINTER_ROLE,
    AccessControlRegistry,
)
from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.domain.balance_ledger import BalanceLedger
from custody_kernel.domain.batch import (
    DEFAULT_MAX_BATCH_SIZE,
    BatchTransferCoordinator,
    BatchTransferResult,
)
from custody_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from custody_kernel.domain.pause import PauseState, PauseSwitch
from custody_kernel.domain.reentrancy import ReentrancyGuard
from custody_kernel.domain.values import (
    MAX_UINT256,
    NULL_PRINCIPAL,
    Principal,
    checked_add,
    checked_sub,
    is_null_principal,
    require_amount,
)

__all__ = [
    # Values
    "MAX_UINT256",
    "NULL_PRINCIPAL",
    "Principal",
    "checked_add",
    "checked_sub",
    "is_null_principal",
    "require_amount",
    # Components
    "AccessControlRegistry",
    "ADMIN_ROLE",
    "MINTER_ROLE",
    "BalanceLedger",
    "BatchTransferCoordinator",
    "BatchTransferResult",
    "DEFAULT_MAX_BATCH_SIZE",
    "PauseState",
    "PauseSwitch",
    "ReentrancyGuard",
    # Audit
    "AuditAction",
    "AuditRecord",
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
]
