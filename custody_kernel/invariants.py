"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the ledger
components and entry points. No configuration set may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across BalanceLedger, ReentrancyGuard,
PauseSwitch, AccessControlRegistry, BatchTransferCoordinator and the
guarded entry points in services/.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    CONSERVATION = "conservation"
    """Sum of all balances equals the ledger total (total supply for the
    token, net deposits for the vault). Enforced by BalanceLedger, which
    moves the total with every credit and debit."""

    NON_NEGATIVE = "non_negative"
    """No balance or allowance is ever negative. Enforced by checked
    subtraction in BalanceLedger."""

    ATOMIC_INVOCATION = "atomic_invocation"
    """An invocation commits completely or not at all. Enforced by the
    ledger savepoint and audit savepoint opened by GuardedLedger."""

    NO_REENTRY = "no_reentry"
    """No guarded entry point runs while another one on the same instance
    is suspended in an external call. Enforced by ReentrancyGuard."""

    CHECKS_EFFECTS_INTERACTIONS = "checks_effects_interactions"
    """External calls happen only after validation and state mutation.
    Enforced by the ordering inside each entry point."""

    ADMIN_PRESENT = "admin_present"
    """At least one principal holds the administrative role. Enforced by
    AccessControlRegistry.revoke."""

    BOUNDED_BATCH = "bounded_batch"
    """Batch operations never exceed MAX_BATCH_SIZE entries. Enforced by
    BatchTransferCoordinator."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "custody_config",
)
