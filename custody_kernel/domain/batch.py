"""
BatchTransferCoordinator -- bounded, validate-then-commit multi-transfer.

Responsibility:
    Executes a list of (recipient, amount) transfers from a single sender
    as one all-or-nothing step on a BalanceLedger.

Architecture position:
    Kernel > Domain -- built on BalanceLedger. The reentrancy guard, pause
    check and the aggregate audit record are applied by the token entry
    point that owns the coordinator.

Invariants enforced:
    BOUNDED_BATCH -- at most ``max_batch_size`` entries.
    ATOMIC_INVOCATION -- every entry is validated and the total is checked
        against the sender's balance before the first transfer; once
        validation passes no transfer can fail.

Failure modes (checked in this order):
    1. LengthMismatchError
    2. EmptyBatchError
    3. BatchTooLargeError
    4. InvalidRecipientError / InvalidAmountError / AmountOverflowError,
       first offending index wins
    5. InsufficientFundsError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from custody_kernel.domain.balance_ledger import BalanceLedger
from custody_kernel.domain.values import (
    checked_add,
    is_null_principal,
    require_amount,
)
from custody_kernel.exceptions import (
    BatchTooLargeError,
    EmptyBatchError,
    InsufficientFundsError,
    InvalidRecipientError,
    LengthMismatchError,
)
from custody_kernel.logging_config import get_logger

logger = get_logger("domain.batch")

DEFAULT_MAX_BATCH_SIZE = 100


@dataclass(frozen=True)
class BatchTransferResult:
    """Outcome of a committed batch."""

    sender: str
    recipient_count: int
    total: int
    audit_seq: int | None = None


class BatchTransferCoordinator:
    """
    Validate-then-commit batch executor.

    Contract:
        ``execute`` either applies every transfer or raises before applying
        any of them.

    Non-goals:
        - Does NOT deduplicate recipients; repeated recipients receive each
          of their amounts.
        - Does NOT emit per-recipient audit records.
    """

    def __init__(self, ledger: BalanceLedger, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE):
        if isinstance(max_batch_size, bool) or not isinstance(max_batch_size, int) or max_batch_size <= 0:
            raise ValueError(f"max_batch_size must be a positive integer, got {max_batch_size!r}")
        self._ledger = ledger
        self._max_batch_size = max_batch_size

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    def validate(
        self,
        sender: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
    ) -> int:
        """
        Run every check without mutating anything.

        Returns:
            The batch total.
        """
        if len(recipients) != len(amounts):
            raise LengthMismatchError(len(recipients), len(amounts))
        if len(recipients) == 0:
            raise EmptyBatchError()
        if len(recipients) > self._max_batch_size:
            raise BatchTooLargeError(len(recipients), self._max_batch_size)

        max_amount = self._ledger.max_amount
        total = 0
        for index, (recipient, amount) in enumerate(zip(recipients, amounts)):
            if is_null_principal(recipient):
                raise InvalidRecipientError(recipient, index)
            amount = require_amount(amount, max_amount=max_amount, index=index)
            total = checked_add(total, amount, max_amount)

        available = self._ledger.balance_of(sender)
        if available < total:
            raise InsufficientFundsError(sender, available, total)
        return total

    def execute(
        self,
        sender: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
    ) -> BatchTransferResult:
        """Validate the whole batch, then apply each transfer."""
        recipients = list(recipients)
        amounts = list(amounts)
        total = self.validate(sender, recipients, amounts)

        for recipient, amount in zip(recipients, amounts):
            self._ledger.transfer(sender, recipient, amount)

        logger.debug(
            "batch_transfer_applied",
            extra={"sender": sender, "recipient_count": len(recipients), "total": total},
        )
        return BatchTransferResult(
            sender=sender,
            recipient_count=len(recipients),
            total=total,
        )
