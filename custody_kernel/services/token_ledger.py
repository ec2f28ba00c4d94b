"""
TokenLedger -- fungible token balances with allowances, minting and batches.

Responsibility:
    The token-ledger instance: a BalanceLedger whose total is the total
    supply, plus delegated spending, role-gated minting and bounded batch
    transfers. All entry points run through GuardedLedger's pipeline.

Architecture position:
    Kernel > Services -- composes the domain components. Makes no external
    calls, so every invocation is a single uninterrupted step.

Invariants enforced:
    CONSERVATION -- ``sum(balances) == total_supply``. Only ``mint`` and the
        constructor create units. There is no burn.
    NON_NEGATIVE -- via BalanceLedger.
    BOUNDED_BATCH -- via BatchTransferCoordinator.

Failure modes:
    - InvalidRecipientError / InvalidSpenderError / InvalidOwnerError /
      InvalidAmountError: input validation, nothing mutated.
    - InsufficientFundsError / InsufficientAllowanceError.
    - AmountOverflowError: mint past ``max_amount``.
    - UnauthorizedError: mint without MINTER_ROLE; minter management
      without ADMIN_ROLE.
    - SystemPausedError: any movement while paused.

Audit relevance:
    One AuditRecord per committed call. A batch leaves a single
    BATCH_TRANSFER record carrying the recipient count and total.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from custody_kernel.domain.access_control import ADMIN_ROLE, MINTER_ROLE
from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.domain.batch import (
    DEFAULT_MAX_BATCH_SIZE,
    BatchTransferCoordinator,
    BatchTransferResult,
)
from custody_kernel.domain.clock import Clock
from custody_kernel.domain.values import (
    MAX_UINT256,
    is_null_principal,
    require_amount,
)
from custody_kernel.exceptions import (
    InvalidOwnerError,
    InvalidRecipientError,
    InvalidSpenderError,
)
from custody_kernel.logging_config import get_logger
from custody_kernel.services.auditor_service import AuditSink
from custody_kernel.services.guarded_ledger import GuardedLedger

logger = get_logger("services.token_ledger")


class TokenLedger(GuardedLedger):
    """
    Guarded fungible token.

    Contract:
        The creator receives ``initial_supply`` and holds ADMIN_ROLE and
        MINTER_ROLE. Every amount moved must be positive; ``approve`` alone
        accepts zero (to clear an allowance).

    Guarantees:
        - ``transfer_from`` reports its true outcome: it raises on any
          failure and never returns a success value for a move that did not
          happen.
        - Allowances are only consumed, never replenished, by
          ``transfer_from``.

    Non-goals:
        - No burn, no fees, no snapshots.
        - No allowance race mitigation beyond overwrite-on-approve.
    """

    def __init__(
        self,
        creator: str,
        initial_supply: int = 0,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        max_amount: int = MAX_UINT256,
        name: str = "Secure Token",
        symbol: str = "STK",
        decimals: int = 18,
        clock: Clock | None = None,
        sinks: Iterable[AuditSink] = (),
        ledger_id: str = "token",
    ):
        super().__init__(
            creator,
            ledger_id=ledger_id,
            max_amount=max_amount,
            clock=clock,
            sinks=sinks,
            bootstrap_roles=(MINTER_ROLE,),
        )
        initial_supply = require_amount(initial_supply, allow_zero=True, max_amount=max_amount)
        self._batch = BatchTransferCoordinator(self._ledger, max_batch_size)
        self._name = name
        self._symbol = symbol
        self._decimals = decimals

        if initial_supply:
            self._ledger.credit(creator, initial_supply)
        self._auditor.append(
            AuditAction.LEDGER_CREATED,
            creator,
            principals=(creator,),
            amount=initial_supply,
            payload={"name": name, "symbol": symbol, "decimals": decimals},
        )
        self._auditor.publish_pending()

        logger.info(
            "token_ledger_created",
            extra={
                "ledger_id": ledger_id,
                "symbol": symbol,
                "initial_supply": initial_supply,
                "max_batch_size": max_batch_size,
            },
        )

    # Metadata

    @property
    def name(self) -> str:
        return self._name

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    @property
    def max_batch_size(self) -> int:
        return self._batch.max_batch_size

    # Reads

    def total_supply(self) -> int:
        return self._ledger.total

    def allowance(self, owner: str, spender: str) -> int:
        return self._ledger.allowance(owner, spender)

    # Movements

    def transfer(self, caller: str, to: str, amount: int) -> AuditRecord:
        """
        Move ``amount`` from ``caller`` to ``to``.

        Raises:
            InvalidRecipientError: If ``to`` is the null identity.
            InvalidAmountError: If ``amount`` is not a positive int.
            InsufficientFundsError: If the caller holds less than amount.
        """
        with self._invocation("transfer", caller):
            if is_null_principal(to):
                raise InvalidRecipientError(to)
            amount = require_amount(amount, max_amount=self.max_amount)
            self._ledger.transfer(caller, to, amount)
            return self._auditor.append(
                AuditAction.TRANSFER,
                caller,
                principals=(caller, to),
                amount=amount,
            )

    def approve(self, caller: str, spender: str, amount: int) -> AuditRecord:
        """Set ``spender``'s allowance over the caller's balance (overwrites)."""
        with self._invocation("approve", caller):
            if is_null_principal(spender):
                raise InvalidSpenderError(spender)
            amount = require_amount(amount, allow_zero=True, max_amount=self.max_amount)
            self._ledger.approve(caller, spender, amount)
            return self._auditor.append(
                AuditAction.APPROVAL,
                caller,
                principals=(caller, spender),
                amount=amount,
            )

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> AuditRecord:
        """
        Move ``amount`` from ``owner`` to ``to`` using the caller's allowance.

        The owner's balance is checked before the allowance is consumed, so
        a failed move never burns allowance.

        Raises:
            InvalidOwnerError / InvalidRecipientError: Null principals.
            InsufficientFundsError: If the owner holds less than amount.
            InsufficientAllowanceError: If the allowance is lower than amount.
        """
        with self._invocation("transfer_from", caller):
            if is_null_principal(owner):
                raise InvalidOwnerError(owner)
            if is_null_principal(to):
                raise InvalidRecipientError(to)
            amount = require_amount(amount, max_amount=self.max_amount)
            self._ledger.transfer(owner, to, amount)
            remaining = self._ledger.spend_allowance(owner, caller, amount)
            return self._auditor.append(
                AuditAction.DELEGATED_TRANSFER,
                caller,
                principals=(owner, to),
                amount=amount,
                payload={"remaining_allowance": remaining},
            )

    def mint(self, caller: str, to: str, amount: int) -> AuditRecord:
        """
        Create ``amount`` new units for ``to``. Requires MINTER_ROLE.

        Raises:
            UnauthorizedError: If the caller is not a minter.
            AmountOverflowError: If total supply would exceed max_amount.
        """
        with self._invocation("mint", caller, role=MINTER_ROLE):
            if is_null_principal(to):
                raise InvalidRecipientError(to)
            amount = require_amount(amount, max_amount=self.max_amount)
            self._ledger.credit(to, amount)
            return self._auditor.append(
                AuditAction.MINT,
                caller,
                principals=(to,),
                amount=amount,
                payload={"total_supply": self._ledger.total},
            )

    def batch_transfer(
        self,
        caller: str,
        recipients: Sequence[str],
        amounts: Sequence[int],
    ) -> BatchTransferResult:
        """
        Transfer to many recipients as one all-or-nothing step.

        Raises:
            LengthMismatchError, EmptyBatchError, BatchTooLargeError,
            InvalidRecipientError, InvalidAmountError, InsufficientFundsError.
        """
        with self._invocation("batch_transfer", caller):
            result = self._batch.execute(caller, recipients, amounts)
            record = self._auditor.append(
                AuditAction.BATCH_TRANSFER,
                caller,
                principals=(caller,),
                amount=result.total,
                payload={"recipient_count": result.recipient_count},
            )
            return BatchTransferResult(
                sender=result.sender,
                recipient_count=result.recipient_count,
                total=result.total,
                audit_seq=record.seq,
            )

    # Minter management

    def add_minter(self, caller: str, principal: str) -> AuditRecord | None:
        """Grant MINTER_ROLE. Admin only."""
        return self.grant_role(caller, MINTER_ROLE, principal)

    def remove_minter(self, caller: str, principal: str) -> AuditRecord | None:
        """Revoke MINTER_ROLE. Admin only."""
        return self.revoke_role(caller, MINTER_ROLE, principal)

    def is_minter(self, principal: str) -> bool:
        return self._registry.has(MINTER_ROLE, principal)

    def is_admin(self, principal: str) -> bool:
        return self._registry.has(ADMIN_ROLE, principal)
