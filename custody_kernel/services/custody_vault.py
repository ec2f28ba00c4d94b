"""
CustodyVault -- deposit/withdraw custody with guarded value release.

Responsibility:
    Holds value on behalf of depositors. Tracks each depositor's claim in
    a BalanceLedger (whose total is ``total_deposits``) and the value it
    actually holds in ``reserve``. Releases value through the
    ExternalCallExecutor, the only point where control leaves the kernel.

Architecture position:
    Kernel > Services -- composes the domain components with an
    ExternalCallExecutor. Runs every entry point through GuardedLedger's
    pipeline.

Invariants enforced:
    CONSERVATION -- ``sum(balances) == total_deposits``.
    CHECKS_EFFECTS_INTERACTIONS -- ``withdraw`` validates, debits, lowers
        the reserve and appends its audit record before releasing value.
    NO_REENTRY -- a target that calls back into this vault during a value
        release gets ReentrantCallError. Re-entering a different instance
        is allowed.

Failure modes:
    - InsufficientFundsError: withdraw more than the caller's balance.
    - InsufficientReserveError: withdraw or drain more than the reserve.
    - ExternalCallFailedError: the value release failed; the whole
      invocation is rolled back.
    - InvalidRecipientError / InvalidTargetError: null principals.
    - UnauthorizedError: admin entry points without ADMIN_ROLE.

Audit relevance:
    DEPOSIT, FUNDING, WITHDRAWAL and EMERGENCY_WITHDRAWAL records are
    appended before the release. EXTERNAL_CALL records carry the target
    and outcome and are appended right after the call.
"""

from __future__ import annotations

from typing import Any, Iterable

from custody_kernel.domain.access_control import ADMIN_ROLE
from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.domain.clock import Clock
from custody_kernel.domain.values import (
    MAX_UINT256,
    checked_add,
    is_null_principal,
    require_amount,
)
from custody_kernel.exceptions import (
    ExternalCallFailedError,
    InsufficientFundsError,
    InsufficientReserveError,
    InvalidRecipientError,
    InvalidTargetError,
)
from custody_kernel.logging_config import get_logger
from custody_kernel.services.auditor_service import AuditSink
from custody_kernel.services.external_call_executor import (
    CallResult,
    ExternalCallExecutor,
)
from custody_kernel.services.guarded_ledger import GuardedLedger

logger = get_logger("services.custody_vault")


class CustodyVault(GuardedLedger):
    """
    Guarded custody vault.

    Contract:
        ``deposit`` credits the caller and grows the reserve by the same
        amount. ``fund`` grows the reserve without crediting anyone.
        ``withdraw`` reverses a deposit and releases the value to the
        caller. ``emergency_withdraw`` drains the whole reserve to a
        recipient chosen by an administrator, leaving depositors' claims
        in place.

    Guarantees:
        - A withdrawal either completes (debit, reserve, record, release)
          or leaves no trace.
        - The guard is held across the value release.

    Non-goals:
        - No yield, fees or interest on deposits.
        - Does NOT make depositors whole after an emergency drain.
    """

    def __init__(
        self,
        owner: str,
        *,
        executor: ExternalCallExecutor | None = None,
        vault_id: str = "vault",
        max_amount: int = MAX_UINT256,
        clock: Clock | None = None,
        sinks: Iterable[AuditSink] = (),
    ):
        super().__init__(
            owner,
            ledger_id=vault_id,
            max_amount=max_amount,
            clock=clock,
            sinks=sinks,
        )
        self._executor = executor or ExternalCallExecutor()
        self._reserve = 0

        self._auditor.append(
            AuditAction.LEDGER_CREATED,
            owner,
            principals=(owner,),
            amount=0,
        )
        self._auditor.publish_pending()

        logger.info("custody_vault_created", extra={"vault_id": vault_id})

    # Properties

    @property
    def vault_id(self) -> str:
        return self._ledger_id

    @property
    def executor(self) -> ExternalCallExecutor:
        return self._executor

    # Reads

    def reserve(self) -> int:
        """Value the vault actually holds."""
        return self._reserve

    def total_deposits(self) -> int:
        """Sum of all depositors' claims."""
        return self._ledger.total

    # Custody

    def deposit(self, caller: str, amount: int) -> AuditRecord:
        """Credit ``amount`` to the caller and add it to the reserve."""
        with self._invocation("deposit", caller):
            amount = require_amount(amount, max_amount=self.max_amount)
            new_reserve = checked_add(self._reserve, amount, self.max_amount)
            self._ledger.credit(caller, amount)
            self._reserve = new_reserve
            return self._auditor.append(
                AuditAction.DEPOSIT,
                caller,
                principals=(caller,),
                amount=amount,
                payload={"reserve": new_reserve},
            )

    def fund(self, caller: str, amount: int) -> AuditRecord:
        """Add ``amount`` to the reserve without crediting a balance."""
        with self._invocation("fund", caller):
            amount = require_amount(amount, max_amount=self.max_amount)
            self._reserve = checked_add(self._reserve, amount, self.max_amount)
            return self._auditor.append(
                AuditAction.FUNDING,
                caller,
                principals=(caller,),
                amount=amount,
                payload={"reserve": self._reserve},
            )

    def withdraw(self, caller: str, amount: int) -> AuditRecord:
        """
        Debit ``amount`` from the caller and release it to them.

        Raises:
            InsufficientFundsError: If the caller's balance is lower.
            InsufficientReserveError: If the reserve cannot back the release.
            ExternalCallFailedError: If the release fails.
        """
        with self._invocation("withdraw", caller):
            amount = require_amount(amount, max_amount=self.max_amount)
            available = self._ledger.balance_of(caller)
            if available < amount:
                raise InsufficientFundsError(caller, available, amount)
            if self._reserve < amount:
                raise InsufficientReserveError(self._reserve, amount)

            # Effects
            self._ledger.debit(caller, amount)
            self._reserve -= amount
            record = self._auditor.append(
                AuditAction.WITHDRAWAL,
                caller,
                principals=(caller,),
                amount=amount,
                payload={"reserve": self._reserve},
            )

            # Interaction
            self._release(caller, amount)
            return record

    def emergency_withdraw(self, caller: str, recipient: str) -> AuditRecord:
        """
        Drain the whole reserve to ``recipient``. Admin only.

        Available while paused. Depositor balances are left unchanged.

        Raises:
            InvalidRecipientError: If ``recipient`` is the null identity.
            InsufficientReserveError: If the reserve is empty.
            ExternalCallFailedError: If the release fails.
        """
        with self._invocation(
            "emergency_withdraw", caller, role=ADMIN_ROLE, pausable=False
        ):
            if is_null_principal(recipient):
                raise InvalidRecipientError(recipient)
            amount = self._reserve
            if amount == 0:
                raise InsufficientReserveError(0, 1)

            self._reserve = 0
            record = self._auditor.append(
                AuditAction.EMERGENCY_WITHDRAWAL,
                caller,
                principals=(recipient,),
                amount=amount,
                payload={"total_deposits": self._ledger.total},
            )
            logger.warning(
                "emergency_withdrawal",
                extra={"recipient": recipient, "amount": amount},
            )

            self._release(recipient, amount)
            return record

    def execute_call(self, caller: str, target: str, payload: bytes = b"") -> CallResult:
        """
        Invoke ``target`` with ``payload`` and no value. Admin only.

        A failing target is reported in the returned CallResult, not
        raised; the EXTERNAL_CALL record is written either way.

        Raises:
            InvalidTargetError: If ``target`` is the null identity.
        """
        with self._invocation("execute_call", caller, role=ADMIN_ROLE, pausable=False):
            if is_null_principal(target):
                raise InvalidTargetError(target)
            result = self._executor.invoke(self.vault_id, target, bytes(payload))
            self._auditor.append(
                AuditAction.EXTERNAL_CALL,
                caller,
                principals=(target,),
                payload={
                    "success": result.success,
                    "return_data": result.return_data.hex(),
                    "error": result.error,
                },
            )
            return result

    # Internals

    def _release(self, recipient: str, amount: int) -> None:
        result = self._executor.invoke(self.vault_id, recipient, value=amount)
        if not result.success:
            raise ExternalCallFailedError(recipient, amount, result.error)

    def _capture_state(self) -> dict[str, Any]:
        state = super()._capture_state()
        state["reserve"] = self._reserve
        return state

    def _restore_state(self, state: dict[str, Any]) -> None:
        super()._restore_state(state)
        self._reserve = state["reserve"]
