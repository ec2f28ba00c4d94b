"""
GuardedLedger -- shared invocation pipeline for token and vault.

Responsibility:
    Composes BalanceLedger, AccessControlRegistry, ReentrancyGuard,
    PauseSwitch and AuditorService into one owned structure, and runs every
    mutating entry point through the same pipeline:

        guard.acquire -> pause check -> role check -> (entry point body:
        input validation -> ledger mutation -> audit record -> optional
        external call) -> guard.release

Architecture position:
    Kernel > Services -- base class of TokenLedger and CustodyVault. Holds
    no module-level state; each instance owns all of its structures.

Invariants enforced:
    NO_REENTRY -- the guard is acquired before anything else and released
        on every exit path.
    ATOMIC_INVOCATION -- balance writes (journal), role memberships and
        pause state (snapshot) and audit records (savepoint) are rolled
        back together when the body raises.
    ADMIN_PRESENT -- delegated to AccessControlRegistry.

Failure modes:
    - ReentrantCallError: entry point called while this instance is
      suspended in an external call. Nothing is mutated.
    - SystemPausedError: pausable entry point called while paused.
    - UnauthorizedError: caller lacks the role the entry point requires.
    - Any error raised by the body aborts the invocation and propagates
      unchanged.

Audit relevance:
    Logs ``invocation_committed`` / ``invocation_aborted`` with the bound
    actor, operation and ledger id. Published audit records reach sinks
    only after the invocation commits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator
from uuid import uuid4

from custody_kernel.domain.access_control import ADMIN_ROLE, AccessControlRegistry
from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.domain.balance_ledger import BalanceLedger
from custody_kernel.domain.clock import Clock
from custody_kernel.domain.pause import PauseState, PauseSwitch
from custody_kernel.domain.reentrancy import ReentrancyGuard
from custody_kernel.domain.values import MAX_UINT256, is_null_principal
from custody_kernel.exceptions import (
    CustodyKernelError,
    InvalidOwnerError,
    InvalidRecipientError,
)
from custody_kernel.logging_config import LogContext, get_logger
from custody_kernel.services.auditor_service import AuditorService, AuditSink

logger = get_logger("services.guarded_ledger")


class GuardedLedger:
    """
    Base class for ledger instances with guarded entry points.

    Contract:
        Subclasses implement entry points as
        ``with self._invocation("op", caller, ...): <body>``.
        Subclasses with extra mutable state override ``_capture_state`` and
        ``_restore_state``.

    Guarantees:
        - A rejected or aborted invocation leaves balances, roles, pause
          state and the audit trail exactly as they were.
        - The creator holds ADMIN_ROLE (plus any ``bootstrap_roles``).

    Non-goals:
        - Does NOT provide atomicity across instances. A token transfer made
          from inside a vault's external call commits on its own.
    """

    def __init__(
        self,
        creator: str,
        *,
        ledger_id: str,
        max_amount: int = MAX_UINT256,
        clock: Clock | None = None,
        sinks: Iterable[AuditSink] = (),
        bootstrap_roles: tuple[str, ...] = (),
    ):
        if is_null_principal(creator):
            raise InvalidOwnerError(creator)
        self._ledger_id = ledger_id
        self._creator = creator
        self._ledger = BalanceLedger(max_amount=max_amount)
        self._registry = AccessControlRegistry(creator, bootstrap_roles)
        self._guard = ReentrancyGuard(f"{ledger_id}.guard")
        self._pause_switch = PauseSwitch(ledger_id)
        self._auditor = AuditorService(ledger_id, clock=clock, sinks=sinks)

    # Properties

    @property
    def ledger_id(self) -> str:
        return self._ledger_id

    @property
    def creator(self) -> str:
        return self._creator

    @property
    def auditor(self) -> AuditorService:
        return self._auditor

    @property
    def max_amount(self) -> int:
        return self._ledger.max_amount

    # Reads

    def balance_of(self, account: str) -> int:
        return self._ledger.balance_of(account)

    def accounts(self) -> list[str]:
        return self._ledger.accounts()

    def has_role(self, role: str, principal: str) -> bool:
        return self._registry.has(role, principal)

    def role_members(self, role: str) -> frozenset[str]:
        return self._registry.members(role)

    def is_paused(self) -> bool:
        return self._pause_switch.is_paused

    def is_locked(self) -> bool:
        """True while an invocation on this instance is in progress."""
        return self._guard.held

    def audit_records(self, action: AuditAction | None = None) -> tuple[AuditRecord, ...]:
        return self._auditor.records(action)

    # Administration

    def pause(self, caller: str) -> AuditRecord:
        """Stop every pausable entry point. Admin only."""
        with self._invocation("pause", caller, role=ADMIN_ROLE, pausable=False):
            self._pause_switch.pause()
            return self._auditor.append(AuditAction.PAUSED, caller)

    def unpause(self, caller: str) -> AuditRecord:
        """Resume normal operation. Admin only."""
        with self._invocation("unpause", caller, role=ADMIN_ROLE, pausable=False):
            self._pause_switch.unpause()
            return self._auditor.append(AuditAction.UNPAUSED, caller)

    def grant_role(self, caller: str, role: str, principal: str) -> AuditRecord | None:
        """
        Grant ``role`` to ``principal``. Admin only.

        Returns:
            The ROLE_GRANTED record, or None if the principal already held
            the role.
        """
        with self._invocation("grant_role", caller, role=ADMIN_ROLE, pausable=False):
            if is_null_principal(principal):
                raise InvalidRecipientError(principal)
            if not self._registry.grant(caller, role, principal):
                return None
            return self._auditor.append(
                AuditAction.ROLE_GRANTED,
                caller,
                principals=(principal,),
                payload={"role": role},
            )

    def revoke_role(self, caller: str, role: str, principal: str) -> AuditRecord | None:
        """
        Revoke ``role`` from ``principal``. Admin only.

        Returns:
            The ROLE_REVOKED record, or None if the principal did not hold
            the role.

        Raises:
            LastAdministratorError: If this would leave no administrator.
        """
        with self._invocation("revoke_role", caller, role=ADMIN_ROLE, pausable=False):
            if not self._registry.revoke(caller, role, principal):
                return None
            return self._auditor.append(
                AuditAction.ROLE_REVOKED,
                caller,
                principals=(principal,),
                payload={"role": role},
            )

    # Invocation pipeline

    @contextmanager
    def _invocation(
        self,
        operation: str,
        caller: str,
        *,
        role: str | None = None,
        pausable: bool = True,
    ) -> Iterator[None]:
        """
        Run one entry point body under the guard with full rollback.

        Args:
            operation: Entry point name, bound into the log context.
            caller: Acting principal.
            role: Role the caller must hold, if any.
            pausable: Whether the pause switch gates this entry point.
        """
        with self._guard:
            # Nested invocations on other instances keep the outer id.
            correlation_id = None
            if "correlation_id" not in LogContext.get_all():
                correlation_id = str(uuid4())

            with LogContext.bind(
                correlation_id=correlation_id,
                actor_id=caller,
                operation=operation,
                ledger_id=self._ledger_id,
            ):
                state = self._capture_state()
                try:
                    if pausable:
                        self._pause_switch.require_active()
                    if role is not None:
                        self._registry.require(role, caller)
                    with self._ledger.savepoint(), self._auditor.savepoint():
                        yield
                except CustodyKernelError as exc:
                    self._restore_state(state)
                    logger.info(
                        "invocation_aborted",
                        extra={"error_code": exc.code},
                    )
                    raise
                except BaseException:
                    self._restore_state(state)
                    logger.error("invocation_aborted", exc_info=True)
                    raise

                logger.info("invocation_committed")

        self._auditor.publish_pending()

    def _capture_state(self) -> dict[str, Any]:
        return {
            "roles": self._registry.snapshot(),
            "pause": self._pause_switch.state,
        }

    def _restore_state(self, state: dict[str, Any]) -> None:
        self._registry.restore(state["roles"])
        pause_state: PauseState = state["pause"]
        self._pause_switch.restore(pause_state)
