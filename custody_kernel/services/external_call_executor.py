"""
ExternalCallExecutor -- outbound value transfer / invocation of untrusted code.

Responsibility:
    Hands control (and optionally value) to a caller-specified target and
    reports the outcome as a value. This is the only suspension point in
    the kernel: the target may call back into any ledger before ``invoke``
    returns.

Architecture position:
    Kernel > Services -- imperative shell. Called by CustodyVault after its
    own state mutations and audit record are final (Checks-Effects-
    Interactions). Authorization for arbitrary calls is enforced by the
    vault's ``execute_call`` entry point.

Invariants enforced:
    CHECKS_EFFECTS_INTERACTIONS -- by its callers' ordering.
    No execution budget: the target runs with whatever the host allows.
    There is no stipend, step limit or timeout.

Failure modes:
    - InvalidTargetError: null target (raised before anything is invoked).
    - Anything the target raises becomes ``CallResult(success=False)``.
      The executor never re-raises a target's failure; the caller decides
      whether that failure is fatal.

Audit relevance:
    Each call is logged (``external_call_completed`` /
    ``external_call_failed``). The vault records the (target, success)
    audit record for ``execute_call``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol

from custody_kernel.domain.values import is_null_principal, require_amount
from custody_kernel.exceptions import InvalidTargetError
from custody_kernel.logging_config import get_logger

logger = get_logger("services.external_call")


@dataclass(frozen=True)
class CallContext:
    """What a target sees when it is invoked."""

    sender: str
    target: str
    value: int
    payload: bytes


@dataclass(frozen=True)
class CallResult:
    """Outcome of an external invocation."""

    target: str
    success: bool
    return_data: bytes = b""
    error: str | None = None
    value: int = 0


class CallTarget(Protocol):
    """Code registered for a principal. Raising signals failure."""

    def __call__(self, context: CallContext) -> bytes | None: ...


class ExternalCallExecutor:
    """
    Registry of target code plus the invocation primitive.

    Contract:
        A principal with registered code runs that code on ``invoke``.
        A principal without code (an externally owned account) accepts the
        call and any value unconditionally.

    Guarantees:
        - ``invoke`` returns a CallResult for every non-null target.
        - Value is counted as delivered only when the call succeeds.

    Non-goals:
        - Does NOT retry. Retry policy belongs to the caller.
        - Does NOT check roles.
    """

    def __init__(self, targets: Mapping[str, CallTarget] | None = None):
        self._targets: dict[str, CallTarget] = dict(targets or {})
        self._delivered: dict[str, int] = {}

    def register(self, principal: str, target: CallTarget) -> None:
        if is_null_principal(principal):
            raise InvalidTargetError(principal)
        self._targets[principal] = target

    def unregister(self, principal: str) -> None:
        self._targets.pop(principal, None)

    def has_code(self, principal: str) -> bool:
        return principal in self._targets

    def delivered(self, principal: str) -> int:
        """Total value successfully released to ``principal``."""
        return self._delivered.get(principal, 0)

    def invoke(
        self,
        sender: str,
        target: str,
        payload: bytes = b"",
        value: int = 0,
    ) -> CallResult:
        """
        Invoke ``target`` on behalf of ``sender``, forwarding ``value``.

        Raises:
            InvalidTargetError: If ``target`` is the null identity.
            InvalidAmountError: If ``value`` is negative or not an int.
        """
        if is_null_principal(target):
            raise InvalidTargetError(target)
        value = require_amount(value, allow_zero=True)
        payload = bytes(payload)

        code = self._targets.get(target)
        if code is None:
            self._deliver(target, value)
            logger.info(
                "external_call_completed",
                extra={"target": target, "value": value, "has_code": False},
            )
            return CallResult(target=target, success=True, value=value)

        # Value lands before the target's code runs, as it would on a host
        # that transfers value with the call.
        self._deliver(target, value)
        try:
            returned = code(
                CallContext(sender=sender, target=target, value=value, payload=payload)
            )
        except Exception as exc:
            self._deliver(target, -value)
            logger.warning(
                "external_call_failed",
                extra={"target": target, "value": value},
                exc_info=True,
            )
            return CallResult(
                target=target,
                success=False,
                error=f"{type(exc).__name__}: {exc}",
                value=value,
            )

        if returned is not None and not isinstance(returned, (bytes, bytearray, memoryview)):
            self._deliver(target, -value)
            logger.warning(
                "external_call_failed",
                extra={"target": target, "value": value, "reason": "invalid_return_data"},
            )
            return CallResult(
                target=target,
                success=False,
                error=f"invalid return data of type {type(returned).__name__}",
                value=value,
            )

        return_data = bytes(returned or b"")
        logger.info(
            "external_call_completed",
            extra={
                "target": target,
                "value": value,
                "has_code": True,
                "return_data": return_data,
            },
        )
        return CallResult(
            target=target,
            success=True,
            return_data=return_data,
            value=value,
        )

    def _deliver(self, principal: str, value: int) -> None:
        if value:
            self._delivered[principal] = self._delivered.get(principal, 0) + value
