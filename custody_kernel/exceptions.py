"""
Typed Exception Hierarchy for the Custody Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A custody ledger must fail precisely. Callers decide what to do with a
failure by its TYPE and its machine-readable CODE, never by parsing the
message:

    try:
        vault.withdraw(caller, amount)
    except InsufficientFundsError as e:
        api_response(code=e.code, available=e.available, required=e.required)
    except SystemPausedError:
        retry_later()

Every exception:
  1. Has a ``code`` class attribute (machine-readable, API-safe).
  2. Stores its context as attributes (logged as ``exc_<field>`` by the
     structured formatter).
  3. Aborts the whole invocation that raised it. There is no local recovery
     inside a component.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CustodyKernelError (base)
    |
    +-- InputValidationError
    |   +-- InvalidRecipientError
    |   +-- InvalidSpenderError
    |   +-- InvalidOwnerError
    |   +-- InvalidTargetError
    |   +-- InvalidAmountError
    |   +-- LengthMismatchError
    |   +-- EmptyBatchError
    |   +-- BatchTooLargeError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- StateConsistencyError
    |   +-- InsufficientFundsError
    |   +-- InsufficientAllowanceError
    |   +-- InsufficientReserveError
    |   +-- AmountOverflowError
    |   +-- LastAdministratorError
    |
    +-- ConcurrencyError
    |   +-- ReentrantCallError
    |
    +-- OperationalStateError
    |   +-- SystemPausedError
    |   +-- NotPausedError
    |
    +-- ExternalFailureError
    |   +-- ExternalCallFailedError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                    | When Raised
----------------|-------------------------|---------------------------------------
Input           | INVALID_RECIPIENT       | Null recipient / destination
                | INVALID_SPENDER         | Null delegate in approve
                | INVALID_OWNER           | Null owner in delegated transfer
                | INVALID_TARGET          | Null external-call target
                | INVALID_AMOUNT          | Non-int, negative or zero amount
                | LENGTH_MISMATCH         | recipients / amounts differ in length
                | EMPTY_BATCH             | Batch with no entries
                | BATCH_TOO_LARGE         | Batch longer than MAX_BATCH_SIZE
----------------|-------------------------|---------------------------------------
Authorization   | UNAUTHORIZED            | Caller lacks the required role
----------------|-------------------------|---------------------------------------
State           | INSUFFICIENT_FUNDS      | balance < amount
                | INSUFFICIENT_ALLOWANCE  | allowance < amount
                | INSUFFICIENT_RESERVE    | custody reserve < amount
                | AMOUNT_OVERFLOW         | Checked addition exceeded max amount
                | LAST_ADMINISTRATOR      | Revoking the only administrator
----------------|-------------------------|---------------------------------------
Concurrency     | REENTRANT_CALL          | Guarded operation re-entered
----------------|-------------------------|---------------------------------------
Operational     | SYSTEM_PAUSED           | Mutating call while paused
                | NOT_PAUSED              | unpause() while active
----------------|-------------------------|---------------------------------------
External        | EXTERNAL_CALL_FAILED    | Value release to a target failed
----------------|-------------------------|---------------------------------------
Audit           | AUDIT_CHAIN_BROKEN      | Hash chain validation failed

===============================================================================
"""


class CustodyKernelError(Exception):
    """
    Base exception for all custody kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CUSTODY_KERNEL_ERROR"


# Input validation


class InputValidationError(CustodyKernelError):
    """Base exception for rejected inputs."""

    code: str = "INPUT_VALIDATION_ERROR"


class InvalidRecipientError(InputValidationError):
    """Recipient is the null identity."""

    code: str = "INVALID_RECIPIENT"

    def __init__(self, recipient: str | None, index: int | None = None):
        self.recipient = recipient
        self.index = index
        where = f" at batch index {index}" if index is not None else ""
        super().__init__(f"Transfer to the null principal{where}")


class InvalidSpenderError(InputValidationError):
    """Delegate named in an approval is the null identity."""

    code: str = "INVALID_SPENDER"

    def __init__(self, spender: str | None):
        self.spender = spender
        super().__init__("Approve to the null principal")


class InvalidOwnerError(InputValidationError):
    """Owner named in a delegated transfer is the null identity."""

    code: str = "INVALID_OWNER"

    def __init__(self, owner: str | None):
        self.owner = owner
        super().__init__("Delegated transfer from the null principal")


class InvalidTargetError(InputValidationError):
    """External call target is the null identity."""

    code: str = "INVALID_TARGET"

    def __init__(self, target: str | None):
        self.target = target
        super().__init__("External call target cannot be the null principal")


class InvalidAmountError(InputValidationError):
    """Amount is not a usable integer quantity."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str, index: int | None = None):
        self.amount = repr(amount)
        self.reason = reason
        self.index = index
        where = f" at batch index {index}" if index is not None else ""
        super().__init__(f"Invalid amount {amount!r}{where}: {reason}")


class LengthMismatchError(InputValidationError):
    """Batch recipients and amounts have different lengths."""

    code: str = "LENGTH_MISMATCH"

    def __init__(self, recipients: int, amounts: int):
        self.recipients = recipients
        self.amounts = amounts
        super().__init__(
            f"Batch length mismatch: {recipients} recipients, {amounts} amounts"
        )


class EmptyBatchError(InputValidationError):
    """Batch has no entries."""

    code: str = "EMPTY_BATCH"

    def __init__(self):
        super().__init__("Batch must contain at least one recipient")


class BatchTooLargeError(InputValidationError):
    """Batch exceeds the configured maximum size."""

    code: str = "BATCH_TOO_LARGE"

    def __init__(self, size: int, max_batch_size: int):
        self.size = size
        self.max_batch_size = max_batch_size
        super().__init__(
            f"Batch size {size} exceeds maximum of {max_batch_size}"
        )


# Authorization


class AuthorizationError(CustodyKernelError):
    """Base exception for access-control failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller does not hold the role required by the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, principal: str | None, role: str):
        self.principal = principal
        self.role = role
        super().__init__(f"Principal {principal} is missing role {role}")


# State consistency


class StateConsistencyError(CustodyKernelError):
    """Base exception for operations the ledger state cannot honor."""

    code: str = "STATE_CONSISTENCY_ERROR"


class InsufficientFundsError(StateConsistencyError):
    """Account balance is lower than the amount to move."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, account: str, available: int, required: int):
        self.account = account
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient funds in {account}: available={available}, "
            f"required={required}"
        )


class InsufficientAllowanceError(StateConsistencyError):
    """Delegate's allowance is lower than the amount to move."""

    code: str = "INSUFFICIENT_ALLOWANCE"

    def __init__(self, owner: str, spender: str, available: int, required: int):
        self.owner = owner
        self.spender = spender
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient allowance for {spender} on {owner}: "
            f"available={available}, required={required}"
        )


class InsufficientReserveError(StateConsistencyError):
    """Custody reserve cannot cover the value release."""

    code: str = "INSUFFICIENT_RESERVE"

    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient reserve: available={available}, required={required}"
        )


class AmountOverflowError(StateConsistencyError):
    """Checked addition exceeded the maximum representable amount."""

    code: str = "AMOUNT_OVERFLOW"

    def __init__(self, left: int, right: int, max_amount: int):
        self.left = left
        self.right = right
        self.max_amount = max_amount
        super().__init__(
            f"Amount overflow: {left} + {right} exceeds {max_amount}"
        )


class LastAdministratorError(StateConsistencyError):
    """Revoking the role would leave the ledger without an administrator."""

    code: str = "LAST_ADMINISTRATOR"

    def __init__(self, principal: str, role: str):
        self.principal = principal
        self.role = role
        super().__init__(
            f"Cannot revoke {role} from {principal}: it is the last holder"
        )


# Concurrency


class ConcurrencyError(CustodyKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ReentrantCallError(ConcurrencyError):
    """A guarded operation was entered while another one is in progress."""

    code: str = "REENTRANT_CALL"

    def __init__(self, guard_name: str, depth: int):
        self.guard_name = guard_name
        self.depth = depth
        super().__init__(
            f"Reentrant call rejected by guard {guard_name} (depth={depth})"
        )


# Operational state


class OperationalStateError(CustodyKernelError):
    """Base exception for circuit-breaker state errors."""

    code: str = "OPERATIONAL_STATE_ERROR"


class SystemPausedError(OperationalStateError):
    """Operation requires the ledger to be active but it is paused."""

    code: str = "SYSTEM_PAUSED"

    def __init__(self, switch_name: str):
        self.switch_name = switch_name
        super().__init__(f"{switch_name} is paused")


class NotPausedError(OperationalStateError):
    """unpause() was called while the ledger is active."""

    code: str = "NOT_PAUSED"

    def __init__(self, switch_name: str):
        self.switch_name = switch_name
        super().__init__(f"{switch_name} is not paused")


# External failures


class ExternalFailureError(CustodyKernelError):
    """Base exception for failures reported by external targets."""

    code: str = "EXTERNAL_FAILURE"


class ExternalCallFailedError(ExternalFailureError):
    """A value release to an external target reported failure."""

    code: str = "EXTERNAL_CALL_FAILED"

    def __init__(self, target: str, value: int, error: str | None):
        self.target = target
        self.value = value
        self.error = error
        super().__init__(
            f"External call to {target} with value {value} failed: {error}"
        )


# Audit


class AuditError(CustodyKernelError):
    """Base exception for audit-related errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at seq {seq}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
