"""
Values -- principal identities and checked amount arithmetic.

Responsibility:
    Provides the primitive vocabulary every ledger component shares: the
    ``Principal`` identity type, the null identity, the maximum
    representable amount, and checked (non-wrapping) arithmetic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    custody_kernel.exceptions.

Invariants enforced:
    - Amounts are plain ``int`` (``bool`` rejected), never negative and
      never above ``max_amount``.
    - ``checked_add`` raises instead of wrapping past ``max_amount``.
    - ``checked_sub`` raises instead of going below zero.

Failure modes:
    - InvalidAmountError for non-int, negative or (where required) zero
      amounts.
    - AmountOverflowError when an addition would exceed ``max_amount``.
    - InsufficientFundsError when a subtraction would go below zero.
"""

from __future__ import annotations

from typing import NewType

from custody_kernel.exceptions import (
    AmountOverflowError,
    InsufficientFundsError,
    InvalidAmountError,
)

Principal = NewType("Principal", str)

# The null identity: the analog of the zero address.
NULL_PRINCIPAL = Principal("0x" + "0" * 40)

# Largest representable amount (unsigned 256-bit).
MAX_UINT256 = 2**256 - 1


def is_null_principal(principal: str | None) -> bool:
    """Return True for the null identity, ``None`` or an empty string."""
    return not principal or principal == NULL_PRINCIPAL


def require_amount(
    amount: object,
    *,
    allow_zero: bool = False,
    max_amount: int = MAX_UINT256,
    index: int | None = None,
) -> int:
    """
    Validate an amount and return it as an ``int``.

    Args:
        amount: Candidate amount.
        allow_zero: Whether zero is acceptable (approvals).
        max_amount: Upper bound of the representable range.
        index: Batch position, carried into the error for diagnostics.

    Raises:
        InvalidAmountError: If the amount is not a non-negative int within
            range, or is zero when ``allow_zero`` is False.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount, "amount must be an integer", index)
    if amount < 0:
        raise InvalidAmountError(amount, "amount must not be negative", index)
    if amount == 0 and not allow_zero:
        raise InvalidAmountError(amount, "amount must be positive", index)
    if amount > max_amount:
        raise InvalidAmountError(amount, f"amount exceeds {max_amount}", index)
    return amount


def checked_add(left: int, right: int, max_amount: int = MAX_UINT256) -> int:
    """Add two amounts, raising AmountOverflowError past ``max_amount``."""
    result = left + right
    if result > max_amount:
        raise AmountOverflowError(left, right, max_amount)
    return result


def checked_sub(left: int, right: int, account: str = "") -> int:
    """Subtract ``right`` from ``left``, raising InsufficientFundsError below zero."""
    if right > left:
        raise InsufficientFundsError(account, left, right)
    return left - right
