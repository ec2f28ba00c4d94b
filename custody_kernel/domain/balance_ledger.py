"""
BalanceLedger -- authoritative principal -> amount bookkeeping.

Responsibility:
    Owns the balance map, the allowance map and the running total. Every
    mutation of those structures routes through this class, so the
    conservation and non-negativity invariants are checked at a single
    choke point.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Knows nothing about authorization, pause state or reentrancy; those
    are applied by the guarded entry points in services/.

Invariants enforced:
    CONSERVATION -- ``sum(balances) == total``. credit() raises the total,
                    debit() lowers it, transfer() leaves it unchanged.
    NON_NEGATIVE -- balances and allowances never drop below zero
                    (checked subtraction).
    ATOMIC_INVOCATION -- savepoint() journals every write; an exception
                    inside the savepoint restores the journaled values.

Failure modes:
    - InsufficientFundsError: debit/transfer larger than the balance.
    - InsufficientAllowanceError: delegated spend larger than the allowance.
    - AmountOverflowError: credit that would push the total past max_amount.
    - InvalidAmountError: non-int, negative or zero amounts.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from custody_kernel.domain.values import (
    MAX_UINT256,
    checked_add,
    checked_sub,
    require_amount,
)
from custody_kernel.exceptions import InsufficientAllowanceError

_BALANCES = "balances"
_ALLOWANCES = "allowances"
_TOTAL = "total"


class BalanceLedger:
    """
    In-memory balance and allowance book with journaled savepoints.

    Contract:
        Amounts are ints in ``[0, max_amount]``. Zero balances are dropped
        from the map, so ``accounts()`` only lists actual holders.

    Guarantees:
        - ``transfer`` checks both legs before applying either; no caller
          ever observes the source debited but the destination not credited.
        - Inside ``savepoint()``, an exception rolls back every write made
          since the savepoint opened, including nested savepoints.

    Non-goals:
        - Does NOT check roles, pause state or reentrancy.
        - Does NOT emit audit records (entry points do).
    """

    def __init__(self, *, max_amount: int = MAX_UINT256):
        if isinstance(max_amount, bool) or not isinstance(max_amount, int) or max_amount <= 0:
            raise ValueError(f"max_amount must be a positive integer, got {max_amount!r}")
        self._max_amount = max_amount
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total = 0
        # Undo log: (table, key, previous value or None when absent)
        self._journal: list[tuple[str, object, int | None]] = []
        self._savepoint_depth = 0

    # Queries

    @property
    def max_amount(self) -> int:
        return self._max_amount

    @property
    def total(self) -> int:
        """Sum of all balances."""
        return self._total

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def accounts(self) -> list[str]:
        """Principals holding a non-zero balance, sorted."""
        return sorted(self._balances)

    def snapshot(self) -> dict[str, int]:
        """Copy of the balance map."""
        return dict(self._balances)

    # Mutations

    def credit(self, account: str, amount: int) -> int:
        """
        Increase ``account`` by ``amount`` and the total with it.

        Returns:
            The new balance.

        Raises:
            AmountOverflowError: If the total would exceed max_amount.
        """
        amount = require_amount(amount, max_amount=self._max_amount)
        new_total = checked_add(self._total, amount, self._max_amount)
        # The total bounds every balance, so this addition cannot overflow.
        new_balance = self.balance_of(account) + amount
        self._write(_TOTAL, None, new_total)
        self._write(_BALANCES, account, new_balance)
        return new_balance

    def debit(self, account: str, amount: int) -> int:
        """
        Decrease ``account`` by ``amount`` and the total with it.

        Returns:
            The new balance.

        Raises:
            InsufficientFundsError: If the balance is lower than amount.
        """
        amount = require_amount(amount, max_amount=self._max_amount)
        new_balance = checked_sub(self.balance_of(account), amount, account)
        self._write(_BALANCES, account, new_balance)
        self._write(_TOTAL, None, self._total - amount)
        return new_balance

    def transfer(self, source: str, destination: str, amount: int) -> None:
        """
        Move ``amount`` from ``source`` to ``destination`` as one step.

        Raises:
            InsufficientFundsError: If source holds less than amount.
        """
        amount = require_amount(amount, max_amount=self._max_amount)
        new_source = checked_sub(self.balance_of(source), amount, source)
        if source == destination:
            return
        new_destination = self.balance_of(destination) + amount
        self._write(_BALANCES, source, new_source)
        self._write(_BALANCES, destination, new_destination)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set the allowance of ``spender`` over ``owner``'s balance."""
        amount = require_amount(amount, allow_zero=True, max_amount=self._max_amount)
        self._write(_ALLOWANCES, (owner, spender), amount)

    def spend_allowance(self, owner: str, spender: str, amount: int) -> int:
        """
        Consume ``amount`` of the allowance. Never replenished.

        Returns:
            The remaining allowance.

        Raises:
            InsufficientAllowanceError: If the allowance is lower than amount.
        """
        amount = require_amount(amount, max_amount=self._max_amount)
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowanceError(owner, spender, current, amount)
        self._write(_ALLOWANCES, (owner, spender), current - amount)
        return current - amount

    # Savepoints

    @contextmanager
    def savepoint(self) -> Iterator["BalanceLedger"]:
        """
        Journal all writes made inside the block.

        On normal exit the writes stay. On any exception they are undone
        in reverse order and the exception propagates.
        """
        mark = len(self._journal)
        self._savepoint_depth += 1
        try:
            yield self
        except BaseException:
            self._rollback_to(mark)
            raise
        finally:
            self._savepoint_depth -= 1
            if self._savepoint_depth == 0:
                self._journal.clear()

    def _rollback_to(self, mark: int) -> None:
        while len(self._journal) > mark:
            table, key, previous = self._journal.pop()
            self._apply(table, key, previous)

    def _write(self, table: str, key: object, value: int) -> None:
        if self._savepoint_depth:
            self._journal.append((table, key, self._read(table, key)))
        self._apply(table, key, value)

    def _read(self, table: str, key: object) -> int | None:
        if table == _TOTAL:
            return self._total
        if table == _BALANCES:
            return self._balances.get(key)  # type: ignore[arg-type]
        return self._allowances.get(key)  # type: ignore[arg-type]

    def _apply(self, table: str, key: object, value: int | None) -> None:
        if table == _TOTAL:
            self._total = value or 0
            return
        store: dict = self._balances if table == _BALANCES else self._allowances
        if not value:
            store.pop(key, None)
        else:
            store[key] = value

    def __repr__(self) -> str:
        return f"BalanceLedger({len(self._balances)} accounts, total={self._total})"
