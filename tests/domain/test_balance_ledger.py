"""
BalanceLedger tests.

Verifies:
- Conservation: sum of balances equals the total after every mutation
- Checked arithmetic: no negative balances, no wrap past max_amount
- Savepoints: an exception inside the block restores every write
"""

import pytest

from custody_kernel.domain.balance_ledger import BalanceLedger
from custody_kernel.domain.values import MAX_UINT256
from custody_kernel.exceptions import (
    AmountOverflowError,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAmountError,
)

from tests.principals import ALICE, BOB, CAROL


def _conserved(ledger: BalanceLedger) -> bool:
    return sum(ledger.snapshot().values()) == ledger.total


class TestCreditDebit:

    def test_credit_raises_balance_and_total(self):
        ledger = BalanceLedger()
        assert ledger.credit(ALICE, 100) == 100
        assert ledger.balance_of(ALICE) == 100
        assert ledger.total == 100

    def test_debit_lowers_balance_and_total(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 100)
        assert ledger.debit(ALICE, 40) == 60
        assert ledger.total == 60
        assert _conserved(ledger)

    def test_debit_beyond_balance_rejected_and_unchanged(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 10)

        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.debit(ALICE, 11)

        assert exc_info.value.available == 10
        assert exc_info.value.required == 11
        assert ledger.balance_of(ALICE) == 10
        assert ledger.total == 10

    def test_credit_past_max_amount_rejected(self):
        ledger = BalanceLedger(max_amount=1000)
        ledger.credit(ALICE, 900)

        with pytest.raises(AmountOverflowError):
            ledger.credit(BOB, 101)

        assert ledger.total == 900
        assert ledger.balance_of(BOB) == 0

    def test_credit_up_to_uint256_max(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, MAX_UINT256)
        assert ledger.total == MAX_UINT256
        with pytest.raises(AmountOverflowError):
            ledger.credit(BOB, 1)

    @pytest.mark.parametrize("amount", [0, -1, 1.5, "10", True, None])
    def test_invalid_amounts_rejected(self, amount):
        ledger = BalanceLedger()
        with pytest.raises(InvalidAmountError):
            ledger.credit(ALICE, amount)
        assert ledger.total == 0

    def test_zero_balances_dropped_from_accounts(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 5)
        ledger.debit(ALICE, 5)
        assert ledger.accounts() == []

    def test_invalid_max_amount_rejected(self):
        with pytest.raises(ValueError):
            BalanceLedger(max_amount=0)


class TestTransfer:

    def test_transfer_moves_without_changing_total(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 100)
        ledger.transfer(ALICE, BOB, 30)

        assert ledger.balance_of(ALICE) == 70
        assert ledger.balance_of(BOB) == 30
        assert ledger.total == 100
        assert _conserved(ledger)

    def test_transfer_insufficient_leaves_both_sides(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 10)

        with pytest.raises(InsufficientFundsError):
            ledger.transfer(ALICE, BOB, 11)

        assert ledger.balance_of(ALICE) == 10
        assert ledger.balance_of(BOB) == 0

    def test_self_transfer_is_checked_but_noop(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 10)
        ledger.transfer(ALICE, ALICE, 10)
        assert ledger.balance_of(ALICE) == 10

        with pytest.raises(InsufficientFundsError):
            ledger.transfer(ALICE, ALICE, 11)


class TestAllowances:

    def test_approve_overwrites(self):
        ledger = BalanceLedger()
        ledger.approve(ALICE, BOB, 50)
        ledger.approve(ALICE, BOB, 20)
        assert ledger.allowance(ALICE, BOB) == 20

    def test_approve_zero_clears(self):
        ledger = BalanceLedger()
        ledger.approve(ALICE, BOB, 50)
        ledger.approve(ALICE, BOB, 0)
        assert ledger.allowance(ALICE, BOB) == 0

    def test_spend_allowance_consumes(self):
        ledger = BalanceLedger()
        ledger.approve(ALICE, BOB, 50)
        assert ledger.spend_allowance(ALICE, BOB, 20) == 30
        assert ledger.allowance(ALICE, BOB) == 30

    def test_spend_beyond_allowance_rejected(self):
        ledger = BalanceLedger()
        ledger.approve(ALICE, BOB, 5)
        with pytest.raises(InsufficientAllowanceError) as exc_info:
            ledger.spend_allowance(ALICE, BOB, 6)
        assert exc_info.value.available == 5
        assert ledger.allowance(ALICE, BOB) == 5

    def test_allowances_are_directional(self):
        ledger = BalanceLedger()
        ledger.approve(ALICE, BOB, 5)
        assert ledger.allowance(BOB, ALICE) == 0


class TestSavepoint:

    def test_exception_rolls_back_all_writes(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 100)
        ledger.approve(ALICE, BOB, 10)

        with pytest.raises(RuntimeError):
            with ledger.savepoint():
                ledger.transfer(ALICE, BOB, 40)
                ledger.credit(CAROL, 7)
                ledger.spend_allowance(ALICE, BOB, 10)
                raise RuntimeError("abort")

        assert ledger.snapshot() == {ALICE: 100}
        assert ledger.total == 100
        assert ledger.allowance(ALICE, BOB) == 10

    def test_normal_exit_keeps_writes(self):
        ledger = BalanceLedger()
        with ledger.savepoint():
            ledger.credit(ALICE, 5)
        assert ledger.balance_of(ALICE) == 5

    def test_nested_savepoint_rolls_back_inner_only(self):
        ledger = BalanceLedger()
        with ledger.savepoint():
            ledger.credit(ALICE, 5)
            with pytest.raises(InsufficientFundsError):
                with ledger.savepoint():
                    ledger.credit(BOB, 3)
                    ledger.debit(CAROL, 1)
            assert ledger.balance_of(BOB) == 0

        assert ledger.snapshot() == {ALICE: 5}

    def test_rollback_restores_removed_accounts(self):
        ledger = BalanceLedger()
        ledger.credit(ALICE, 5)
        with pytest.raises(RuntimeError):
            with ledger.savepoint():
                ledger.debit(ALICE, 5)
                assert ledger.accounts() == []
                raise RuntimeError("abort")
        assert ledger.balance_of(ALICE) == 5
