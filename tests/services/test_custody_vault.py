"""
CustodyVault tests.

Verifies:
- Deposit / withdraw round trip and the custody invariant
- Reserve accounting (deposit, fund, withdraw, emergency drain)
- Value release through the executor, rollback when it fails
- Admin-only emergency withdrawal and arbitrary calls
- Pause gating of deposit, fund and withdraw only
"""

import pytest

from custody_kernel.domain.access_control import ADMIN_ROLE
from custody_kernel.domain.audit import AuditAction
from custody_kernel.exceptions import (
    ExternalCallFailedError,
    InsufficientFundsError,
    InsufficientReserveError,
    InvalidAmountError,
    InvalidRecipientError,
    InvalidTargetError,
    SystemPausedError,
    UnauthorizedError,
)
from custody_kernel.services.custody_vault import CustodyVault

from tests.principals import ALICE, BOB, CREATOR, MALLORY, NULL


def _rejecting_target(context):
    raise RuntimeError("recipient refuses value")


def _conserved(vault: CustodyVault) -> bool:
    return sum(vault.balance_of(a) for a in vault.accounts()) == vault.total_deposits()


class TestDeposit:

    def test_deposit_credits_and_funds_reserve(self, vault):
        record = vault.deposit(ALICE, 100)

        assert record.action is AuditAction.DEPOSIT
        assert record.payload == {"reserve": 100}
        assert vault.balance_of(ALICE) == 100
        assert vault.total_deposits() == 100
        assert vault.reserve() == 100

    @pytest.mark.parametrize("amount", [0, -1, 2.5])
    def test_invalid_amount_rejected(self, vault, amount):
        with pytest.raises(InvalidAmountError):
            vault.deposit(ALICE, amount)
        assert vault.reserve() == 0

    def test_fund_grows_reserve_only(self, vault):
        record = vault.fund(BOB, 50)
        assert record.action is AuditAction.FUNDING
        assert vault.reserve() == 50
        assert vault.total_deposits() == 0
        assert vault.balance_of(BOB) == 0


class TestWithdraw:

    def test_deposit_then_withdraw_scenario(self, vault, executor):
        vault.deposit(ALICE, 1)
        reserve_before = vault.reserve()

        record = vault.withdraw(ALICE, 1)

        assert vault.balance_of(ALICE) == 0
        assert vault.reserve() == reserve_before - 1
        assert len(vault.auditor.records(AuditAction.WITHDRAWAL)) == 1
        assert record.amount == 1
        assert executor.delivered(ALICE) == 1

    def test_partial_withdraw(self, vault):
        vault.deposit(ALICE, 100)
        vault.deposit(BOB, 50)
        vault.withdraw(ALICE, 30)

        assert vault.balance_of(ALICE) == 70
        assert vault.reserve() == 120
        assert vault.total_deposits() == 120
        assert _conserved(vault)

    def test_withdraw_more_than_balance_rejected(self, vault):
        vault.deposit(ALICE, 10)
        with pytest.raises(InsufficientFundsError):
            vault.withdraw(ALICE, 11)
        assert vault.balance_of(ALICE) == 10
        assert vault.reserve() == 10

    def test_withdraw_other_depositors_funds_rejected(self, vault):
        vault.deposit(ALICE, 10)
        with pytest.raises(InsufficientFundsError):
            vault.withdraw(MALLORY, 10)

    def test_failed_release_rolls_back_everything(self, vault, executor):
        executor.register(ALICE, _rejecting_target)
        vault.deposit(ALICE, 10)
        records_before = len(vault.auditor)

        with pytest.raises(ExternalCallFailedError) as exc_info:
            vault.withdraw(ALICE, 10)

        assert exc_info.value.target == ALICE
        assert exc_info.value.value == 10
        assert "recipient refuses value" in exc_info.value.error
        assert vault.balance_of(ALICE) == 10
        assert vault.reserve() == 10
        assert len(vault.auditor) == records_before
        assert executor.delivered(ALICE) == 0

    def test_release_sees_effects_already_applied(self, vault, executor):
        observed = {}

        def recipient(context):
            observed["balance"] = vault.balance_of(ALICE)
            observed["reserve"] = vault.reserve()
            observed["value"] = context.value
            observed["last_action"] = vault.auditor.last().action

        executor.register(ALICE, recipient)
        vault.deposit(ALICE, 10)
        vault.withdraw(ALICE, 4)

        assert observed == {
            "balance": 6,
            "reserve": 6,
            "value": 4,
            "last_action": AuditAction.WITHDRAWAL,
        }

    def test_unbacked_claims_rejected_after_drain(self, vault):
        vault.deposit(ALICE, 10)
        vault.emergency_withdraw(CREATOR, BOB)

        with pytest.raises(InsufficientReserveError) as exc_info:
            vault.withdraw(ALICE, 10)

        assert exc_info.value.available == 0
        assert vault.balance_of(ALICE) == 10


class TestEmergencyWithdraw:

    def test_admin_drains_reserve(self, vault, executor):
        vault.deposit(ALICE, 70)
        vault.fund(BOB, 30)

        record = vault.emergency_withdraw(CREATOR, BOB)

        assert record.action is AuditAction.EMERGENCY_WITHDRAWAL
        assert record.amount == 100
        assert vault.reserve() == 0
        assert vault.balance_of(ALICE) == 70
        assert executor.delivered(BOB) == 100

    def test_non_admin_rejected(self, vault):
        vault.deposit(ALICE, 10)
        with pytest.raises(UnauthorizedError) as exc_info:
            vault.emergency_withdraw(MALLORY, MALLORY)
        assert exc_info.value.role == ADMIN_ROLE
        assert vault.reserve() == 10

    def test_available_while_paused(self, vault):
        vault.deposit(ALICE, 10)
        vault.pause(CREATOR)
        vault.emergency_withdraw(CREATOR, BOB)
        assert vault.reserve() == 0

    def test_empty_reserve_rejected(self, vault):
        with pytest.raises(InsufficientReserveError):
            vault.emergency_withdraw(CREATOR, BOB)

    def test_null_recipient_rejected(self, vault):
        vault.deposit(ALICE, 10)
        with pytest.raises(InvalidRecipientError):
            vault.emergency_withdraw(CREATOR, NULL)
        assert vault.reserve() == 10

    def test_failed_release_restores_reserve(self, vault, executor):
        executor.register(BOB, _rejecting_target)
        vault.deposit(ALICE, 10)
        with pytest.raises(ExternalCallFailedError):
            vault.emergency_withdraw(CREATOR, BOB)
        assert vault.reserve() == 10
        assert vault.auditor.count(AuditAction.EMERGENCY_WITHDRAWAL) == 0


class TestExecuteCall:

    def test_admin_call_returns_result(self, vault, executor):
        executor.register(BOB, lambda context: b"ok:" + context.payload)

        result = vault.execute_call(CREATOR, BOB, b"ping")

        assert result.success
        assert result.return_data == b"ok:ping"
        record = vault.auditor.last()
        assert record.action is AuditAction.EXTERNAL_CALL
        assert record.principals == (BOB,)
        assert record.payload["success"] is True
        assert record.payload["return_data"] == b"ok:ping".hex()

    def test_failing_target_reported_not_raised(self, vault, executor):
        executor.register(BOB, _rejecting_target)

        result = vault.execute_call(CREATOR, BOB)

        assert not result.success
        assert "RuntimeError" in result.error
        assert vault.auditor.last().payload["success"] is False

    def test_call_to_plain_account_succeeds(self, vault):
        result = vault.execute_call(CREATOR, ALICE)
        assert result.success
        assert result.return_data == b""

    def test_non_admin_rejected(self, vault, executor):
        called = []
        executor.register(BOB, lambda context: called.append(context))
        with pytest.raises(UnauthorizedError):
            vault.execute_call(MALLORY, BOB)
        assert called == []

    def test_null_target_rejected(self, vault):
        with pytest.raises(InvalidTargetError):
            vault.execute_call(CREATOR, NULL)

    def test_call_context(self, vault, executor):
        seen = []
        executor.register(BOB, seen.append)
        vault.execute_call(CREATOR, BOB, b"\x01")
        assert seen[0].sender == vault.vault_id
        assert seen[0].value == 0
        assert seen[0].payload == b"\x01"


class TestVaultPause:

    def test_paused_blocks_custody_movements(self, vault):
        vault.deposit(ALICE, 10)
        vault.pause(CREATOR)

        with pytest.raises(SystemPausedError):
            vault.deposit(ALICE, 1)
        with pytest.raises(SystemPausedError):
            vault.fund(ALICE, 1)
        with pytest.raises(SystemPausedError):
            vault.withdraw(ALICE, 1)

        assert vault.balance_of(ALICE) == 10

    def test_unpause_restores(self, vault):
        vault.deposit(ALICE, 10)
        vault.pause(CREATOR)
        vault.unpause(CREATOR)
        vault.withdraw(ALICE, 10)
        assert vault.balance_of(ALICE) == 0

    def test_non_admin_cannot_pause(self, vault):
        with pytest.raises(UnauthorizedError):
            vault.pause(ALICE)

    def test_execute_call_available_while_paused(self, vault):
        vault.pause(CREATOR)
        assert vault.execute_call(CREATOR, BOB).success


class TestVaultAudit:

    def test_construction_recorded(self, vault):
        assert vault.auditor.records()[0].action is AuditAction.LEDGER_CREATED

    def test_chain_valid_after_mixed_activity(self, vault, executor):
        executor.register(BOB, _rejecting_target)
        vault.deposit(ALICE, 10)
        vault.fund(BOB, 5)
        with pytest.raises(ExternalCallFailedError):
            vault.emergency_withdraw(CREATOR, BOB)
        vault.withdraw(ALICE, 3)
        vault.execute_call(CREATOR, BOB)

        assert vault.auditor.validate_chain()
        assert [r.action for r in vault.auditor.records()] == [
            AuditAction.LEDGER_CREATED,
            AuditAction.DEPOSIT,
            AuditAction.FUNDING,
            AuditAction.WITHDRAWAL,
            AuditAction.EXTERNAL_CALL,
        ]
