"""
SqlAuditSink tests (in-memory SQLite).

Verifies:
- Committed records are persisted with flush(), never commit()
- uint256 amounts survive the round trip
- The stored chain re-validates, and tampering with a row is detected
"""

import pytest
from sqlalchemy import select, update

from custody_kernel.domain.audit import AuditAction
from custody_kernel.exceptions import AuditChainBrokenError, InsufficientFundsError
from custody_kernel.models.audit_record import AuditRecordRow
from custody_kernel.services.audit_sink import SqlAuditSink
from custody_kernel.services.custody_vault import CustodyVault
from custody_kernel.services.token_ledger import TokenLedger

from tests.principals import ALICE, BOB, CREATOR


@pytest.fixture
def sql_sink(session):
    return SqlAuditSink(session)


class TestSqlAuditSink:

    def test_committed_records_persisted(self, session, sql_sink, deterministic_clock):
        token = TokenLedger(CREATOR, 1_000, clock=deterministic_clock, sinks=[sql_sink])
        token.transfer(CREATOR, ALICE, 10)
        token.approve(CREATOR, BOB, 5)

        rows = session.execute(
            select(AuditRecordRow).order_by(AuditRecordRow.seq)
        ).scalars().all()

        assert [row.action for row in rows] == ["ledger_created", "transfer", "approval"]
        assert rows[1].amount == "10"
        assert rows[0].is_genesis

    def test_aborted_invocation_not_persisted(self, session, sql_sink):
        token = TokenLedger(CREATOR, 10, sinks=[sql_sink])
        with pytest.raises(InsufficientFundsError):
            token.transfer(ALICE, BOB, 1)

        assert [r.hash for r in sql_sink.load("token")] == [
            r.hash for r in token.auditor.records()
        ]
        assert len(sql_sink.load("token")) == 1

    def test_round_trip_equals_in_memory(self, sql_sink, deterministic_clock):
        vault = CustodyVault(CREATOR, clock=deterministic_clock, sinks=[sql_sink])
        vault.deposit(ALICE, 2**256 - 1)
        vault.withdraw(ALICE, 2**255)
        vault.execute_call(CREATOR, BOB, b"\x00\x01")

        loaded = sql_sink.load("vault")
        in_memory = list(vault.auditor.records())

        assert [r.hash for r in loaded] == [r.hash for r in in_memory]
        assert loaded[1].amount == 2**256 - 1
        assert loaded[1].action is AuditAction.DEPOSIT
        assert sql_sink.validate_chain("vault")

    def test_ledgers_kept_apart(self, sql_sink):
        token = TokenLedger(CREATOR, 10, sinks=[sql_sink])
        vault = CustodyVault(CREATOR, sinks=[sql_sink])
        token.transfer(CREATOR, ALICE, 1)
        vault.deposit(ALICE, 1)

        assert sql_sink.ledger_ids() == ["token", "vault"]
        assert sql_sink.validate_chain("token")
        assert sql_sink.validate_chain("vault")

    def test_tampered_row_detected(self, session, sql_sink):
        token = TokenLedger(CREATOR, 100, sinks=[sql_sink])
        token.transfer(CREATOR, ALICE, 10)
        token.transfer(CREATOR, BOB, 20)

        session.execute(
            update(AuditRecordRow)
            .where(AuditRecordRow.ledger_id == "token", AuditRecordRow.seq == 2)
            .values(amount="99")
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError) as exc_info:
            sql_sink.validate_chain("token")
        assert exc_info.value.seq == 2

    def test_sink_never_commits(self, session, sql_sink):
        TokenLedger(CREATOR, 1, sinks=[sql_sink])
        assert session.in_transaction()
