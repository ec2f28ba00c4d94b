"""
Pytest fixtures for the custody kernel test suite.

Provides:
- Structured logging configuration and log capture
- Deterministic clock
- Principals, token and vault fixtures
- In-memory SQLite sessions for the SQL audit sink
"""

import json
import logging
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from custody_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from custody_kernel.domain.clock import DeterministicClock
from custody_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from custody_kernel.services.audit_sink import MemoryAuditSink
from custody_kernel.services.custody_vault import CustodyVault
from custody_kernel.services.external_call_executor import ExternalCallExecutor
from custody_kernel.services.token_ledger import TokenLedger

from tests.principals import CREATOR, INITIAL_SUPPLY


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture custody_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, token):
            token.transfer(CREATOR, ALICE, 1)
            logs = captured_logs()
            assert any(r["message"] == "invocation_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("custody_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def token(deterministic_clock, audit_sink) -> TokenLedger:
    """Token with 1,000,000 units held by CREATOR."""
    return TokenLedger(
        CREATOR,
        INITIAL_SUPPLY,
        clock=deterministic_clock,
        sinks=[audit_sink],
    )


@pytest.fixture
def executor() -> ExternalCallExecutor:
    return ExternalCallExecutor()


@pytest.fixture
def vault(executor, deterministic_clock, audit_sink) -> CustodyVault:
    """Empty vault owned by CREATOR."""
    return CustodyVault(
        CREATOR,
        executor=executor,
        clock=deterministic_clock,
        sinks=[audit_sink],
    )


# =============================================================================
# Database fixtures (in-memory SQLite)
# =============================================================================


@pytest.fixture
def db_engine():
    engine = init_engine_from_url("sqlite://")
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session that is rolled back at teardown.

    The session joins an outer transaction on a dedicated connection, so
    nothing a test flushes outlives it.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()
