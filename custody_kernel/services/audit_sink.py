"""
Audit sinks -- export channels for committed audit records.

Responsibility:
    Receive records from AuditorService.publish_pending() after an
    invocation commits. MemoryAuditSink keeps them in a list (observers,
    tests); SqlAuditSink writes them to the ``audit_records`` table.

Architecture position:
    Kernel > Services -- imperative shell. SqlAuditSink follows the
    flush-only session contract: the caller owns commit and rollback.

Failure modes:
    - IntegrityError: a (ledger_id, seq) pair published twice.
    - AuditChainBrokenError: stored rows fail re-validation.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.logging_config import get_logger
from custody_kernel.models.audit_record import AuditRecordRow
from custody_kernel.services.auditor_service import verify_chain

logger = get_logger("services.audit_sink")


class MemoryAuditSink:
    """Collects published records in order. Can be shared by ledgers."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def publish(self, record: AuditRecord) -> None:
        self.records.append(record)

    def actions(self) -> list[AuditAction]:
        return [r.action for r in self.records]


class SqlAuditSink:
    """
    Persists committed audit records through a SQLAlchemy session.

    Contract:
        ``publish`` adds one row and flushes. It never commits.

    Guarantees:
        - Rows round-trip to equal AuditRecord values, so the stored chain
          validates exactly like the in-memory one.

    Non-goals:
        - Does NOT restore ledger state from rows.
    """

    def __init__(self, session: Session):
        self._session = session

    def publish(self, record: AuditRecord) -> None:
        self._session.add(AuditRecordRow.from_record(record))
        self._session.flush()
        logger.debug(
            "audit_record_exported",
            extra={"ledger_id": record.ledger_id, "seq": record.seq},
        )

    def load(self, ledger_id: str) -> list[AuditRecord]:
        """All stored records of one ledger, in sequence order."""
        rows = self._session.execute(
            select(AuditRecordRow)
            .where(AuditRecordRow.ledger_id == ledger_id)
            .order_by(AuditRecordRow.seq)
        ).scalars().all()
        return [row.to_record() for row in rows]

    def ledger_ids(self) -> list[str]:
        return list(
            self._session.execute(
                select(AuditRecordRow.ledger_id).distinct().order_by(AuditRecordRow.ledger_id)
            ).scalars()
        )

    def validate_chain(self, ledger_id: str) -> bool:
        """
        Re-validate the stored chain of ``ledger_id``.

        Raises:
            AuditChainBrokenError: If any stored row was altered.
        """
        return verify_chain(self.load(ledger_id))
