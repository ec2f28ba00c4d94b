"""
Module: custody_kernel.models.audit_record
Responsibility: ORM persistence for exported audit records.
Architecture position: Kernel > Models.  May import from db/base.py and the
    audit record types in domain/.

Invariants enforced:
    - (ledger_id, seq) is unique: a ledger's chain is stored once.
    - Chain integrity is NOT enforced at INSERT time; SqlAuditSink
      re-validates the stored chain on demand.

Audit relevance:
    Rows are the off-process copy of each ledger's hash chain.  The
    in-memory AuditorService remains the authoritative trail.
"""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from custody_kernel.db.base import Base
from custody_kernel.domain.audit import AuditAction, AuditRecord


class AuditRecordRow(Base):
    """
    One exported audit record.

    Contract:
        Built with ``from_record`` and turned back into the domain type with
        ``to_record``.  ``amount`` is stored as a decimal string.
    """

    __tablename__ = "audit_records"

    __table_args__ = (
        UniqueConstraint("ledger_id", "seq", name="uq_audit_ledger_seq"),
        Index("idx_audit_records_action", "action"),
        Index("idx_audit_records_occurred", "occurred_at"),
    )

    ledger_id: Mapped[str] = mapped_column(String(100), nullable=False)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    actor: Mapped[str] = mapped_column(String(128), nullable=False)

    principals: Mapped[list] = mapped_column(JSON, nullable=False)

    # uint256 has 78 decimal digits
    amount: Mapped[str | None] = mapped_column(String(78), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordRow":
        return cls(
            ledger_id=record.ledger_id,
            seq=record.seq,
            action=record.action.value,
            actor=record.actor,
            principals=list(record.principals),
            amount=str(record.amount) if record.amount is not None else None,
            occurred_at=record.occurred_at,
            payload=dict(record.payload),
            payload_hash=record.payload_hash,
            prev_hash=record.prev_hash,
            hash=record.hash,
        )

    def to_record(self) -> AuditRecord:
        return AuditRecord(
            ledger_id=self.ledger_id,
            seq=self.seq,
            action=AuditAction(self.action),
            actor=self.actor,
            principals=tuple(self.principals),
            amount=int(self.amount) if self.amount is not None else None,
            occurred_at=self.occurred_at,
            payload=dict(self.payload or {}),
            payload_hash=self.payload_hash,
            prev_hash=self.prev_hash,
            hash=self.hash,
        )

    def __repr__(self) -> str:
        return f"<AuditRecordRow {self.ledger_id}#{self.seq} {self.action}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
