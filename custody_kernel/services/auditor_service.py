"""
AuditorService -- tamper-evident audit trail for one ledger instance.

Responsibility:
    Creates immutable, hash-chained audit records for every committed
    mutating call on a ledger. Provides chain validation for tamper
    detection and simple queries for forensic review.

Architecture position:
    Kernel > Services -- owned by exactly one GuardedLedger (token or
    vault). Records are appended by the entry points after their state
    mutation and before any external call.

Invariants enforced:
    ATOMIC_INVOCATION -- records appended inside ``savepoint()`` are
        discarded when the invocation aborts, so only committed calls
        leave a trace.
    Chain integrity -- ``hash = H(ledger_id | seq | action | actor |
        payload_hash | prev_hash)``. Every record links to its predecessor.
    Append-only -- records are frozen dataclasses and are never modified.

Failure modes:
    - AuditChainBrokenError: Recomputed hash does not match stored hash,
      or prev_hash does not match the predecessor's hash.
    - Any exception raised by a sink propagates out of ``publish_pending``.
      The records stay in the trail and are re-offered on the next
      publish, so sinks receive every record at least once.

Audit relevance:
    This IS the audit service. Sinks (for example SqlAuditSink) are export
    channels that receive committed records in sequence order.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence

from custody_kernel.domain.audit import AuditAction, AuditRecord
from custody_kernel.domain.clock import Clock, SystemClock
from custody_kernel.exceptions import AuditChainBrokenError
from custody_kernel.logging_config import get_logger
from custody_kernel.utils.hashing import hash_audit_record, hash_payload

logger = get_logger("services.auditor")


class AuditSink(Protocol):
    """Receives committed audit records in sequence order."""

    def publish(self, record: AuditRecord) -> None: ...


def record_payload_hash(
    principals: Sequence[str],
    amount: int | None,
    payload: Mapping[str, Any],
) -> str:
    """Hash of the record body (everything except chain and time fields)."""
    return hash_payload(
        {
            "principals": list(principals),
            "amount": amount,
            "payload": dict(payload),
        }
    )


def verify_chain(records: Sequence[AuditRecord]) -> bool:
    """
    Validate an ordered sequence of records from a single ledger.

    Postconditions:
        - Returns ``True`` only if every record's body hashes to its stored
          ``payload_hash``, every stored ``hash`` matches the recomputed
          value and every ``prev_hash`` matches its predecessor's ``hash``.

    Raises:
        AuditChainBrokenError: At the first record that fails a check.
    """
    if not records:
        return True

    if records[0].prev_hash is not None:
        logger.critical(
            "audit_chain_broken",
            extra={"seq": records[0].seq, "reason": "genesis_has_predecessor"},
        )
        raise AuditChainBrokenError(records[0].seq, "None", records[0].prev_hash)

    for i, record in enumerate(records):
        expected_payload_hash = record_payload_hash(
            record.principals, record.amount, record.payload
        )
        if record.payload_hash != expected_payload_hash:
            logger.critical(
                "audit_chain_broken",
                extra={"seq": record.seq, "reason": "payload_hash_mismatch"},
            )
            raise AuditChainBrokenError(
                record.seq, expected_payload_hash, record.payload_hash
            )

        expected_hash = hash_audit_record(
            ledger_id=record.ledger_id,
            seq=record.seq,
            action=AuditAction(record.action).value,
            actor=record.actor,
            payload_hash=record.payload_hash,
            prev_hash=record.prev_hash,
        )
        if record.hash != expected_hash:
            logger.critical(
                "audit_chain_broken",
                extra={"seq": record.seq, "reason": "hash_mismatch"},
            )
            raise AuditChainBrokenError(record.seq, expected_hash, record.hash)

        if i > 0:
            expected_prev = records[i - 1].hash
            if record.prev_hash != expected_prev:
                logger.critical(
                    "audit_chain_broken",
                    extra={"seq": record.seq, "reason": "broken_link"},
                )
                raise AuditChainBrokenError(
                    record.seq, expected_prev, record.prev_hash or "None"
                )

    logger.info("audit_chain_valid", extra={"record_count": len(records)})
    return True


class AuditorService:
    """
    Append-only, hash-chained audit trail with savepoints.

    Contract:
        ``append`` is called by entry points inside an invocation.
        ``savepoint()`` brackets the invocation: on exception every record
        appended inside it is dropped and the sequence counter rewinds.

    Guarantees:
        - ``seq`` starts at 1 and increases by one per committed record,
          with no gaps left by aborted invocations.
        - Sinks never see a record from an aborted invocation.

    Non-goals:
        - Does NOT persist anything itself (sinks do).
        - Does NOT interpret audit records.
    """

    def __init__(
        self,
        ledger_id: str,
        clock: Clock | None = None,
        sinks: Iterable[AuditSink] = (),
    ):
        self._ledger_id = ledger_id
        self._clock = clock or SystemClock()
        self._sinks: list[AuditSink] = list(sinks)
        self._records: list[AuditRecord] = []
        self._published = 0
        self._savepoint_depth = 0

    @property
    def ledger_id(self) -> str:
        return self._ledger_id

    @property
    def sinks(self) -> tuple[AuditSink, ...]:
        return tuple(self._sinks)

    def add_sink(self, sink: AuditSink) -> None:
        """Attach a sink. It only receives records committed from now on."""
        self._sinks.append(sink)

    # Recording

    def append(
        self,
        action: AuditAction,
        actor: str,
        *,
        principals: Sequence[str] = (),
        amount: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> AuditRecord:
        """
        Append a record linked to the current chain head.

        Returns:
            The created AuditRecord.
        """
        seq = len(self._records) + 1
        prev_hash = self._records[-1].hash if self._records else None
        payload_data = dict(payload or {})
        principals = tuple(principals)
        computed_payload_hash = record_payload_hash(principals, amount, payload_data)

        record_hash = hash_audit_record(
            ledger_id=self._ledger_id,
            seq=seq,
            action=action.value,
            actor=actor,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        record = AuditRecord(
            ledger_id=self._ledger_id,
            seq=seq,
            action=action,
            actor=actor,
            principals=principals,
            amount=amount,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=record_hash,
        )
        self._records.append(record)

        logger.info(
            "audit_record_appended",
            extra={
                "ledger_id": self._ledger_id,
                "action": action.value,
                "seq": seq,
                "amount": amount,
            },
        )
        return record

    @contextmanager
    def savepoint(self) -> Iterator["AuditorService"]:
        """Drop every record appended inside the block if it raises."""
        mark = len(self._records)
        self._savepoint_depth += 1
        try:
            yield self
        except BaseException:
            discarded = len(self._records) - mark
            del self._records[mark:]
            if discarded:
                logger.debug(
                    "audit_records_discarded",
                    extra={"ledger_id": self._ledger_id, "count": discarded},
                )
            raise
        finally:
            self._savepoint_depth -= 1

    def publish_pending(self) -> int:
        """
        Hand committed records not yet published to every sink.

        Only runs outside a savepoint; inside one it is a no-op.

        Returns:
            Number of records published.
        """
        if self._savepoint_depth:
            return 0
        published = 0
        while self._published < len(self._records):
            record = self._records[self._published]
            for sink in self._sinks:
                sink.publish(record)
            self._published += 1
            published += 1
        return published

    # Queries

    def records(self, action: AuditAction | None = None) -> tuple[AuditRecord, ...]:
        if action is None:
            return tuple(self._records)
        return tuple(r for r in self._records if r.action == action)

    def count(self, action: AuditAction | None = None) -> int:
        return len(self.records(action))

    def last(self) -> AuditRecord | None:
        return self._records[-1] if self._records else None

    def validate_chain(self) -> bool:
        """
        Validate this ledger's whole chain.

        Raises:
            AuditChainBrokenError: If chain validation fails at any point.
        """
        return verify_chain(self._records)

    def __len__(self) -> int:
        return len(self._records)
