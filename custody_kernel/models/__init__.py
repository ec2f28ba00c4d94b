"""ORM models for the custody kernel's audit export."""

from custody_kernel.models.audit_record import AuditRecordRow

__all__ = ["AuditRecordRow"]
