"""
Kernel services -- the guarded ledger instances and their collaborators.

TokenLedger and CustodyVault are the two entry-point surfaces. Both run on
GuardedLedger's invocation pipeline and record every committed call through
their own AuditorService.
"""

from custody_kernel.services.audit_sink import MemoryAuditSink, SqlAuditSink
from custody_kernel.services.auditor_service import (
    AuditorService,
    AuditSink,
    verify_chain,
)
from custody_kernel.services.custody_vault import CustodyVault
from custody_kernel.services.external_call_executor import (
    CallContext,
    CallResult,
    CallTarget,
    ExternalCallExecutor,
)
from custody_kernel.services.guarded_ledger import GuardedLedger
from custody_kernel.services.token_ledger import TokenLedger

__all__ = [
    "AuditorService",
    "AuditSink",
    "MemoryAuditSink",
    "SqlAuditSink",
    "verify_chain",
    "CallContext",
    "CallResult",
    "CallTarget",
    "ExternalCallExecutor",
    "GuardedLedger",
    "TokenLedger",
    "CustodyVault",
]
