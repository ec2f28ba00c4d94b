"""
Custody Kernel

An in-memory guarded ledger with:
- Checked, non-wrapping balance arithmetic
- Role-based access control
- Reentrancy guard around every mutating entry point
- Pause circuit breaker
- Bounded, validate-then-commit batch transfers
- Hash-chained audit trail
"""

__version__ = "0.1.0"
