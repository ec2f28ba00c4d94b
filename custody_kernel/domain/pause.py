"""
PauseSwitch -- two-state circuit breaker.

Responsibility:
    Gates entry to mutating operations. ``require_active()`` is the first
    check an entry point runs after acquiring its guard.

Architecture position:
    Kernel > Domain -- pure state holder. Authorization for pause() and
    unpause() is checked by the entry points that call them.

Failure modes:
    - SystemPausedError: require_active() while paused, or pause() twice.
    - NotPausedError: unpause() while active.
"""

from __future__ import annotations

from enum import Enum

from custody_kernel.exceptions import NotPausedError, SystemPausedError


class PauseState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


class PauseSwitch:
    """The reversible emergency stop. There is no irreversible one."""

    def __init__(self, name: str = "ledger"):
        self._name = name
        self._state = PauseState.ACTIVE

    @property
    def state(self) -> PauseState:
        return self._state

    @property
    def is_paused(self) -> bool:
        return self._state is PauseState.PAUSED

    def require_active(self) -> None:
        if self._state is PauseState.PAUSED:
            raise SystemPausedError(self._name)

    def pause(self) -> None:
        """Active -> Paused."""
        if self._state is PauseState.PAUSED:
            raise SystemPausedError(self._name)
        self._state = PauseState.PAUSED

    def unpause(self) -> None:
        """Paused -> Active."""
        if self._state is PauseState.ACTIVE:
            raise NotPausedError(self._name)
        self._state = PauseState.ACTIVE

    def restore(self, state: PauseState) -> None:
        """Reset to a captured state when an invocation aborts."""
        self._state = state
