"""
ReentrancyGuard -- per-instance call-depth sentinel.

An operation that hands control to caller-supplied code before finishing
its own bookkeeping opens a window in which that code can call back into
the same ledger. The guard closes that window: while one guarded
invocation is in progress, every other guarded invocation on the same
instance fails with ReentrantCallError.

Usage::

    with guard:
        ...  # depth == 1; released on every exit path
"""

from __future__ import annotations

from types import TracebackType

from custody_kernel.exceptions import ReentrantCallError
from custody_kernel.logging_config import get_logger

logger = get_logger("domain.reentrancy")


class ReentrancyGuard:
    """
    Depth counter with scoped acquisition.

    Guarantees:
        - depth is 0 before and after every top-level invocation.
        - acquire() never increments past 1.
        - When used as a context manager, release() runs on normal return
          and on every exception. A failed acquire() leaves the holder's
          depth untouched.
    """

    def __init__(self, name: str = "guard"):
        self._name = name
        self._depth = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def held(self) -> bool:
        return self._depth != 0

    def acquire(self) -> None:
        if self._depth != 0:
            logger.warning(
                "reentrant_call_rejected",
                extra={"guard": self._name, "depth": self._depth},
            )
            raise ReentrantCallError(self._name, self._depth)
        self._depth = 1

    def release(self) -> None:
        self._depth = 0

    def __enter__(self) -> "ReentrancyGuard":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
