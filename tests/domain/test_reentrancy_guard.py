"""ReentrancyGuard tests: scoped acquisition and release on every exit path."""

import pytest

from custody_kernel.domain.reentrancy import ReentrancyGuard
from custody_kernel.exceptions import ReentrantCallError


class TestReentrancyGuard:

    def test_idle_guard_acquires(self):
        guard = ReentrancyGuard("g")
        with guard:
            assert guard.held
            assert guard.depth == 1
        assert not guard.held
        assert guard.depth == 0

    def test_nested_acquire_rejected(self):
        guard = ReentrancyGuard("g")
        with guard:
            with pytest.raises(ReentrantCallError) as exc_info:
                with guard:
                    pass  # pragma: no cover
            assert exc_info.value.guard_name == "g"
            assert exc_info.value.depth == 1
            # The failed inner attempt must not release the outer holder
            assert guard.held
        assert not guard.held

    def test_released_after_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(ValueError):
            with guard:
                raise ValueError("boom")
        assert guard.depth == 0

    def test_reacquire_after_release(self):
        guard = ReentrancyGuard()
        with guard:
            pass
        with guard:
            assert guard.held

    def test_rejection_logged(self, captured_logs):
        guard = ReentrancyGuard("vault.guard")
        with guard:
            with pytest.raises(ReentrantCallError):
                guard.acquire()

        logs = captured_logs()
        rejected = [r for r in logs if r["message"] == "reentrant_call_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["guard"] == "vault.guard"
        assert rejected[0]["level"] == "WARNING"
