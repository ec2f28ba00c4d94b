"""
AccessControlRegistry -- role membership as explicit sets.

Responsibility:
    Maps role identifiers to the set of principals holding them and
    answers the ``has(role, principal)`` predicate used by every privileged
    entry point.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    No side effects on the BalanceLedger.

Invariants enforced:
    ADMIN_PRESENT -- at least one principal holds ADMIN_ROLE after
                     construction. revoke() refuses to remove the last one.

Failure modes:
    - UnauthorizedError: grant/revoke by a principal without ADMIN_ROLE,
      or require() on a missing role. A failed check never surfaces as
      any other exception type.
    - LastAdministratorError: revoking the only administrator.
"""

from __future__ import annotations

from custody_kernel.exceptions import LastAdministratorError, UnauthorizedError

ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
MINTER_ROLE = "MINTER_ROLE"


class AccessControlRegistry:
    """
    Role -> principal-set registry.

    Contract:
        Roles are open-ended strings. ``has`` is a pure read. ``grant`` and
        ``revoke`` require the caller to hold ADMIN_ROLE; the only exception
        is the bootstrap grant performed once by the constructor.

    Guarantees:
        - grant/revoke report whether membership actually changed.
        - ADMIN_ROLE is never left empty.

    Non-goals:
        - No role hierarchy or per-role admin roles: membership is flat.
        - Does NOT authenticate principals.
    """

    def __init__(self, administrator: str, bootstrap_roles: tuple[str, ...] = ()):
        self._members: dict[str, set[str]] = {ADMIN_ROLE: {administrator}}
        for role in bootstrap_roles:
            self._members.setdefault(role, set()).add(administrator)

    def has(self, role: str, principal: str | None) -> bool:
        return principal is not None and principal in self._members.get(role, ())

    def require(self, role: str, principal: str | None) -> None:
        """Raise UnauthorizedError unless ``principal`` holds ``role``."""
        if not self.has(role, principal):
            raise UnauthorizedError(principal, role)

    def members(self, role: str) -> frozenset[str]:
        return frozenset(self._members.get(role, ()))

    def roles(self) -> tuple[str, ...]:
        return tuple(sorted(role for role, holders in self._members.items() if holders))

    def grant(self, caller: str, role: str, principal: str) -> bool:
        """
        Add ``principal`` to ``role``.

        Returns:
            True if the principal was not already a member.

        Raises:
            UnauthorizedError: If ``caller`` is not an administrator.
        """
        self.require(ADMIN_ROLE, caller)
        holders = self._members.setdefault(role, set())
        if principal in holders:
            return False
        holders.add(principal)
        return True

    def revoke(self, caller: str, role: str, principal: str) -> bool:
        """
        Remove ``principal`` from ``role``.

        Returns:
            True if the principal was a member.

        Raises:
            UnauthorizedError: If ``caller`` is not an administrator.
            LastAdministratorError: If this would empty ADMIN_ROLE.
        """
        self.require(ADMIN_ROLE, caller)
        holders = self._members.get(role, set())
        if principal not in holders:
            return False
        if role == ADMIN_ROLE and len(holders) == 1:
            raise LastAdministratorError(principal, role)
        holders.discard(principal)
        return True

    def snapshot(self) -> dict[str, frozenset[str]]:
        """Immutable copy of all memberships, for invocation rollback."""
        return {role: frozenset(holders) for role, holders in self._members.items()}

    def restore(self, snapshot: dict[str, frozenset[str]]) -> None:
        self._members = {role: set(holders) for role, holders in snapshot.items()}
