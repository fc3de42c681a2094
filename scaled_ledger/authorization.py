"""
authorization.py - Pluggable capability checks for privileged operations

The ledger never decides on its own who may rebase or reassign the admin.
It asks an Authorizer, which receives a read-only LedgerView, the calling
principal and the action being attempted.

Classes:
- Authorizer: Protocol defining the capability check
- AdminAuthorizer: Only the current admin may perform privileged actions
- OperatorAuthorizer: The admin plus a fixed set of operators may rebase;
  only the admin may transfer the admin capability
"""

from typing import FrozenSet, Iterable, Protocol, runtime_checkable

from .core import Account, LedgerView, is_valid_account


# Privileged action names (strings, not enum, like the unit type constants).
ACTION_REBASE = "rebase"
ACTION_TRANSFER_ADMIN = "transfer_admin"

PRIVILEGED_ACTIONS = frozenset({ACTION_REBASE, ACTION_TRANSFER_ADMIN})


@runtime_checkable
class Authorizer(Protocol):
    """
    Protocol for authorization policies.

    Implementations must be pure: the answer depends only on the view, the
    caller and the action, and asking must not change any state.
    """

    def is_authorized(self, view: LedgerView, caller: Account, action: str) -> bool:
        """Return True if caller may perform action against the ledger in view."""
        ...


class AdminAuthorizer:
    """Single-admin policy: the caller must equal view.admin."""

    def is_authorized(self, view: LedgerView, caller: Account, action: str) -> bool:
        if action not in PRIVILEGED_ACTIONS:
            return False
        return is_valid_account(caller) and caller == view.admin

    def __repr__(self) -> str:
        return "AdminAuthorizer()"


class OperatorAuthorizer:
    """
    Admin plus operators.

    Operators may trigger rebases (for example a keeper process running a
    RebaseScheduler) but can never take over the admin capability.
    """

    def __init__(self, operators: Iterable[Account]):
        """
        Args:
            operators: Principals allowed to rebase in addition to the admin

        Raises:
            ValueError: If any operator is not a real account
        """
        ops = frozenset(operators)
        for op in ops:
            if not is_valid_account(op):
                raise ValueError(f"Operator must be a real account, got {op!r}")
        self.operators: FrozenSet[Account] = ops

    def is_authorized(self, view: LedgerView, caller: Account, action: str) -> bool:
        if not is_valid_account(caller):
            return False
        if caller == view.admin:
            return action in PRIVILEGED_ACTIONS
        if action == ACTION_REBASE:
            return caller in self.operators
        return False

    def __repr__(self) -> str:
        return f"OperatorAuthorizer({sorted(self.operators)})"
