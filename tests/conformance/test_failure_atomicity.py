"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation op:
        op succeeds ⟹ every write of op is applied and one event is logged
        op fails    ⟹ snapshot() and the event log are unchanged

All validation completes before the first write, so partial application is
impossible by construction.
"""

import pytest
from hypothesis import given, settings

from scaled_ledger import (
    BASE, UINT256_MAX, ZERO_ADDRESS,
    LedgerError, ZeroAddress, InsufficientBalance, InsufficientAllowance,
    NotAuthorized, IndexFloor, ArithmeticOverflow,
)
from tests.conftest import make_ledger, ADMIN
from tests.conformance.operations import operation, apply_operation


def assert_unchanged(ledger, call, error):
    before = ledger.snapshot()
    events_before = ledger.get_events()
    with pytest.raises(error):
        call()
    assert ledger.snapshot() == before
    assert ledger.get_events() == events_before


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(operation())
    @settings(max_examples=200, deadline=None)
    def test_rejected_operation_changes_nothing(self, op):
        """PROPERTY: Any operation that raises leaves the state exactly as it was."""
        ledger = make_ledger()
        ledger.transfer(ADMIN, "alice", 1_000 * BASE)
        ledger.rebase(ADMIN)
        before = ledger.snapshot()
        events = len(ledger.get_events())

        outcome = apply_operation(ledger, op)

        if outcome is None:
            assert len(ledger.get_events()) == events + 1
        else:
            assert ledger.snapshot() == before
            assert len(ledger.get_events()) == events


class TestAtomicityByError:
    """Each error type, triggered directly."""

    def test_zero_address_recipient(self, funded_ledger):
        assert_unchanged(
            funded_ledger, lambda: funded_ledger.transfer("alice", ZERO_ADDRESS, 1), ZeroAddress
        )

    def test_empty_sender(self, funded_ledger):
        assert_unchanged(
            funded_ledger, lambda: funded_ledger.transfer("", "bob", 1), ZeroAddress
        )

    def test_insufficient_balance(self, rebased_ledger):
        # alice holds 9,900 after the rebase
        assert_unchanged(
            rebased_ledger,
            lambda: rebased_ledger.transfer("alice", "bob", 10_000 * BASE),
            InsufficientBalance,
        )

    def test_insufficient_allowance(self, funded_ledger):
        funded_ledger.approve("alice", "bob", 100)
        assert_unchanged(
            funded_ledger,
            lambda: funded_ledger.transfer_from("bob", "alice", "carol", 101),
            InsufficientAllowance,
        )

    def test_allowance_ok_balance_short(self, funded_ledger):
        funded_ledger.approve("carol", "bob", 5_000 * BASE)
        assert_unchanged(
            funded_ledger,
            lambda: funded_ledger.transfer_from("bob", "carol", "alice", 2_000 * BASE),
            InsufficientBalance,
        )

    def test_not_authorized_rebase(self, funded_ledger):
        assert_unchanged(funded_ledger, lambda: funded_ledger.rebase("alice"), NotAuthorized)

    def test_not_authorized_transfer_admin(self, funded_ledger):
        assert_unchanged(
            funded_ledger, lambda: funded_ledger.transfer_admin("alice", "alice"), NotAuthorized
        )

    def test_transfer_admin_to_zero_address(self, funded_ledger):
        assert_unchanged(
            funded_ledger,
            lambda: funded_ledger.transfer_admin(ADMIN, ZERO_ADDRESS),
            ZeroAddress,
        )

    def test_overflowing_amount(self, funded_ledger):
        huge = UINT256_MAX // BASE + 1
        assert_unchanged(
            funded_ledger, lambda: funded_ledger.transfer(ADMIN, "bob", huge), ArithmeticOverflow
        )
        assert_unchanged(
            funded_ledger, lambda: funded_ledger.approve(ADMIN, "bob", huge), ArithmeticOverflow
        )

    def test_index_floor(self, funded_ledger):
        while funded_ledger.rebases_remaining():
            funded_ledger.rebase(ADMIN)
        assert_unchanged(funded_ledger, lambda: funded_ledger.rebase(ADMIN), IndexFloor)

    def test_all_errors_are_ledger_errors(self):
        for error in (ZeroAddress, InsufficientBalance, InsufficientAllowance,
                      NotAuthorized, IndexFloor, ArithmeticOverflow):
            assert issubclass(error, LedgerError)

    def test_success_applies_every_write(self, funded_ledger):
        funded_ledger.approve("alice", "bob", 1_000 * BASE)
        funded_ledger.transfer_from("bob", "alice", "carol", 400 * BASE)
        assert funded_ledger.balance_of("alice") == 9_600 * BASE
        assert funded_ledger.balance_of("carol") == 1_400 * BASE
        assert funded_ledger.allowance("alice", "bob") == 600 * BASE
