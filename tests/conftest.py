"""
conftest.py - Shared pytest fixtures for ScaledLedger tests

Provides common fixtures used across unit, functional and conformance tests:
- The reference ledger (1,000,000 units minted to "admin")
- A funded ledger with several holders
- Invariant and state-comparison helpers
"""

import pytest
from datetime import datetime

from scaled_ledger import ScaledLedger, BASE


ADMIN = "admin"
SUPPLY = 1_000_000 * BASE
START = datetime(2025, 1, 1)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_ledger(supply: int = SUPPLY, deployer: str = ADMIN, **kwargs) -> ScaledLedger:
    """Create a ledger with test defaults."""
    kwargs.setdefault("initial_time", START)
    return ScaledLedger("Contracting Dollar", "CUSD", 18, supply, deployer, **kwargs)


def assert_invariants(ledger: ScaledLedger) -> None:
    """Fail with the violation list if any invariant is broken."""
    result = ledger.verify_invariants()
    assert result['valid'], result['violations']


def ledger_state_equals(ledger1: ScaledLedger, ledger2: ScaledLedger) -> bool:
    """Check if two ledgers have identical state (ignores event log contents)."""
    return ledger1.snapshot() == ledger2.snapshot()


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Fresh ledger: 1,000,000 * BASE minted to admin, index == BASE."""
    return make_ledger()


@pytest.fixture
def funded_ledger():
    """Ledger with alice 10,000, bob 5,000 and carol 1,000 (all * BASE)."""
    ledger = make_ledger()
    ledger.transfer(ADMIN, "alice", 10_000 * BASE)
    ledger.transfer(ADMIN, "bob", 5_000 * BASE)
    ledger.transfer(ADMIN, "carol", 1_000 * BASE)
    return ledger


@pytest.fixture
def rebased_ledger(funded_ledger):
    """Funded ledger after one rebase (index == BASE * 99 // 100)."""
    funded_ledger.rebase(ADMIN)
    return funded_ledger
