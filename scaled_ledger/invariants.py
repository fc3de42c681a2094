"""
invariants.py - Invariant checks over a ledger's state

Each check is a pure function over a ledger and returns a list of violation
messages (empty when the invariant holds). verify_ledger() runs them all and
collects the results in the same shape as the double-entry verification
report: {'valid': ..., 'violations': [...], ...}.

Invariants:
1. Share conservation:     Σ shares[a] == total_shares
2. Index bounds:           MIN_INDEX <= index <= BASE
3. Aggregate bound:        0 <= total_supply - Σ balance_of(a) <= #known accounts
4. Non-negative shares:    shares[a] >= 0 for every a
5. Balance consistency:    balance_of(a) == shares[a] * index // BASE
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, List

from .core import BASE, MIN_INDEX

if TYPE_CHECKING:
    from .ledger import ScaledLedger


def share_sum(ledger: ScaledLedger) -> int:
    """Sum of every stored share balance. Accounts are summed in sorted order."""
    positions = ledger.get_positions()
    return sum(positions[a] for a in sorted(positions))


def rounding_gap(ledger: ScaledLedger) -> int:
    """total_supply() minus the sum of balance_of over every known account."""
    return ledger.total_supply() - sum(ledger.balance_of(a) for a in ledger.known_accounts())


def check_supply_conservation(ledger: ScaledLedger) -> List[str]:
    total = share_sum(ledger)
    if total != ledger.total_shares:
        return [f"share sum {total} != total_shares {ledger.total_shares}"]
    return []


def check_non_negative(ledger: ScaledLedger) -> List[str]:
    return [
        f"{account} holds negative shares {shares}"
        for account, shares in sorted(ledger.get_positions().items())
        if shares < 0
    ]


def check_index_bounds(ledger: ScaledLedger) -> List[str]:
    index = ledger.get_index()
    if not MIN_INDEX <= index <= BASE:
        return [f"index {index} outside [{MIN_INDEX}, {BASE}]"]
    return []


def check_balance_consistency(ledger: ScaledLedger) -> List[str]:
    """balance_of must equal raw shares converted at the current index, exactly."""
    index = ledger.get_index()
    violations = []
    for account in ledger.known_accounts():
        expected = ledger.get_raw_shares(account) * index // BASE
        actual = ledger.balance_of(account)
        if actual != expected:
            violations.append(f"{account}: balance_of {actual} != {expected}")
    return violations


def check_aggregate_bound(ledger: ScaledLedger) -> List[str]:
    """
    Per-account truncation loses at most one unit each, so the aggregate
    supply exceeds the sum of balances by between 0 and #known accounts.
    """
    gap = rounding_gap(ledger)
    limit = len(ledger.known_accounts())
    if not 0 <= gap <= limit:
        return [f"rounding gap {gap} outside [0, {limit}]"]
    return []


def verify_ledger(ledger: ScaledLedger) -> Dict[str, Any]:
    """
    Run every invariant check.

    Returns:
        Dict with keys:
        - 'valid': bool - True if every invariant holds
        - 'total_shares': int - The ledger's constant share count
        - 'share_sum': int - Σ shares over all accounts
        - 'rounding_gap': int - total_supply - Σ balance_of (None when shares
          or the index are malformed)
        - 'violations': List[str] - Messages for every broken invariant
    """
    violations: List[str] = []
    violations.extend(check_supply_conservation(ledger))
    structural = check_non_negative(ledger) + check_index_bounds(ledger)
    violations.extend(structural)
    gap = None
    # Amount-space checks convert through the index; skip them on a malformed state
    if not structural:
        violations.extend(check_balance_consistency(ledger))
        violations.extend(check_aggregate_bound(ledger))
        gap = rounding_gap(ledger)
    return {
        'valid': not violations,
        'total_shares': ledger.total_shares,
        'share_sum': share_sum(ledger),
        'rounding_gap': gap,
        'violations': violations,
    }
