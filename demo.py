#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Scaled Ledger Step by Step

This is a pedagogical demonstration of how a share/index ledger works.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Foundation      - Minting, shares vs. amounts, the first transfer
  4-6:   Rebase          - The 1% contraction, dust, compounding
  7-8:   Delegation      - Allowances, and how they drift across a rebase
  9-10:  Control         - Rejections, authorization policies, admin handoff
  11-12: Operations      - Scheduled rebases and the index floor

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import sys

from scaled_ledger import (
    # Core classes
    ScaledLedger, RebaseScheduler,
    # Authorization
    OperatorAuthorizer,
    # Constants
    BASE, MIN_INDEX,
    # Exceptions
    LedgerError, IndexFloor,
    # Helpers
    to_shares, to_amount,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 0, 0, 0)
    initial_supply: int = 1_000_000 * BASE
    alice_funding: int = 10_000 * BASE
    bob_allowance: int = 50_000 * BASE
    bob_spend: int = 30_000 * BASE
    scheduled_days: int = 7


CONFIG = DemoConfig()

# Global state for interactive mode
QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def units(amount: int) -> str:
    """Format a BASE-scaled amount for display."""
    whole, frac = divmod(amount, BASE)
    return f"{whole:,}.{frac:018d}"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_mint():
    """Create a ledger; the deployer receives the supply and the admin role."""
    step_header(1, "Minting the Supply",
        "Understand that construction mints everything to the deployer.")

    print(">>> ledger = ScaledLedger('Contracting Dollar', 'CUSD', 18, 1_000_000 * BASE, 'admin')")
    ledger = ScaledLedger(
        "Contracting Dollar", "CUSD", 18,
        CONFIG.initial_supply, "admin",
        initial_time=CONFIG.start_time,
        verbose=True,
    )

    section_header("Initial State")
    print(f"Index:         {ledger.get_index()}  (== BASE)")
    print(f"Total supply:  {units(ledger.total_supply())}")
    print(f"Total shares:  {ledger.total_shares}")
    print(f"Admin:         {ledger.admin}")
    return ledger


def step_02_shares_vs_amounts(ledger: ScaledLedger):
    """Explain the two spaces: stored shares and visible amounts."""
    step_header(2, "Shares vs. Amounts",
        "Balances are stored as shares; amounts are derived through the index.")

    print("""
    Every account holds SHARES. What a caller sees is:

        balance_of(a) = shares[a] * index // BASE

    Rebasing only changes the index, so one write updates every balance.
    """)
    shares = ledger.get_raw_shares("admin")
    print(f"get_raw_shares('admin') = {shares}")
    print(f"balance_of('admin')     = {ledger.balance_of('admin')}")
    return ledger


def step_03_first_transfer(ledger: ScaledLedger):
    """Move an external amount; shares move underneath."""
    step_header(3, "The First Transfer",
        "A transfer converts the amount to shares at the current index.")

    print(">>> ledger.transfer('admin', 'alice', 10_000 * BASE)")
    ledger.transfer("admin", "alice", CONFIG.alice_funding)
    print(f"\nalice: {units(ledger.balance_of('alice'))} ({ledger.get_raw_shares('alice')} shares)")
    return ledger


# ============================================================================
# PHASE 2: REBASE (Steps 4-6)
# ============================================================================

def step_04_rebase(ledger: ScaledLedger):
    """Contract every balance by 1% in one operation."""
    step_header(4, "Rebase",
        "One index update contracts every balance by 1%.")

    print(">>> ledger.rebase('admin')")
    ledger.rebase("admin")

    section_header("After Rebase")
    print(f"Index:         {ledger.get_index()}")
    print(f"Total supply:  {units(ledger.total_supply())}")
    print(f"alice:         {units(ledger.balance_of('alice'))}")
    print(f"alice shares:  {ledger.get_raw_shares('alice')}  (unchanged)")
    return ledger


def step_05_dust(ledger: ScaledLedger):
    """Truncation rounds tiny balances away."""
    step_header(5, "Dust",
        "Rounding always truncates; one share can be worth nothing.")

    print(">>> ledger.transfer('admin', 'dusty', 1)")
    ledger.transfer("admin", "dusty", 1)
    print(f"dusty shares:  {ledger.get_raw_shares('dusty')}")
    print(f"dusty balance: {ledger.balance_of('dusty')}")
    index = ledger.get_index()
    print(f"\nto_amount(1 share) at this index = {to_amount(1, index)}")
    print(f"to_shares(1 unit)  at this index = {to_shares(1, index)}")

    result = ledger.verify_invariants()
    print(f"\nRounding gap (total_supply - Σ balances): {result['rounding_gap']}")
    return ledger


def step_06_compounding(ledger: ScaledLedger):
    """Rebases compound with the same truncation order."""
    step_header(6, "Compounding",
        "Each rebase applies index * 99 // 100 to the previous index.")

    ledger.verbose = False
    for _ in range(2):
        ledger.rebase("admin")
    ledger.verbose = True
    print(f"Index after 3 rebases: {ledger.get_index()}")
    print(f"Total supply:          {units(ledger.total_supply())}")
    print(f"Rebases remaining:     {ledger.rebases_remaining()}")
    return ledger


# ============================================================================
# PHASE 3: DELEGATION (Steps 7-8)
# ============================================================================

def step_07_allowance(ledger: ScaledLedger):
    """Approve a spender; the allowance is stored in shares."""
    step_header(7, "Allowances",
        "approve() stores to_shares(amount); allowance() converts back.")

    print(">>> ledger.approve('admin', 'bob', 50_000 * BASE)")
    ledger.approve("admin", "bob", CONFIG.bob_allowance)
    print(f"allowance:      {units(ledger.allowance('admin', 'bob'))}")
    print(f"raw allowance:  {ledger.get_raw_allowance('admin', 'bob')} shares")
    return ledger


def step_08_allowance_drift(ledger: ScaledLedger):
    """The allowance contracts with the index and is deducted in shares."""
    step_header(8, "Allowance Across a Rebase",
        "Checked in amount space, deducted in share space.")

    ledger.rebase("admin")
    print(f"allowance after rebase: {units(ledger.allowance('admin', 'bob'))}")

    print("\n>>> ledger.transfer_from('bob', 'admin', 'carol', 30_000 * BASE)")
    ledger.transfer_from("bob", "admin", "carol", CONFIG.bob_spend)
    print(f"\nallowance left: {units(ledger.allowance('admin', 'bob'))}")
    print(f"carol received: {units(ledger.balance_of('carol'))}")
    return ledger


# ============================================================================
# PHASE 4: CONTROL (Steps 9-10)
# ============================================================================

def step_09_rejections(ledger: ScaledLedger):
    """Every failure leaves the ledger untouched."""
    step_header(9, "Rejections",
        "Validation completes before any write; failures change nothing.")

    before = ledger.snapshot()
    attempts = [
        ("alice overspends", lambda: ledger.transfer("alice", "bob", 10**9 * BASE)),
        ("alice rebases", lambda: ledger.rebase("alice")),
        ("send to empty account", lambda: ledger.transfer("alice", "", 1)),
    ]
    for label, attempt in attempts:
        print(f">>> {label}")
        try:
            attempt()
        except LedgerError:
            pass
    print(f"\nState unchanged: {ledger.snapshot() == before}")
    return ledger


def step_10_authorization():
    """Swap the authorization policy without touching the accounting."""
    step_header(10, "Authorization Policies",
        "Who may rebase is decided by a pluggable Authorizer.")

    ledger = ScaledLedger(
        "Contracting Dollar", "CUSD", 18, CONFIG.initial_supply, "admin",
        initial_time=CONFIG.start_time, verbose=True,
        authorizer=OperatorAuthorizer(["keeper"]),
    )
    print("\n>>> ledger.rebase('keeper')")
    ledger.rebase("keeper")
    print("\n>>> ledger.transfer_admin('keeper', 'keeper')")
    try:
        ledger.transfer_admin("keeper", "keeper")
    except LedgerError:
        pass
    print("\n>>> ledger.transfer_admin('admin', 'treasury')")
    ledger.transfer_admin("admin", "treasury")
    return ledger


# ============================================================================
# PHASE 5: OPERATIONS (Steps 11-12)
# ============================================================================

def step_11_schedule(ledger: ScaledLedger):
    """Drive daily rebases from a scheduler."""
    step_header(11, "Scheduled Rebases",
        "A scheduler advances the logical clock and rebases at each trigger.")

    scheduler = RebaseScheduler()
    start = ledger.current_time
    scheduler.schedule_many(
        [start + timedelta(days=d) for d in range(1, CONFIG.scheduled_days + 1)],
        label="daily",
    )
    events = scheduler.step(ledger, "keeper", start + timedelta(days=CONFIG.scheduled_days))
    print(f"\nExecuted {len(events)} rebases; clock now {ledger.current_time.isoformat()}")
    return ledger


def step_12_floor():
    """The index cannot fall below MIN_INDEX."""
    step_header(12, "The Index Floor",
        "Once index * 99 // 100 < MIN_INDEX, every rebase fails with IndexFloor.")

    ledger = ScaledLedger("Contracting Dollar", "CUSD", 18, CONFIG.initial_supply, "admin")
    count = 0
    while True:
        try:
            ledger.rebase("admin")
        except IndexFloor as e:
            print(f"Stopped after {count} rebases: {e}")
            break
        count += 1
    print(f"Final index:   {ledger.get_index()}  (MIN_INDEX = {MIN_INDEX})")
    print(f"Total supply:  {units(ledger.total_supply())}")
    print(f"Invariants:    {ledger.verify_invariants()['valid']}")
    return ledger


def main():
    print("=" * 70)
    print("       SCALED LEDGER TUTORIAL")
    print("=" * 70)

    ledger = step_01_mint()
    wait_for_enter()
    ledger = step_02_shares_vs_amounts(ledger)
    wait_for_enter()
    ledger = step_03_first_transfer(ledger)
    wait_for_enter()

    ledger = step_04_rebase(ledger)
    wait_for_enter()
    ledger = step_05_dust(ledger)
    wait_for_enter()
    ledger = step_06_compounding(ledger)
    wait_for_enter()

    ledger = step_07_allowance(ledger)
    wait_for_enter()
    ledger = step_08_allowance_drift(ledger)
    wait_for_enter()

    ledger = step_09_rejections(ledger)
    wait_for_enter()
    operated = step_10_authorization()
    wait_for_enter()

    step_11_schedule(operated)
    wait_for_enter()
    step_12_floor()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

    FOUNDATION
      - Balances are shares; amounts are shares * index // BASE
      - Transfers move shares; total_shares never changes

    REBASE
      - One index write contracts every balance by 1%
      - Truncation rounds dust away; the gap is at most one unit per account

    CONTROL
      - Failed operations change nothing
      - Authorization is a pluggable policy

    Next steps:
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
