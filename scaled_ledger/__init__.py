"""
scaled_ledger - Share/Index Balance Ledger with O(1) Rebase

Balances are stored as internal shares scaled by a global index. A rebase
shrinks the index, contracting every account's external balance at once
without rewriting any stored share count.

Usage:
    from scaled_ledger import ScaledLedger, BASE

    ledger = ScaledLedger("Contracting Dollar", "CUSD", 18,
                          initial_supply=1_000_000 * BASE, deployer="admin")

    ledger.transfer("admin", "alice", 100 * BASE)
    ledger.approve("alice", "bob", 50 * BASE)
    ledger.transfer_from("bob", "alice", "carol", 20 * BASE)

    ledger.rebase("admin")            # every balance shrinks by 1%
    ledger.balance_of("alice")        # 79.2 * BASE
"""

# Core types
from .core import (
    LedgerView,
    TokenMetadata,
    TransferEvent,
    ApprovalEvent,
    RebaseEvent,
    AdminChangedEvent,
    LedgerError,
    ZeroAddress,
    InsufficientBalance,
    InsufficientAllowance,
    NotAuthorized,
    IndexFloor,
    ArithmeticOverflow,
    BASE,
    MIN_INDEX,
    REBASE_NUMERATOR,
    REBASE_DENOMINATOR,
    UINT256_MAX,
    ZERO_ADDRESS,
    is_valid_account,
    to_shares,
    to_amount,
    next_index,
    rebases_remaining,
    index_path,
)

# Authorization
from .authorization import (
    Authorizer,
    AdminAuthorizer,
    OperatorAuthorizer,
    ACTION_REBASE,
    ACTION_TRANSFER_ADMIN,
)

# Ledger
from .ledger import ScaledLedger

# Invariants
from .invariants import (
    share_sum,
    rounding_gap,
    check_supply_conservation,
    check_non_negative,
    check_index_bounds,
    check_balance_consistency,
    check_aggregate_bound,
    verify_ledger,
)

# Scheduling
from .schedule import ScheduledRebase, RebaseScheduler

__all__ = [
    # Core
    'LedgerView', 'TokenMetadata',
    'TransferEvent', 'ApprovalEvent', 'RebaseEvent', 'AdminChangedEvent',
    'LedgerError', 'ZeroAddress', 'InsufficientBalance', 'InsufficientAllowance',
    'NotAuthorized', 'IndexFloor', 'ArithmeticOverflow',
    'BASE', 'MIN_INDEX', 'REBASE_NUMERATOR', 'REBASE_DENOMINATOR',
    'UINT256_MAX', 'ZERO_ADDRESS',
    'is_valid_account', 'to_shares', 'to_amount',
    'next_index', 'rebases_remaining', 'index_path',
    # Authorization
    'Authorizer', 'AdminAuthorizer', 'OperatorAuthorizer',
    'ACTION_REBASE', 'ACTION_TRANSFER_ADMIN',
    # Ledger
    'ScaledLedger',
    # Invariants
    'share_sum', 'rounding_gap', 'check_supply_conservation', 'check_non_negative',
    'check_index_bounds', 'check_balance_consistency', 'check_aggregate_bound',
    'verify_ledger',
    # Scheduling
    'ScheduledRebase', 'RebaseScheduler',
]

__version__ = '1.0.0'
