"""
Core types and pure functions for the scaled balance ledger.

This module provides the foundational data structures and arithmetic for the ledger:
1. Constants: BASE, MIN_INDEX, the rebase ratio and the external integer width
2. Protocols: LedgerView for read-only ledger access
3. Exceptions: LedgerError and domain-specific error types
4. Immutable records: TokenMetadata and the event types
5. Conversion arithmetic: to_shares / to_amount with checked products
6. Rebase step: next_index / rebases_remaining

Balances are stored as shares. The externally visible amount of any share
count is shares * index / BASE, truncated. Rebasing only ever changes the
index, so every balance contracts at once without touching stored shares.

All functions in this module are pure. No function can mutate ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale of the index. index == BASE means one share is one unit.
BASE = 10 ** 18

# Rebase is refused once it would take the index below this floor.
MIN_INDEX = BASE // 1000

# Each rebase multiplies the index by REBASE_NUMERATOR / REBASE_DENOMINATOR (truncating).
REBASE_NUMERATOR = 99
REBASE_DENOMINATOR = 100

# Width of every integer that crosses the external API, including the
# numerator products of the conversion functions.
UINT256_MAX = 2 ** 256 - 1

# The null account. Source of the initial mint.
ZERO_ADDRESS = "0x" + "0" * 40


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Account identifier (wallet address or any non-empty string).
Account = str

# Mapping from account to share count.
ShareMap = Dict[Account, int]

# Mapping from (owner, spender) to allowance in share units.
AllowanceMap = Dict[Tuple[Account, Account], int]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Authorization policies and invariant helpers receive a LedgerView so they
    can inspect state without the ability to modify it. ScaledLedger
    implements this protocol but also provides mutation methods.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    @property
    def admin(self) -> Account:
        """Return the principal currently holding the admin capability."""
        ...

    @property
    def total_shares(self) -> int:
        """Return the constant total share count."""
        ...

    def get_index(self) -> int:
        """Return the current index (fixed point, scaled by BASE)."""
        ...

    def get_raw_shares(self, account: Account) -> int:
        """Return the stored share balance of an account (0 if unknown)."""
        ...

    def get_positions(self) -> ShareMap:
        """Return all non-zero share balances keyed by account."""
        ...


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class ZeroAddress(LedgerError):
    """Raised when a null or invalid account is supplied where a real account is required."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when a transfer requests more than the source's current external balance."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when a transfer-on-behalf requests more than the remaining external allowance."""
    pass


class NotAuthorized(LedgerError):
    """Raised when a privileged operation is called by a principal the policy rejects."""
    pass


class IndexFloor(LedgerError):
    """Raised when a rebase would push the index below MIN_INDEX."""
    pass


class ArithmeticOverflow(LedgerError):
    """Raised when a value or intermediate product exceeds UINT256_MAX."""
    pass


# ============================================================================
# METADATA
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenMetadata:
    """
    Display metadata for the ledger. Never used in arithmetic.

    Attributes:
        name: Human-readable name (e.g., "Contracting Dollar").
        symbol: Ticker (e.g., "CUSD").
        decimals: Display precision of external amounts.
    """
    name: str
    symbol: str
    decimals: int = 18

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Token name cannot be empty")
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Token symbol cannot be empty")
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool):
            raise TypeError(f"decimals must be int, got {type(self.decimals)}")
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals must be in [0, 255], got {self.decimals}")


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransferEvent:
    """
    Emitted on every balance-changing operation, including the initial mint.

    Carries the external amount requested, not the share delta.
    """
    sequence: int
    timestamp: datetime
    source: Account
    dest: Account
    amount: int

    def __repr__(self) -> str:
        return f"Transfer#{self.sequence}({self.amount}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class ApprovalEvent:
    """Emitted on every approve, with the external amount approved."""
    sequence: int
    timestamp: datetime
    owner: Account
    spender: Account
    amount: int

    def __repr__(self) -> str:
        return f"Approval#{self.sequence}({self.owner}→{self.spender}: {self.amount})"


@dataclass(frozen=True, slots=True)
class RebaseEvent:
    """Emitted on every successful rebase."""
    sequence: int
    timestamp: datetime
    old_index: int
    new_index: int

    def __repr__(self) -> str:
        return f"Rebase#{self.sequence}({self.old_index}→{self.new_index} @ {self.timestamp.isoformat()})"


@dataclass(frozen=True, slots=True)
class AdminChangedEvent:
    """Emitted when the admin capability is reassigned."""
    sequence: int
    timestamp: datetime
    previous_admin: Account
    new_admin: Account


LedgerEvent = Union[TransferEvent, ApprovalEvent, RebaseEvent, AdminChangedEvent]


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def is_valid_account(account: Optional[Account]) -> bool:
    """Return True if account names a real principal (not null, empty or ZERO_ADDRESS)."""
    if not isinstance(account, str):
        return False
    if not account.strip():
        return False
    return account != ZERO_ADDRESS


def require_account(account: Optional[Account], role: str) -> Account:
    """Return account unchanged, or raise ZeroAddress naming the role it was supplied for."""
    if not is_valid_account(account):
        raise ZeroAddress(f"{role} must be a real account, got {account!r}")
    return account


def require_uint(value: int, name: str) -> int:
    """
    Validate that value is an unsigned integer that fits the external width.

    Raises:
        TypeError: If value is not an int (bool is rejected too)
        ValueError: If value is negative
        ArithmeticOverflow: If value exceeds UINT256_MAX
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{name} exceeds uint256: {value}")
    return value


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def checked_mul(a: int, b: int) -> int:
    """
    Multiply two unsigned integers, trapping if the product leaves uint256.

    Python ints never clip, so the product is always exact; the check only
    enforces the external width.
    """
    product = a * b
    if product > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} * {b} overflows uint256")
    return product


def checked_add(a: int, b: int) -> int:
    """Add two unsigned integers, trapping if the sum leaves uint256."""
    total = a + b
    if total > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows uint256")
    return total


def checked_sub(a: int, b: int) -> int:
    """Subtract b from a. A negative result means an invariant is already broken."""
    if b > a:
        raise ArithmeticOverflow(f"{a} - {b} underflows")
    return a - b


# ============================================================================
# CONVERSION ARITHMETIC
# ============================================================================

def require_index(index: int) -> int:
    """
    Validate an index operand: an int in (0, BASE].

    Raises:
        TypeError: If index is not an int (bool is rejected too)
        ValueError: If index is not positive or exceeds BASE
    """
    if not isinstance(index, int) or isinstance(index, bool):
        raise TypeError(f"index must be int, got {type(index).__name__}")
    if not 0 < index <= BASE:
        raise ValueError(f"index must be in (0, {BASE}], got {index}")
    return index


def to_shares(amount: int, index: int) -> int:
    """
    Convert an external amount to shares at the given index.

    shares = amount * BASE // index (truncating). The index never exceeds BASE,
    so a non-zero amount always converts to at least one share.

    Args:
        amount: External amount (unsigned)
        index: Current index, in (0, BASE]

    Returns:
        Share count, rounded toward zero

    Raises:
        TypeError: If amount or index is not an int
        ValueError: If amount is negative or index is outside (0, BASE]
        ArithmeticOverflow: If amount * BASE exceeds UINT256_MAX
    """
    require_uint(amount, "amount")
    require_index(index)
    return checked_mul(amount, BASE) // index


def to_amount(shares: int, index: int) -> int:
    """
    Convert shares to the external amount at the given index.

    amount = shares * index // BASE (truncating).

    Raises:
        TypeError: If shares or index is not an int
        ValueError: If shares is negative or index is outside (0, BASE]
        ArithmeticOverflow: If shares * index exceeds UINT256_MAX
    """
    require_uint(shares, "shares")
    require_index(index)
    return checked_mul(shares, index) // BASE


# ============================================================================
# REBASE STEP
# ============================================================================

def next_index(index: int) -> int:
    """Return the index one rebase after `index` (a flat 1% truncating contraction)."""
    return index * REBASE_NUMERATOR // REBASE_DENOMINATOR


def rebases_remaining(index: int) -> int:
    """
    Count how many successive rebases can succeed starting from `index`.

    A rebase succeeds while next_index(index) >= MIN_INDEX.
    """
    count = 0
    while next_index(index) >= MIN_INDEX:
        index = next_index(index)
        count += 1
    return count


def index_path(index: int, steps: int) -> List[int]:
    """Return [index, next_index(index), ...] with steps + 1 entries, ignoring the floor."""
    path = [index]
    for _ in range(steps):
        index = next_index(index)
        path.append(index)
    return path
