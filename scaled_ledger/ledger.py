"""
ledger.py - Stateful Scaled Balance Ledger

The ScaledLedger class is the central state manager of the package.
It is the only module that mutates state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by policies and helpers
    - Stores balances and allowances as shares, converting through the index
    - Applies every operation atomically: all checks run before the first write
    - Serializes all operations behind one re-entrant lock
    - Tracks logical time and records every state change in the event log
"""

from __future__ import annotations
from datetime import datetime
from threading import RLock
from typing import Any, Dict, List, Optional, Set, Type
import copy

from .core import (
    # Types
    Account, ShareMap, AllowanceMap, TokenMetadata,
    TransferEvent, ApprovalEvent, RebaseEvent, AdminChangedEvent, LedgerEvent,
    # Constants
    BASE, MIN_INDEX, ZERO_ADDRESS,
    # Exceptions
    LedgerError, InsufficientBalance, InsufficientAllowance, NotAuthorized, IndexFloor,
    # Helper functions
    require_account, require_uint, checked_add, checked_sub,
    to_shares, to_amount, next_index, rebases_remaining,
)
from .authorization import Authorizer, AdminAuthorizer, ACTION_REBASE, ACTION_TRANSFER_ADMIN
from .invariants import verify_ledger


class ScaledLedger:
    """
    Share/index balance ledger with O(1) proportional rebase.

    Every account holds shares. The externally visible balance of an account is
    shares * index // BASE. A rebase shrinks the index by 1%, contracting
    every balance at once without rewriting any stored share count.

    Design Principles:
        - Shares are conserved: transfers move shares between accounts and
          never create or destroy them; total_shares is fixed at construction.
        - Checks happen in external-amount space, mutations in share space.
        - Failed operations leave the state unchanged: validation completes
          before the first write.

    Thread Safety:
        Thread-safe. A single RLock guards every mutation and every multi-field
        read, so operations are serializable.

    Example:
        ledger = ScaledLedger("Contracting Dollar", "CUSD", 18,
                              initial_supply=1_000_000 * BASE, deployer="admin")
        ledger.transfer("admin", "alice", 100 * BASE)
        ledger.rebase("admin")
        ledger.balance_of("alice")   # 99 * BASE
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int,
        initial_supply: int,
        deployer: Account,
        initial_time: Optional[datetime] = None,
        verbose: bool = False,
        authorizer: Optional[Authorizer] = None,
    ):
        """
        Create a ledger and mint the initial supply to the deployer.

        Args:
            name: Display name (metadata only)
            symbol: Ticker (metadata only)
            decimals: Display precision (metadata only; BASE is fixed)
            initial_supply: External supply minted to the deployer
            deployer: Principal that receives the supply and becomes admin
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print one line per applied or rejected operation
            authorizer: Capability check for rebase/transfer_admin (default: AdminAuthorizer)

        Raises:
            ZeroAddress: If deployer is not a real account
            ArithmeticOverflow: If initial_supply * BASE exceeds uint256
        """
        self.metadata = TokenMetadata(name, symbol, decimals)
        require_account(deployer, "deployer")
        require_uint(initial_supply, "initial_supply")

        self._lock = RLock()
        self._index: int = BASE
        self._total_shares: int = to_shares(initial_supply, BASE)
        self._shares: ShareMap = {}
        self._allowances: AllowanceMap = {}
        self._known_accounts: Set[Account] = set()
        self._admin: Account = deployer
        self._authorizer: Authorizer = authorizer or AdminAuthorizer()
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose
        self.events: List[LedgerEvent] = []
        # Monotonic sequence counter for event ordering
        self._next_sequence: int = 0

        self._set_shares(deployer, self._total_shares)
        self._emit(TransferEvent, source=ZERO_ADDRESS, dest=deployer, amount=initial_supply)
        if self.verbose:
            print(f"📝 Minted: {initial_supply} {symbol} → {deployer} (admin)")

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    @property
    def admin(self) -> Account:
        """Principal currently holding the admin capability."""
        return self._admin

    @property
    def total_shares(self) -> int:
        """Total share count. Constant for the life of the ledger."""
        return self._total_shares

    @property
    def authorizer(self) -> Authorizer:
        return self._authorizer

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def symbol(self) -> str:
        return self.metadata.symbol

    @property
    def decimals(self) -> int:
        return self.metadata.decimals

    def get_index(self) -> int:
        """Current index, scaled by BASE."""
        return self._index

    def get_raw_shares(self, account: Account) -> int:
        """Stored share balance of an account (0 if unknown)."""
        with self._lock:
            return self._shares.get(account, 0)

    def get_raw_allowance(self, owner: Account, spender: Account) -> int:
        """Stored allowance of spender over owner, in share units (0 if none)."""
        with self._lock:
            return self._allowances.get((owner, spender), 0)

    def get_positions(self) -> ShareMap:
        """
        Get all non-zero share balances.

        Returns:
            Dictionary mapping accounts to their share counts
        """
        with self._lock:
            return dict(self._shares)

    def known_accounts(self) -> List[Account]:
        """Every account that has ever held or received shares, sorted."""
        with self._lock:
            return sorted(self._known_accounts)

    def balance_of(self, account: Account) -> int:
        """External balance: shares * index // BASE. Never fails."""
        with self._lock:
            return to_amount(self._shares.get(account, 0), self._index)

    def total_supply(self) -> int:
        """External total supply: total_shares * index // BASE."""
        with self._lock:
            return to_amount(self._total_shares, self._index)

    def allowance(self, owner: Account, spender: Account) -> int:
        """Remaining allowance of spender over owner, in external amount."""
        with self._lock:
            return to_amount(self._allowances.get((owner, spender), 0), self._index)

    def rebases_remaining(self) -> int:
        """How many more rebases can succeed before IndexFloor."""
        with self._lock:
            return rebases_remaining(self._index)

    def get_events(self, event_type: Optional[Type] = None) -> List[LedgerEvent]:
        """
        Return the event log, optionally filtered by event class.

        Args:
            event_type: One of TransferEvent, ApprovalEvent, RebaseEvent,
                        AdminChangedEvent; None returns every event

        Returns:
            List of events in sequence order
        """
        with self._lock:
            if event_type is None:
                return list(self.events)
            return [e for e in self.events if isinstance(e, event_type)]

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # BALANCE OPERATIONS (Mutating)
    # ========================================================================

    def transfer(self, sender: Account, to: Account, amount: int) -> bool:
        """
        Move `amount` (external) from sender to `to`.

        The balance check runs in external-amount space; the debit and credit
        are to_shares(amount) in share space.

        Args:
            sender: Calling principal, debited
            to: Recipient, credited
            amount: External amount

        Returns:
            True on success

        Raises:
            ZeroAddress: If sender or to is not a real account
            InsufficientBalance: If balance_of(sender) < amount
            ArithmeticOverflow: If amount * BASE exceeds uint256
        """
        with self._lock:
            try:
                shares_to_move = self._check_transfer(sender, to, amount)
            except LedgerError as e:
                self._reject("transfer", e)
                raise
            self._move_shares(sender, to, shares_to_move)
            self._emit(TransferEvent, source=sender, dest=to, amount=amount)
            if self.verbose:
                print(f"✓ TRANSFER {sender} → {to} {amount} ({shares_to_move} shares)")
            return True

    def transfer_from(self, spender: Account, owner: Account, to: Account, amount: int) -> bool:
        """
        Move `amount` from owner to `to` on behalf of owner, consuming spender's allowance.

        The allowance is checked in external-amount space but deducted in share
        space: allowance -= to_shares(amount). After a rebase between approve
        and spend this deducts fewer external units than were spent.

        Args:
            spender: Calling principal holding the allowance
            owner: Account debited
            to: Recipient, credited
            amount: External amount

        Returns:
            True on success

        Raises:
            InsufficientAllowance: If allowance(owner, spender) < amount
            ZeroAddress: If spender, owner or to is not a real account
            InsufficientBalance: If balance_of(owner) < amount
        """
        with self._lock:
            try:
                require_uint(amount, "amount")
                key = (owner, spender)
                current = to_amount(self._allowances.get(key, 0), self._index)
                if current < amount:
                    raise InsufficientAllowance(
                        f"{spender} may spend {current} of {owner}, requested {amount}"
                    )
                require_account(spender, "spender")
                shares_to_move = self._check_transfer(owner, to, amount)
                remaining = checked_sub(self._allowances.get(key, 0), shares_to_move)
            except LedgerError as e:
                self._reject("transfer_from", e)
                raise
            self._allowances[key] = remaining
            self._move_shares(owner, to, shares_to_move)
            self._emit(TransferEvent, source=owner, dest=to, amount=amount)
            if self.verbose:
                print(f"✓ TRANSFER_FROM {owner} → {to} {amount} by {spender} "
                      f"(allowance left {to_amount(remaining, self._index)})")
            return True

    def approve(self, owner: Account, spender: Account, amount: int) -> bool:
        """
        Set spender's allowance over owner to `amount` (overwrite, not additive).

        Stored as to_shares(amount) at the current index.

        Raises:
            ZeroAddress: If owner or spender is not a real account
        """
        with self._lock:
            try:
                require_account(owner, "owner")
                require_account(spender, "spender")
                require_uint(amount, "amount")
                allowance_shares = to_shares(amount, self._index)
            except LedgerError as e:
                self._reject("approve", e)
                raise
            self._allowances[(owner, spender)] = allowance_shares
            self._emit(ApprovalEvent, owner=owner, spender=spender, amount=amount)
            if self.verbose:
                print(f"✓ APPROVE {owner} → {spender} {amount}")
            return True

    # ========================================================================
    # PRIVILEGED OPERATIONS (Mutating)
    # ========================================================================

    def rebase(self, caller: Account) -> RebaseEvent:
        """
        Contract the index by 1%: index = index * 99 // 100.

        Never touches shares or total_shares. Every balance_of reflects the
        new index immediately.

        Args:
            caller: Principal requesting the rebase

        Returns:
            The RebaseEvent recorded

        Raises:
            NotAuthorized: If the authorizer rejects caller
            IndexFloor: If the new index would fall below MIN_INDEX
        """
        with self._lock:
            return self._rebase(caller, self._current_time)

    def rebase_at(self, caller: Account, when: datetime) -> RebaseEvent:
        """
        Advance the clock to `when` and rebase, as one operation.

        A `when` already in the past rebases at the current time. If the
        rebase is rejected the clock does not move.

        Raises:
            NotAuthorized, IndexFloor: As for rebase()
        """
        with self._lock:
            return self._rebase(caller, max(when, self._current_time))

    def _rebase(self, caller: Account, when: datetime) -> RebaseEvent:
        old_index = self._index
        new_index = next_index(old_index)
        try:
            self._require_authorized(caller, ACTION_REBASE)
            if new_index < MIN_INDEX:
                raise IndexFloor(
                    f"Rebase would take index to {new_index} < MIN_INDEX {MIN_INDEX}"
                )
        except LedgerError as e:
            self._reject("rebase", e)
            raise
        self._current_time = when
        self._index = new_index
        event = self._emit(
            RebaseEvent, old_index=old_index, new_index=new_index,
        )
        if self.verbose:
            print(f"✓ REBASE {old_index} → {new_index} @ {self._current_time.isoformat()}")
        return event

    def transfer_admin(self, caller: Account, new_admin: Account) -> None:
        """
        Replace the admin unconditionally. No grace period, no two-step handoff.

        Raises:
            NotAuthorized: If the authorizer rejects caller
            ZeroAddress: If new_admin is not a real account
        """
        with self._lock:
            try:
                self._require_authorized(caller, ACTION_TRANSFER_ADMIN)
                require_account(new_admin, "new_admin")
            except LedgerError as e:
                self._reject("transfer_admin", e)
                raise
            previous = self._admin
            self._admin = new_admin
            self._emit(AdminChangedEvent, previous_admin=previous, new_admin=new_admin)
            if self.verbose:
                print(f"✓ ADMIN {previous} → {new_admin}")

    # ========================================================================
    # INTERNAL HELPERS
    # ========================================================================

    def _require_authorized(self, caller: Account, action: str) -> None:
        if not self._authorizer.is_authorized(self, caller, action):
            raise NotAuthorized(f"{caller!r} is not authorized to {action}")

    def _check_transfer(self, source: Account, dest: Account, amount: int) -> int:
        """
        Validate a transfer without writing anything.

        Returns:
            Number of shares to move
        """
        require_account(source, "source")
        require_account(dest, "dest")
        require_uint(amount, "amount")
        shares_to_move = to_shares(amount, self._index)
        available = to_amount(self._shares.get(source, 0), self._index)
        if available < amount:
            raise InsufficientBalance(
                f"{source} has {available}, requested {amount}"
            )
        return shares_to_move

    def _move_shares(self, source: Account, dest: Account, shares: int) -> None:
        """Debit then credit. Caller has already validated the debit."""
        self._set_shares(source, checked_sub(self._shares.get(source, 0), shares))
        self._set_shares(dest, checked_add(self._shares.get(dest, 0), shares))

    def _set_shares(self, account: Account, shares: int) -> None:
        """Write a share balance, keeping the map free of zero entries."""
        self._known_accounts.add(account)
        if shares:
            self._shares[account] = shares
        else:
            self._shares.pop(account, None)

    def _emit(self, event_cls: Type, **fields: Any) -> LedgerEvent:
        """Append an event stamped with the next sequence number and current time."""
        event = event_cls(
            sequence=self._next_sequence,
            timestamp=self._current_time,
            **fields,
        )
        self._next_sequence += 1
        self.events.append(event)
        return event

    def _reject(self, operation: str, error: LedgerError) -> None:
        if self.verbose:
            print(f"✗ REJECTED {operation}: {type(error).__name__}: {error}")

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> ScaledLedger:
        """
        Create a deep copy of this ledger.

        All state is fully independent: modifications to the clone will not
        affect the original ledger, and vice versa. The clone shares the
        authorizer object, which is stateless by contract.

        Returns:
            A new ScaledLedger instance with identical state
        """
        with self._lock:
            cloned = ScaledLedger.__new__(ScaledLedger)
            cloned.metadata = self.metadata
            cloned._lock = RLock()
            cloned._index = self._index
            cloned._total_shares = self._total_shares
            cloned._shares = dict(self._shares)
            cloned._allowances = dict(self._allowances)
            cloned._known_accounts = set(self._known_accounts)
            cloned._admin = self._admin
            cloned._authorizer = self._authorizer
            cloned._current_time = self._current_time
            cloned.verbose = self.verbose
            cloned.events = list(self.events)
            cloned._next_sequence = self._next_sequence
            return cloned

    def snapshot(self) -> Dict[str, Any]:
        """
        Return a plain-data copy of the full mutable state.

        Two ledgers in the same state produce equal snapshots; tests use this
        to assert that failed operations change nothing.
        """
        with self._lock:
            return {
                'index': self._index,
                'total_shares': self._total_shares,
                'shares': copy.deepcopy(self._shares),
                'allowances': copy.deepcopy(self._allowances),
                'known_accounts': sorted(self._known_accounts),
                'admin': self._admin,
                'current_time': self._current_time,
                'next_sequence': self._next_sequence,
            }

    def verify_invariants(self) -> Dict[str, Any]:
        """
        Verify share conservation, balance/index consistency, the aggregate
        rounding bound and the index bounds.

        Returns:
            Dict with keys 'valid', 'total_shares', 'share_sum', 'rounding_gap'
            and 'violations' (list of human-readable strings)

        Example:
            result = ledger.verify_invariants()
            assert result['valid'], result['violations']
        """
        with self._lock:
            return verify_ledger(self)

    def __repr__(self) -> str:
        return (f"ScaledLedger({self.metadata.symbol}, index={self._index}, "
                f"total_shares={self._total_shares}, admin={self._admin})")
