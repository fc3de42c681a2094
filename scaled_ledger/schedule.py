"""
schedule.py - Minimal Rebase Scheduler

Rebases are often run on a calendar (e.g., daily at 00:00). The scheduler
keeps a heap of future rebase triggers and, when stepped, drives the ledger's
logical clock to each due trigger in order and rebases.

Core concepts:
1. ScheduledRebase: Immutable specification of when a rebase should happen
2. RebaseScheduler: Simple priority queue for due trigger retrieval
3. The ledger's event log IS the audit trail (no separate status tracking)
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set
import heapq

from .core import Account, RebaseEvent
from .ledger import ScaledLedger


@dataclass(frozen=True, slots=True, order=True)
class ScheduledRebase:
    """
    Immutable scheduled rebase.

    Sorting: by trigger_time, then label.

    Attributes:
        trigger_time: Logical time at which the rebase should execute
        label: Free-form tag (e.g., "daily"), part of the identity
    """
    trigger_time: datetime
    label: str = ""

    @property
    def rebase_id(self) -> str:
        """Deterministic ID for deduplication."""
        return f"rebase:{self.trigger_time.isoformat()}:{self.label}"


class RebaseScheduler:
    """
    Heap-ordered schedule of future rebases.

    Design:
    - Triggers are scheduled in advance
    - step() executes due triggers one at a time, in time order
    - A trigger scheduled again while still pending runs once
    - Errors from the ledger propagate unchanged; the failing trigger is
      consumed, later triggers stay pending
    """

    def __init__(self):
        self._heap: List[ScheduledRebase] = []
        self._pending: Set[str] = set()

    def schedule(self, trigger_time: datetime, label: str = "") -> str:
        """
        Add a rebase trigger to the pending queue.

        Returns the rebase_id.
        """
        entry = ScheduledRebase(trigger_time, label)
        if entry.rebase_id not in self._pending:
            self._pending.add(entry.rebase_id)
            heapq.heappush(self._heap, entry)
        return entry.rebase_id

    def schedule_many(self, trigger_times: List[datetime], label: str = "") -> List[str]:
        """Add multiple triggers."""
        return [self.schedule(t, label) for t in trigger_times]

    def _pop(self) -> ScheduledRebase:
        entry = heapq.heappop(self._heap)
        self._pending.discard(entry.rebase_id)
        return entry

    def get_due(self, as_of: datetime) -> List[ScheduledRebase]:
        """
        Get and remove triggers due for execution.

        Returns triggers with trigger_time <= as_of, in execution order.
        """
        due = []
        while self._heap and self._heap[0].trigger_time <= as_of:
            due.append(self._pop())
        return due

    def step(self, ledger: ScaledLedger, caller: Account, as_of: datetime) -> List[RebaseEvent]:
        """
        Run every trigger due by as_of against the ledger.

        Each due trigger, in order, calls ledger.rebase_at(caller, trigger_time),
        which advances the clock (never backwards) and rebases under the
        ledger's lock.

        Returns:
            RebaseEvents produced, in order

        Raises:
            NotAuthorized, IndexFloor: From ScaledLedger.rebase_at, unchanged
        """
        events = []
        while self._heap and self._heap[0].trigger_time <= as_of:
            entry = self._pop()
            events.append(ledger.rebase_at(caller, entry.trigger_time))
        return events

    def pending_count(self) -> int:
        """Number of pending triggers."""
        return len(self._heap)

    def peek_next(self) -> Optional[ScheduledRebase]:
        """Peek at next scheduled trigger without removing it."""
        return self._heap[0] if self._heap else None
