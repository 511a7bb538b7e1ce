"""
Machine registry and transition management.

Architecture:
- Owns the authoritative, fixed set of machines
- Applies transition functions under a single lock
- Turns illegal requests and unknown ids into silent no-ops
- Publishes one change per applied transition, in order

Design Patterns:
- Mediator Pattern: Single entry point for every mutation
- Observer Pattern: Change listeners
- Queue Pattern: Run-to-completion delivery of changes

Responsibilities:
1. Machine Ownership
   - Fixed layout, created once
   - Unique, never reassigned ids
   - Immutable snapshots for readers

2. Mutations
   - Start, cancel, broken/repaired toggle
   - Clock-driven countdown
   - Confirmation of offered actions

3. Notification
   - Ordered delivery
   - Re-entrant mutations queued until the current delivery completes
   - Listener failures isolated

Cross-cutting:
- Serialized mutations (user calls and clock thread)
- Invariant verification when __debug__ is set
- Debug logging of ignored requests

Dependencies:
- machine.py: Transition functions
- event.py: Change records
- types.py: Enums and defaults
"""

import logging
from collections import deque
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Deque, Dict, Iterable, List, Mapping, Optional, Tuple

from laundrystate.core import machine as transitions
from laundrystate.core.errors import IllegalTransitionError, UnknownMachineError
from laundrystate.core.event import MachineChange, classify
from laundrystate.core.machine import Machine, check_invariants
from laundrystate.core.types import (
    DEFAULT_CYCLE_MINUTES,
    ChangeListener,
    CycleMinutes,
    MachineAction,
    MachineKind,
    MachineStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MachineSpec:
    """Static description of one installed machine."""

    id: str
    kind: MachineKind


def default_layout() -> List[MachineSpec]:
    """Get the installed machines of the default laundry room.

    Returns:
        Three dryers followed by four washers
    """
    dryers = [MachineSpec(f"d{n}", MachineKind.DRYER) for n in range(1, 4)]
    washers = [MachineSpec(f"w{n}", MachineKind.WASHER) for n in range(1, 5)]
    return dryers + washers


class MachineRegistry:
    """Holds every machine and enforces valid state transitions.

    Class Invariants:
    1. The machine set never changes after construction
    2. Insertion order is preserved for every read
    3. Every machine satisfies the running/remaining invariant between mutations
    4. Listeners observe changes in the order they were applied

    Threading/Concurrency Guarantees:
    1. Mutations are serialized by a reentrant lock
    2. Reads return immutable snapshots
    3. A mutation made from inside a listener is applied at once but
       its changes are delivered after the current ones
    """

    def __init__(
        self,
        layout: Optional[Iterable[MachineSpec]] = None,
        cycle_minutes: Optional[Mapping[MachineKind, int]] = None,
    ) -> None:
        """Initialize the registry with every machine available.

        Args:
            layout: Installed machines, in display order. Defaults to default_layout()
            cycle_minutes: Per-kind overrides of the cycle length

        Raises:
            ValueError: If ids repeat or a cycle length is not positive
        """
        self._cycle_minutes: CycleMinutes = dict(DEFAULT_CYCLE_MINUTES)
        if cycle_minutes:
            for kind, minutes in cycle_minutes.items():
                if not isinstance(kind, MachineKind):
                    raise ValueError("Cycle length keys must be MachineKind values")
                if not isinstance(minutes, int) or minutes <= 0:
                    raise ValueError(f"Cycle length for {kind.value} must be a positive integer")
                self._cycle_minutes[kind] = minutes

        self._machines: Dict[str, Machine] = {}
        for spec in default_layout() if layout is None else layout:
            if spec.id in self._machines:
                raise ValueError(f"Machine ID '{spec.id}' already exists")
            self._machines[spec.id] = Machine(id=spec.id, kind=spec.kind)

        self._lock = RLock()
        self._listeners: List[ChangeListener] = []
        self._pending: Deque[MachineChange] = deque()
        self._delivering = False
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, machine_id: object) -> bool:
        return self.get(machine_id) is not None

    def list(self) -> Tuple[Machine, ...]:
        """Get a snapshot of all machines in registry order."""
        with self._lock:
            return tuple(self._machines.values())

    def get(self, machine_id: str) -> Optional[Machine]:
        """Get the current snapshot of one machine, or None if unknown."""
        try:
            return self.require(machine_id)
        except UnknownMachineError:
            return None

    def require(self, machine_id: str) -> Machine:
        """Get the current snapshot of one machine.

        Raises:
            UnknownMachineError: If the id is not in the registry
        """
        with self._lock:
            try:
                return self._machines[machine_id]
            except (KeyError, TypeError):
                raise UnknownMachineError(machine_id) from None

    def washers(self) -> Tuple[Machine, ...]:
        return self._of_kind(MachineKind.WASHER)

    def dryers(self) -> Tuple[Machine, ...]:
        return self._of_kind(MachineKind.DRYER)

    def cycle_minutes(self, kind: MachineKind) -> int:
        """Get the full cycle length for a kind of machine."""
        return self._cycle_minutes[kind]

    def offered_action(self, machine_id: str) -> Optional[MachineAction]:
        """Get the action a click on the machine offers for confirmation.

        Returns:
            START for an available machine, CANCEL for a running one,
            None for a broken machine or an unknown id
        """
        current = self.get(machine_id)
        if current is None:
            return None
        if current.status is MachineStatus.AVAILABLE:
            return MachineAction.START
        if current.status is MachineStatus.RUNNING:
            return MachineAction.CANCEL
        return None

    def request_start(self, machine_id: str) -> None:
        """Start a full cycle if the machine is available."""
        self._apply(machine_id, MachineAction.START)

    def request_cancel(self, machine_id: str) -> None:
        """Cancel the cycle if the machine is running."""
        self._apply(machine_id, MachineAction.CANCEL)

    def toggle_broken(self, machine_id: str) -> None:
        """Flip between available and broken. Running machines are left alone."""
        self._apply(machine_id, MachineAction.TOGGLE_BROKEN)

    def confirm(self, machine_id: str, action: MachineAction) -> None:
        """Apply a confirmed START or CANCEL if it is still valid.

        The status may have changed since the action was offered, e.g. a
        tick finished the cycle; a stale confirmation changes nothing.

        Raises:
            ValueError: If action is not START or CANCEL
        """
        if action not in (MachineAction.START, MachineAction.CANCEL):
            raise ValueError("Only START and CANCEL can be confirmed")
        self._apply(machine_id, action)

    def tick(self, guard: Optional[Callable[[], bool]] = None) -> bool:
        """Count every running machine down by one minute.

        Every running machine is checked before any of them is updated, so
        a tick is applied to all running machines or to none.

        Args:
            guard: Evaluated under the registry lock before anything changes;
                the tick is skipped when it returns False

        Returns:
            True if the tick was applied

        Raises:
            InvariantViolationError: If a running machine is inconsistent
        """
        with self._lock:
            if guard is not None and not guard():
                return False
            try:
                staged = [
                    (current, transitions.advance(current))
                    for current in self._machines.values()
                    if current.is_running
                ]
                for before, after in staged:
                    self._verify(before, after)
                for before, after in staged:
                    self._commit(MachineAction.ADVANCE, before, after)
            finally:
                self._deliver()
            return True

    def serialized(self) -> RLock:
        """Get the lock that serializes every mutation.

        Holding it keeps ticks and requests from running; it must be taken
        before any lock a listener might wait on.
        """
        return self._lock

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener for every applied change.

        Args:
            listener: Called with each MachineChange, in order

        Returns:
            A callable that removes the listener
        """
        if not callable(listener):
            raise ValueError("Listener must be callable")
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def check_invariants(self) -> None:
        """Verify every machine.

        Raises:
            InvariantViolationError: If any machine is inconsistent
        """
        with self._lock:
            for current in self._machines.values():
                check_invariants(current)

    def _of_kind(self, kind: MachineKind) -> Tuple[Machine, ...]:
        with self._lock:
            return tuple(m for m in self._machines.values() if m.kind is kind)

    def _apply(self, machine_id: str, action: MachineAction) -> None:
        with self._lock:
            try:
                current = self.require(machine_id)
                if action is MachineAction.START:
                    updated = transitions.start(current, self._cycle_minutes[current.kind])
                elif action is MachineAction.CANCEL:
                    updated = transitions.cancel(current)
                else:
                    updated = transitions.toggle_broken(current)
            except (UnknownMachineError, IllegalTransitionError) as e:
                logger.debug("Ignoring %s request: %s", action.name.lower(), e)
                return
            try:
                self._verify(current, updated)
                self._commit(action, current, updated)
            finally:
                self._deliver()

    def _verify(self, before: Machine, after: Machine) -> None:
        if __debug__:
            check_invariants(before)
            check_invariants(after)

    def _commit(self, action: MachineAction, before: Machine, after: Machine) -> None:
        kind = classify(action, before, after)
        if kind is None:
            return
        self._machines[after.id] = after
        self._sequence += 1
        self._pending.append(MachineChange(kind=kind, before=before, after=after, sequence=self._sequence))

    def _deliver(self) -> None:
        # Re-entrant calls only queue; the outermost call drains
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._pending:
                change = self._pending.popleft()
                for listener in list(self._listeners):
                    try:
                        listener(change)
                    except Exception:
                        logger.exception("Listener %r failed on change %d", listener, change.sequence)
        finally:
            self._delivering = False
