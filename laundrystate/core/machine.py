"""
Machine record and transition functions.

Architecture:
- Represents one washer or dryer as an immutable snapshot
- Implements every status change as an explicit transition function
- Reports illegal transitions structurally instead of ignoring them
- Leaves silent no-op policy to the registry

Design Patterns:
- Value Object: Machine snapshots are never mutated
- State Pattern: Behavior selected by current status

Responsibilities:
1. Machine Data
   - Identifier and display ordinal
   - Kind (washer or dryer)
   - Status and remaining minutes

2. Transitions
   - available -> running (start)
   - running -> available (cancel, countdown reaching zero)
   - available <-> broken (toggle_broken)

3. Invariants
   - remaining_minutes > 0 exactly when running

Dependencies:
- types.py: Status and kind enums
- errors.py: Transition and invariant errors
"""

import re
from dataclasses import dataclass, replace

from laundrystate.core.errors import IllegalTransitionError, InvariantViolationError
from laundrystate.core.types import MachineAction, MachineKind, MachineStatus

_ID_PATTERN = re.compile(r"^[A-Za-z_]*?(\d+)$")


@dataclass(frozen=True)
class Machine:
    """Represents a single laundry machine at one point in time.

    Class Invariants:
    1. id and kind never change for a given machine
    2. remaining_minutes is 0 while available or broken
    3. remaining_minutes is positive while running
    """

    id: str
    kind: MachineKind
    status: MachineStatus = MachineStatus.AVAILABLE
    remaining_minutes: int = 0

    def __post_init__(self) -> None:
        if not self.id or not isinstance(self.id, str):
            raise ValueError("Machine ID must be a non-empty string")
        if not isinstance(self.kind, MachineKind):
            raise ValueError("Machine kind must be a MachineKind enum value")
        if not isinstance(self.status, MachineStatus):
            raise ValueError("Machine status must be a MachineStatus enum value")
        if self.remaining_minutes < 0:
            raise ValueError("Remaining minutes cannot be negative")

    @property
    def ordinal(self) -> int:
        """Get the display number encoded in the id ("w2" -> 2)."""
        match = _ID_PATTERN.match(self.id)
        if match is None:
            raise ValueError(f"Machine ID '{self.id}' does not end with an ordinal")
        return int(match.group(1))

    @property
    def is_available(self) -> bool:
        return self.status is MachineStatus.AVAILABLE

    @property
    def is_running(self) -> bool:
        return self.status is MachineStatus.RUNNING

    @property
    def is_broken(self) -> bool:
        return self.status is MachineStatus.BROKEN


def check_invariants(machine: Machine) -> None:
    """Verify the running/remaining-minutes invariant.

    Args:
        machine: Snapshot to verify

    Raises:
        InvariantViolationError: If the snapshot is inconsistent
    """
    if machine.is_running and machine.remaining_minutes <= 0:
        raise InvariantViolationError(f"Machine '{machine.id}' is running with no minutes left")
    if not machine.is_running and machine.remaining_minutes != 0:
        raise InvariantViolationError(
            f"Machine '{machine.id}' is {machine.status.value} with {machine.remaining_minutes} minutes left"
        )


def start(machine: Machine, cycle_minutes: int) -> Machine:
    """Begin a full cycle on an available machine.

    Args:
        machine: Current snapshot
        cycle_minutes: Length of the cycle for this machine's kind

    Returns:
        The running snapshot

    Raises:
        IllegalTransitionError: If the machine is running or broken
        ValueError: If cycle_minutes is not positive
    """
    if cycle_minutes <= 0:
        raise ValueError("Cycle length must be positive")
    if machine.status is MachineStatus.AVAILABLE:
        return replace(machine, status=MachineStatus.RUNNING, remaining_minutes=cycle_minutes)
    raise IllegalTransitionError(machine.id, machine.status, MachineAction.START)


def cancel(machine: Machine) -> Machine:
    """Abort the cycle of a running machine.

    Raises:
        IllegalTransitionError: If the machine is not running
    """
    if machine.status is MachineStatus.RUNNING:
        return replace(machine, status=MachineStatus.AVAILABLE, remaining_minutes=0)
    raise IllegalTransitionError(machine.id, machine.status, MachineAction.CANCEL)


def toggle_broken(machine: Machine) -> Machine:
    """Flip a machine between available and broken.

    A running machine cannot be marked broken; it has to be cancelled first.

    Raises:
        IllegalTransitionError: If the machine is running
    """
    if machine.status is MachineStatus.AVAILABLE:
        return replace(machine, status=MachineStatus.BROKEN, remaining_minutes=0)
    if machine.status is MachineStatus.BROKEN:
        return replace(machine, status=MachineStatus.AVAILABLE, remaining_minutes=0)
    raise IllegalTransitionError(machine.id, machine.status, MachineAction.TOGGLE_BROKEN)


def advance(machine: Machine) -> Machine:
    """Count a running machine down by one minute.

    The machine becomes available in the same step its countdown reaches
    zero. Machines that are not running are returned unchanged.

    Raises:
        InvariantViolationError: If the machine is running with no minutes left
    """
    if machine.status is not MachineStatus.RUNNING:
        return machine
    if machine.remaining_minutes <= 0:
        raise InvariantViolationError(f"Machine '{machine.id}' is running with no minutes left")
    remaining = machine.remaining_minutes - 1
    if remaining == 0:
        return replace(machine, status=MachineStatus.AVAILABLE, remaining_minutes=0)
    return replace(machine, remaining_minutes=remaining)
