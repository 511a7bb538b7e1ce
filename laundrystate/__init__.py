"""laundrystate: live status board for a shared laundry room

This package tracks a fixed set of washers and dryers, applies the rules
for starting, cancelling and reporting machines broken, and counts running
cycles down on a periodic clock.

Responsibilities:
    - Machine state model and transitions
    - Fixed machine registry with ordered change notification
    - Periodic countdown clock
    - Change history and counters

Interactions:
    - Client code (a UI layer) through the registry API
    - Operating system timers for the countdown
    - Logging system for diagnostics

Cross-cutting Concerns:
    Thread Safety:
        - Registry mutations are serialized
        - The clock may be started and stopped from any thread

    Error Handling:
        - Invalid requests are silent no-ops
        - Invariant violations raise InvariantViolationError

    Logging:
        - Standard library logging, one logger per module
        - No handlers configured by the package
"""

from laundrystate.core import (
    ChangeKind,
    IllegalTransitionError,
    InvariantViolationError,
    LaundryError,
    Machine,
    MachineAction,
    MachineChange,
    MachineKind,
    MachineRegistry,
    MachineSpec,
    MachineStatus,
    UnknownMachineError,
    default_layout,
)
from laundrystate.runtime import ClockStatus, CycleClock, RegistryMonitor

__version__ = "0.1.0"

__all__ = [
    "ChangeKind",
    "ClockStatus",
    "CycleClock",
    "IllegalTransitionError",
    "InvariantViolationError",
    "LaundryError",
    "Machine",
    "MachineAction",
    "MachineChange",
    "MachineKind",
    "MachineRegistry",
    "MachineSpec",
    "MachineStatus",
    "RegistryMonitor",
    "UnknownMachineError",
    "default_layout",
]
