"""
Core package providing the laundry machine state model.

Architecture:
- Defines machine snapshots and their transition functions
- Owns the machine set through the registry
- Publishes ordered change records

Design Patterns:
- Value Object for machine snapshots
- State Pattern for status-driven transitions
- Observer Pattern for change notification

Cross-cutting:
- Invalid requests are no-ops, invariant breaks are errors
- Mutations serialized by the registry lock
"""

# Import order matters to avoid circular dependencies
from .types import ChangeKind, MachineAction, MachineKind, MachineStatus
from .errors import IllegalTransitionError, InvariantViolationError, LaundryError, UnknownMachineError
from .machine import Machine
from .event import MachineChange
from .registry import MachineRegistry, MachineSpec, default_layout

__all__ = [
    # Enums
    "ChangeKind",
    "MachineAction",
    "MachineKind",
    "MachineStatus",
    # Errors
    "LaundryError",
    "UnknownMachineError",
    "IllegalTransitionError",
    "InvariantViolationError",
    # Records
    "Machine",
    "MachineChange",
    # Registry
    "MachineRegistry",
    "MachineSpec",
    "default_layout",
]
