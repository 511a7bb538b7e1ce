"""
Type definitions and enums for the laundry board.

This module contains shared type definitions and enums used across
the registry and the clock. It breaks circular dependencies between
modules and provides a central location for default values.

Design:
- No runtime dependencies on other modules
- Only contains type definitions, enums and defaults
- Used by machine.py, event.py and registry.py
"""

from enum import Enum, auto
from typing import Callable, Dict, Mapping, TYPE_CHECKING

if TYPE_CHECKING:
    from laundrystate.core.event import MachineChange


class MachineKind(Enum):
    """Defines the kinds of machines in the laundry room.

    The kind fixes the cycle length and never changes after creation.
    """
    WASHER = "washer"
    DRYER = "dryer"


class MachineStatus(Enum):
    """Defines the possible states of a single machine.

    Every state is revisitable; there is no terminal state.
    """
    AVAILABLE = "available"  # Idle and usable
    RUNNING = "running"      # Cycle in progress, minutes counting down
    BROKEN = "broken"        # Out of order until repaired


class MachineAction(Enum):
    """Actions a caller can request on a machine."""
    START = auto()
    CANCEL = auto()
    TOGGLE_BROKEN = auto()
    ADVANCE = auto()


class ChangeKind(Enum):
    """Defines the kinds of change a registry mutation can produce.

    Used by listeners to tell user-driven changes from clock-driven ones.
    """
    STARTED = auto()    # available -> running
    CANCELLED = auto()  # running -> available by request
    BROKEN = auto()     # available -> broken
    REPAIRED = auto()   # broken -> available
    TICKED = auto()     # running -> running, one minute less
    FINISHED = auto()   # running -> available when the countdown hits zero


# Minutes per cycle, by machine kind
DEFAULT_CYCLE_MINUTES: Mapping[MachineKind, int] = {
    MachineKind.WASHER: 50,
    MachineKind.DRYER: 55,
}

# Seconds between clock ticks
DEFAULT_TICK_INTERVAL = 60.0

# Type aliases for common types
CycleMinutes = Dict[MachineKind, int]
ChangeListener = Callable[["MachineChange"], None]
