"""
Change notifications emitted by the registry.

Each registry mutation produces one MachineChange per machine whose
status or remaining minutes changed. Changes are delivered to listeners
in the order they were applied, so a listener that replays them sees
every transition.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from laundrystate.core.machine import Machine
from laundrystate.core.types import ChangeKind, MachineAction, MachineStatus


@dataclass(frozen=True)
class MachineChange:
    """Represents one applied transition of a single machine.

    Class Invariants:
    1. before and after describe the same machine id
    2. sequence numbers grow by one per change within a registry
    """

    kind: ChangeKind
    before: Machine
    after: Machine
    sequence: int
    timestamp: float = field(default_factory=time.time)

    @property
    def machine_id(self) -> str:
        return self.after.id

    @property
    def status_changed(self) -> bool:
        """Check whether this change moved the machine to another status."""
        return self.before.status is not self.after.status

    def to_dict(self) -> Dict[str, Any]:
        """Get a plain dictionary view of the change.

        Returns:
            Dictionary with type, machine, statuses, minutes and timestamp
        """
        return {
            "type": self.kind.name.lower(),
            "sequence": self.sequence,
            "machine_id": self.machine_id,
            "from_status": self.before.status.value,
            "to_status": self.after.status.value,
            "remaining_minutes": self.after.remaining_minutes,
            "timestamp": self.timestamp,
        }


def classify(action: MachineAction, before: Machine, after: Machine) -> Optional[ChangeKind]:
    """Work out which kind of change an applied action produced.

    Args:
        action: The action that was applied
        before: Snapshot prior to the mutation
        after: Snapshot following the mutation

    Returns:
        The change kind, or None if nothing changed
    """
    if before == after:
        return None
    if action is MachineAction.START:
        return ChangeKind.STARTED
    if action is MachineAction.CANCEL:
        return ChangeKind.CANCELLED
    if action is MachineAction.TOGGLE_BROKEN:
        return ChangeKind.BROKEN if after.status is MachineStatus.BROKEN else ChangeKind.REPAIRED
    return ChangeKind.FINISHED if after.status is MachineStatus.AVAILABLE else ChangeKind.TICKED
