import threading
from typing import Any, Callable, Dict, List, Optional

from laundrystate.core.event import MachineChange
from laundrystate.core.registry import MachineRegistry
from laundrystate.core.types import ChangeKind

# Counters bumped by each change kind; the last minute of a cycle is a FINISHED change
_METRIC_NAMES = {
    ChangeKind.STARTED: ("cycles_started",),
    ChangeKind.CANCELLED: ("cycles_cancelled",),
    ChangeKind.FINISHED: ("cycles_finished", "minutes_elapsed"),
    ChangeKind.TICKED: ("minutes_elapsed",),
    ChangeKind.BROKEN: ("breakdowns",),
    ChangeKind.REPAIRED: ("repairs",),
}


class RegistryMonitor:
    """Records registry changes and keeps running counters.

    RegistryMonitor is a change listener: it keeps the ordered change
    history and cumulative counters per change kind.

    Class Invariants:
    1. History preserves delivery order
    2. History never holds more than max_history changes
    3. Counters are totals since construction or the last full clear
    4. Indices point into the current history

    Threading/Concurrency Guarantees:
    1. Thread-safe recording
    2. Queries return copies
    """

    def __init__(self, max_history: Optional[int] = None):
        """Initialize an empty monitor.

        Args:
            max_history: Optional bound on retained changes; the oldest are dropped first

        Raises:
            ValueError: If max_history is not positive
        """
        if max_history is not None and max_history <= 0:
            raise ValueError("History bound must be positive")
        self._max_history = max_history
        self._metrics: Dict[str, int] = {}
        self._history: List[MachineChange] = []
        self._lock = threading.Lock()
        self._machine_index: Dict[str, List[int]] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

    def __call__(self, change: MachineChange) -> None:
        self.track_change(change)

    @property
    def metrics(self) -> Dict[str, int]:
        """Get a copy of the counters."""
        with self._lock:
            return self._metrics.copy()

    @property
    def history(self) -> List[MachineChange]:
        """Get a copy of the change history."""
        with self._lock:
            return self._history.copy()

    @property
    def change_count(self) -> int:
        with self._lock:
            return len(self._history)

    def attach(self, registry: MachineRegistry) -> None:
        """Start recording the changes of a registry.

        Raises:
            RuntimeError: If the monitor is already attached
        """
        if self._unsubscribe is not None:
            raise RuntimeError("Monitor is already attached to a registry")
        self._unsubscribe = registry.subscribe(self)

    def detach(self) -> None:
        """Stop recording. Does nothing if not attached."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def track_change(self, change: MachineChange) -> None:
        """Record one change.

        Args:
            change: The change delivered by the registry
        """
        with self._lock:
            self._machine_index.setdefault(change.machine_id, []).append(len(self._history))
            self._history.append(change)
            for name in _METRIC_NAMES[change.kind]:
                self._metrics[name] = self._metrics.get(name, 0) + 1
            if self._max_history is not None and len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]
                self._reindex()

    def get_metric(self, name: str) -> int:
        """Get a counter value.

        Raises:
            KeyError: If the counter was never incremented
        """
        with self._lock:
            return self._metrics[name]

    def query_changes(
        self,
        machine_id: Optional[str] = None,
        kind: Optional[ChangeKind] = None,
        start_time: Optional[float] = None,
    ) -> List[MachineChange]:
        """Query changes with optional filtering.

        Args:
            machine_id: Optional machine filter
            kind: Optional change kind filter
            start_time: Optional earliest timestamp

        Returns:
            Matching changes in delivery order
        """
        with self._lock:
            if machine_id is not None:
                candidates = [self._history[i] for i in self._machine_index.get(machine_id, [])]
            else:
                candidates = list(self._history)
        if kind is not None:
            candidates = [c for c in candidates if c.kind is kind]
        if start_time is not None:
            candidates = [c for c in candidates if c.timestamp >= start_time]
        return candidates

    def snapshot(self) -> List[Dict[str, Any]]:
        """Get the history as plain dictionaries."""
        return [change.to_dict() for change in self.history]

    def clear_history(self, before_time: Optional[float] = None) -> None:
        """Clear change history.

        Counters are reset only by a full clear.

        Args:
            before_time: Optional timestamp to clear changes before
        """
        with self._lock:
            if before_time is None:
                self._history.clear()
                self._machine_index.clear()
                self._metrics.clear()
            else:
                self._history = [c for c in self._history if c.timestamp >= before_time]
                self._reindex()

    def _reindex(self) -> None:
        self._machine_index = {}
        for i, change in enumerate(self._history):
            self._machine_index.setdefault(change.machine_id, []).append(i)
