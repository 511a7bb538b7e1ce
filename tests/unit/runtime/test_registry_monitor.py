import time
import unittest
from threading import Thread

from laundrystate.core.event import MachineChange
from laundrystate.core.machine import Machine
from laundrystate.core.registry import MachineRegistry
from laundrystate.core.types import ChangeKind, MachineKind, MachineStatus
from laundrystate.runtime.monitor import RegistryMonitor


class TestRegistryMonitor(unittest.TestCase):
    """Test cases for RegistryMonitor.

    Tests verify:
    1. Counters per change kind
    2. Ordered history
    3. Querying and filtering
    4. Attach and detach
    """

    def setUp(self):
        self.registry = MachineRegistry(cycle_minutes={MachineKind.DRYER: 2})
        self.monitor = RegistryMonitor()
        self.monitor.attach(self.registry)

    def tearDown(self):
        self.monitor.detach()

    def test_initial_state(self):
        self.assertEqual(self.monitor.metrics, {})
        self.assertEqual(self.monitor.history, [])
        self.assertEqual(self.monitor.change_count, 0)

    def test_counters(self):
        """Test counters follow registry activity.

        Verifies:
        1. Started, finished and cancelled cycles
        2. Elapsed minutes
        3. Breakdowns and repairs
        """
        self.registry.request_start("d1")
        self.registry.request_start("w1")
        self.registry.tick()
        self.registry.tick()
        self.registry.request_cancel("w1")
        self.registry.toggle_broken("w2")
        self.registry.toggle_broken("w2")

        self.assertEqual(self.monitor.get_metric("cycles_started"), 2)
        self.assertEqual(self.monitor.get_metric("cycles_finished"), 1)
        self.assertEqual(self.monitor.get_metric("cycles_cancelled"), 1)
        # Two ticks on each machine, the second finishing the dryer
        self.assertEqual(self.monitor.get_metric("minutes_elapsed"), 4)
        self.assertEqual(self.monitor.get_metric("breakdowns"), 1)
        self.assertEqual(self.monitor.get_metric("repairs"), 1)
        self.assertEqual(self.monitor.change_count, 9)

    def test_get_metric_nonexistent(self):
        with self.assertRaises(KeyError):
            self.monitor.get_metric("repairs")

    def test_query_changes(self):
        self.registry.request_start("d1")
        self.registry.request_start("d2")
        self.registry.tick()

        d1 = self.monitor.query_changes(machine_id="d1")
        self.assertEqual([c.kind for c in d1], [ChangeKind.STARTED, ChangeKind.TICKED])
        ticks = self.monitor.query_changes(kind=ChangeKind.TICKED)
        self.assertEqual([c.machine_id for c in ticks], ["d1", "d2"])
        self.assertEqual(self.monitor.query_changes(machine_id="w4"), [])
        self.assertEqual(self.monitor.query_changes(machine_id="d2", kind=ChangeKind.FINISHED), [])

    def test_query_changes_by_time(self):
        now = time.time()
        available = Machine("w1", MachineKind.WASHER)
        running = Machine("w1", MachineKind.WASHER, MachineStatus.RUNNING, 50)
        self.monitor.track_change(MachineChange(ChangeKind.STARTED, available, running, 1, timestamp=now - 2))
        self.monitor.track_change(MachineChange(ChangeKind.CANCELLED, running, available, 2, timestamp=now))

        recent = self.monitor.query_changes(start_time=now - 1)
        self.assertEqual([c.sequence for c in recent], [2])

    def test_snapshot(self):
        self.registry.toggle_broken("w3")
        snapshot = self.monitor.snapshot()
        self.assertEqual(len(snapshot), 1)
        self.assertEqual(snapshot[0]["type"], "broken")
        self.assertEqual(snapshot[0]["machine_id"], "w3")

    def test_clear_history(self):
        self.registry.request_start("w1")
        self.monitor.clear_history()
        self.assertEqual(self.monitor.history, [])
        self.assertEqual(self.monitor.metrics, {})
        self.assertEqual(self.monitor.query_changes(machine_id="w1"), [])

    def test_clear_history_before_time(self):
        """Test pruning old changes.

        Verifies:
        1. Only changes older than the cutoff are removed
        2. The per-machine index follows the pruned history
        3. Counters keep their totals
        """
        now = time.time()
        available = Machine("w1", MachineKind.WASHER)
        running = Machine("w1", MachineKind.WASHER, MachineStatus.RUNNING, 50)
        dryer = Machine("d1", MachineKind.DRYER)
        broken = Machine("d1", MachineKind.DRYER, MachineStatus.BROKEN)
        self.monitor.track_change(MachineChange(ChangeKind.STARTED, available, running, 1, timestamp=now - 10))
        self.monitor.track_change(MachineChange(ChangeKind.BROKEN, dryer, broken, 2, timestamp=now - 5))
        self.monitor.track_change(MachineChange(ChangeKind.CANCELLED, running, available, 3, timestamp=now))

        self.monitor.clear_history(before_time=now - 1)
        self.assertEqual([c.sequence for c in self.monitor.history], [3])
        self.assertEqual([c.sequence for c in self.monitor.query_changes(machine_id="w1")], [3])
        self.assertEqual(self.monitor.query_changes(machine_id="d1"), [])
        self.assertEqual(self.monitor.get_metric("cycles_started"), 1)
        self.assertEqual(self.monitor.get_metric("breakdowns"), 1)

    def test_max_history(self):
        monitor = RegistryMonitor(max_history=3)
        monitor.attach(self.registry)
        try:
            for _ in range(3):
                self.registry.toggle_broken("w1")
            self.registry.toggle_broken("d2")
        finally:
            monitor.detach()

        self.assertEqual([c.sequence for c in monitor.history], [2, 3, 4])
        self.assertEqual([c.sequence for c in monitor.query_changes(machine_id="w1")], [2, 3])
        self.assertEqual([c.sequence for c in monitor.query_changes(machine_id="d2")], [4])
        self.assertEqual(monitor.get_metric("breakdowns"), 3)
        self.assertEqual(monitor.get_metric("repairs"), 1)

    def test_max_history_must_be_positive(self):
        with self.assertRaises(ValueError):
            RegistryMonitor(max_history=0)

    def test_detach(self):
        self.monitor.detach()
        self.registry.request_start("w1")
        self.assertEqual(self.monitor.change_count, 0)
        self.monitor.detach()

    def test_attach_twice(self):
        with self.assertRaises(RuntimeError):
            self.monitor.attach(self.registry)

    def test_thread_safety(self):
        """Test concurrent mutations are all recorded once."""
        registry = MachineRegistry()
        monitor = RegistryMonitor()
        monitor.attach(registry)

        def toggle(machine_id):
            for _ in range(100):
                registry.toggle_broken(machine_id)

        threads = [Thread(target=toggle, args=(m.id,)) for m in registry.list()]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(monitor.change_count, 700)
        self.assertEqual(monitor.get_metric("breakdowns"), 350)
        self.assertEqual(monitor.get_metric("repairs"), 350)
        self.assertEqual([c.sequence for c in monitor.history], list(range(1, 701)))


if __name__ == "__main__":
    unittest.main()
