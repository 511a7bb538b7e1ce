# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import threading
import time
from unittest.mock import MagicMock

import pytest


class ManualTimer:
    """A one-shot timer that only fires when the test says so."""

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        # Mirrors a threading.Timer that woke up just before cancel()
        self.fired = True
        self.function(*self.args)


class ManualTimerFactory:
    """Collects every timer a clock creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args):
        timer = ManualTimer(interval, function, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.started and not (t.cancelled or t.fired)]

    def fire_next(self):
        """Fire the most recently armed, uncancelled timer."""
        pending = self.pending
        assert pending, "no pending timer"
        pending[-1].fire()


def wait_for(predicate, timeout=2.0, poll=0.005):
    """Poll until predicate() is true or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(poll)
    return predicate()


@pytest.fixture
def registry():
    """The default seven-machine registry."""
    from laundrystate.core.registry import MachineRegistry

    return MachineRegistry()


@pytest.fixture
def changes(registry):
    """Every change delivered by the registry fixture, in order."""
    received = []
    registry.subscribe(received.append)
    return received


@pytest.fixture
def monitor(registry):
    """A monitor attached to the registry fixture."""
    from laundrystate.runtime.monitor import RegistryMonitor

    m = RegistryMonitor()
    m.attach(registry)
    yield m
    m.detach()


@pytest.fixture
def timer_factory():
    return ManualTimerFactory()


@pytest.fixture
def manual_clock(registry, timer_factory):
    """A clock on the registry fixture driven by manual timers."""
    from laundrystate.runtime.scheduler import CycleClock

    clock = CycleClock(registry, interval=60.0, timer_factory=timer_factory)
    yield clock
    clock.stop()


@pytest.fixture
def mock_registry():
    """A mock registry for clock tests."""
    return MagicMock()


@pytest.fixture(autouse=True)
def cleanup_threads():
    yield
    # Cleanup any remaining threads after each test
    for thread in threading.enumerate():
        if thread != threading.current_thread() and thread.is_alive() and not thread.daemon:
            thread.join(timeout=1.0)


@pytest.fixture
def wait():
    """The wait_for polling helper."""
    return wait_for
