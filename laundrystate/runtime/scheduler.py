"""
Periodic countdown scheduling.

Architecture:
- Drives the registry countdown once per fixed interval
- Re-arms a one-shot timer after every tick
- Guarantees no tick after stop() returns
- Scopes the timer to a context manager

Design Patterns:
- Command Pattern: Scheduled tick
- Context Manager: Scoped timer ownership

Responsibilities:
1. Timer Management
   - Timer creation
   - Timer cancellation
   - Stale timer detection (generation counter)

2. Lifecycle
   - Idempotent start
   - Idempotent stop
   - Restart after stop

Cross-cutting:
- Tick failures logged, schedule kept
- Thread safety

Dependencies:
- registry.py: The ticked registry
"""

import logging
from enum import Enum, auto
from threading import RLock, Timer
from time import monotonic
from typing import Callable, Optional

from laundrystate.core.registry import MachineRegistry
from laundrystate.core.types import DEFAULT_TICK_INTERVAL

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[..., None], tuple], Timer]


def _thread_timer(interval: float, function: Callable[..., None], args: tuple) -> Timer:
    timer = Timer(interval, function, args=args)
    timer.daemon = True
    return timer


class ClockStatus(Enum):
    """Defines the possible states of a clock.

    Used to track clock lifecycle and coordinate operations.
    """
    IDLE = auto()     # Never started
    ACTIVE = auto()   # Ticking
    STOPPED = auto()  # Stopped, may be started again


class CycleClock:
    """Advances simulated time for every running machine.

    CycleClock calls registry.tick() once per interval for as long as it
    is active. The interval is approximate wall-clock time; there is no
    drift correction.

    Class Invariants:
    1. At most one timer is pending at any time
    2. No tick is applied after stop() returns
    3. Starting an active clock does not change the tick rate

    Threading/Concurrency Guarantees:
    1. start() and stop() may be called from any thread
    2. A tick in progress completes before stop() returns
    3. Timers armed before the last stop() or start() are ignored when they fire
    4. The registry lock is never requested while the clock lock is held, so
       listeners may read the clock or stop it from any thread
    """

    def __init__(
        self,
        registry: MachineRegistry,
        interval: float = DEFAULT_TICK_INTERVAL,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        """Initialize an idle clock.

        Args:
            registry: Registry to tick
            interval: Seconds between ticks
            timer_factory: Builds one-shot timers; defaults to daemon threading.Timer

        Raises:
            ValueError: If interval is not positive
        """
        if interval <= 0:
            raise ValueError("Tick interval must be positive")

        self._registry = registry
        self._interval = float(interval)
        self._timer_factory = timer_factory or _thread_timer
        self._lock = RLock()
        self._status = ClockStatus.IDLE
        self._timer: Optional[Timer] = None
        self._generation = 0
        self._tick_count = 0
        self._last_tick: Optional[float] = None

    def __enter__(self) -> "CycleClock":
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()

    @property
    def status(self) -> ClockStatus:
        with self._lock:
            return self._status

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def tick_count(self) -> int:
        """Get the number of ticks handed to the registry since construction."""
        with self._lock:
            return self._tick_count

    @property
    def last_tick(self) -> Optional[float]:
        """Get the monotonic time of the last tick, if any."""
        with self._lock:
            return self._last_tick

    def start(self) -> "CycleClock":
        """Begin ticking. Does nothing if the clock is already active.

        Returns:
            The clock itself, which stop() releases
        """
        with self._lock:
            if self._status is ClockStatus.ACTIVE:
                return self
            self._status = ClockStatus.ACTIVE
            self._generation += 1
            self._arm(self._generation)
        logger.info("Cycle clock started (interval %.1fs)", self._interval)
        return self

    def stop(self) -> None:
        """Stop ticking and cancel the pending timer. Does nothing unless active.

        Waits for a tick in progress on another thread. Safe to call from a
        change listener.
        """
        with self._registry.serialized():
            with self._lock:
                if self._status is not ClockStatus.ACTIVE:
                    return
                self._status = ClockStatus.STOPPED
                self._generation += 1
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                ticks = self._tick_count
        logger.info("Cycle clock stopped after %d ticks", ticks)

    def _arm(self, generation: int) -> None:
        timer = self._timer_factory(self._interval, self._fire, (generation,))
        self._timer = timer
        timer.start()

    def _admit(self, generation: int) -> bool:
        # Runs under the registry lock, so stop() cannot interleave with the tick
        with self._lock:
            if generation != self._generation:
                return False
            self._tick_count += 1
            self._last_tick = monotonic()
            logger.debug("Tick %d started", self._tick_count)
            return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None

        # The registry lock is always taken before the clock lock
        try:
            self._registry.tick(guard=lambda: self._admit(generation))
        except Exception:
            logger.exception("Registry tick failed")

        with self._lock:
            # stop() may have been called from a listener during the tick
            if generation == self._generation:
                self._arm(generation)
