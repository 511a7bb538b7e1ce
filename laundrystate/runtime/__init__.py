"""
Runtime package for time-driven behavior and monitoring.

Architecture:
- Drives the registry countdown on a fixed interval
- Records registry changes and counters

Design Patterns:
- Command Pattern for scheduled ticks
- Observer Pattern for monitoring

Cross-cutting:
- Timer cleanup on stop
- Thread safety
"""

from .scheduler import ClockStatus, CycleClock
from .monitor import RegistryMonitor

__all__ = ["ClockStatus", "CycleClock", "RegistryMonitor"]
