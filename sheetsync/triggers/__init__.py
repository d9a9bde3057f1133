"""
Triggers module: handler registration and button throttling.
"""

from sheetsync.triggers.throttle import Throttle, ThrottleStats
from sheetsync.triggers.coordinator import Registration, TriggerCoordinator

__all__ = [
    "Throttle",
    "ThrottleStats",
    "Registration",
    "TriggerCoordinator",
]
