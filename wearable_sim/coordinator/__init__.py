"""
Wearable Simulator Coordinator
Schedules the physics and algorithm ticks against an injectable clock
"""

from .clock import ManualClock, MonotonicClock
from .scheduler import PeriodicTask, ProcessedPoint, SimulationReadout, SimulationScheduler

__all__ = [
    'ManualClock',
    'MonotonicClock',
    'PeriodicTask',
    'ProcessedPoint',
    'SimulationReadout',
    'SimulationScheduler',
]

__version__ = '1.0.0'
