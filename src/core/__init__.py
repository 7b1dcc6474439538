"""
Player Client Core Module
"""

from .event_bus import EventBus, EventType
from .scheduler import IScheduler, IScheduledCall, ThreadingScheduler

__all__ = [
    'EventBus',
    'EventType',
    'IScheduler',
    'IScheduledCall',
    'ThreadingScheduler',
]
