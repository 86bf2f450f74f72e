"""
Scheduler Module
================

Capture cadence and game phase state machine.

Components:
    - PeriodicTask: Fixed-period asyncio timer with a cancellation token
    - CaptureScheduler: Phase transitions, quota and background policy
"""

from camera_challenge.scheduler.timer import PeriodicTask
from camera_challenge.scheduler.scheduler import CaptureScheduler, InvalidPhaseError

__all__ = [
    "PeriodicTask",
    "CaptureScheduler",
    "InvalidPhaseError",
]
