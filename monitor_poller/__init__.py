"""
Monitor Poller module.

This module contains the change detector and the poll scheduler that run
independently of the HTTP server. The scheduler periodically compares each
CI master's jobs with the build cache and publishes build events for the
builds that changed.
"""

from .detector import ChangeDetector
from .scheduler import MonitorHealth, PollScheduler

__all__ = ["ChangeDetector", "MonitorHealth", "PollScheduler"]
