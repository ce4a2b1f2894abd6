"""
Monitor Package
===============

Continuous liquidation service.

Components:
- orchestrator.py: Main LiquidatorService class with tick scheduling
- cache.py: TimedRefresh interval-gated caches and RetryPolicy
- stats.py: BotStats counters and status report
"""

from .cache import RetryPolicy, TimedRefresh
from .orchestrator import LiquidatorService
from .stats import BotStats, print_progress

__all__ = [
    "LiquidatorService",
    "TimedRefresh",
    "RetryPolicy",
    "BotStats",
    "print_progress",
]
