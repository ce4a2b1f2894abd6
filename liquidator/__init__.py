"""
Margin account liquidator.

Watches every margin account on an exchange, flags the ones close to
liquidation and liquidates them as soon as they become eligible.
"""

__version__ = "0.1.0"
