"""Tick-based smart garden simulation.

A grid garden kept alive by irrigation, thermal regulation and pest
control loops under a stochastic weather process.
"""

__version__ = "0.1.0"
