"""Exceptions raised by the garden simulation core."""

from __future__ import annotations


class GardenError(Exception):
    """Base class for garden simulation errors."""


class InvalidCommandError(GardenError, ValueError):
    """A command was rejected without changing any state.

    Raised for lifecycle misuse (starting an empty garden, an out-of-range
    speed) and for invalid manual overrides such as non-positive refills.
    """
