"""Exception types shared by the backend boundary functions."""
from __future__ import annotations


class MalformedUpstreamError(ValueError):
    """Raised when upstream JSON does not have the expected shape."""


class InvalidSimulationInput(ValueError):
    """Raised when a simulation request cannot be evaluated."""
