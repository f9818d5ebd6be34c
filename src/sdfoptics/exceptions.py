"""
Exception hierarchy for sdfoptics.

Construction-time errors (geometry, dimensions, invalid inputs) derive from
``ValueError`` as well, so callers validating user input can catch either.
"""

from __future__ import annotations


class SDFOpticsError(Exception):
    """Base class for all sdfoptics errors."""


class DegenerateGeometryError(SDFOpticsError, ValueError):
    """Raised when a curved surface cannot be built for the requested aperture."""


class InvalidDimensionError(SDFOpticsError, ValueError):
    """Raised for non-positive sizes or a mechanical diameter below the optical one."""


class InvalidInputError(SDFOpticsError, ValueError):
    """Raised by the solve entry points for unusable seeds or scenes."""


class UnsupportedInteraction(SDFOpticsError):
    """Raised when an element behavior has no interaction rule."""


class ConvergenceFailure(SDFOpticsError):
    """
    Raised by the sphere tracer in strict mode when marching exceeds its budget.

    In the default (non-strict) mode the failure is logged and the ray is
    treated as a miss.
    """

    def __init__(self, message: str, iterations: int = 0, travelled: float = 0.0):
        super().__init__(message)
        self.iterations = iterations
        self.travelled = travelled
