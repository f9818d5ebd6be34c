"""
Refractive index lookup.

The core does not own glass catalog data. A dispersion is any callable
mapping a wavelength (m) to a refractive index; this module provides the
constant case and monotonic interpolation of an externally supplied table.
"""

from __future__ import annotations

from typing import Callable, Sequence, Union

import numpy as np
from scipy.interpolate import PchipInterpolator

Dispersion = Callable[[float], float]


class ConstantIndex:
    """Wavelength-independent refractive index."""

    def __init__(self, n: float):
        n = float(n)
        if not np.isfinite(n) or n <= 0:
            raise ValueError(f"Refractive index must be positive, got {n}")
        self.n = n

    def __call__(self, wavelength: float) -> float:
        return self.n

    def __repr__(self) -> str:
        return f"ConstantIndex({self.n})"


class RefractiveIndexTable:
    """
    Refractive index interpolated from a discrete wavelength table.

    Uses a PCHIP interpolant, which preserves the monotonicity of the table
    between samples. Wavelengths outside the table range are rejected.

    Attributes:
        wavelengths: Sample wavelengths in meters, strictly increasing
        indices: Refractive index at each sample
    """

    def __init__(self, wavelengths: Sequence[float], indices: Sequence[float]):
        wl = np.asarray(wavelengths, dtype=np.float64)
        n = np.asarray(indices, dtype=np.float64)
        if wl.ndim != 1 or wl.shape != n.shape:
            raise ValueError("wavelengths and indices must be 1D arrays of equal length")
        if len(wl) < 2:
            raise ValueError("At least two table entries are required")
        if np.any(np.diff(wl) <= 0):
            raise ValueError("wavelengths must be strictly increasing")
        if np.any(n <= 0):
            raise ValueError("Refractive indices must be positive")
        self.wavelengths = wl
        self.indices = n
        self._interpolant = PchipInterpolator(wl, n, extrapolate=False)

    def __call__(self, wavelength: float) -> float:
        value = float(self._interpolant(wavelength))
        if not np.isfinite(value):
            raise ValueError(
                f"Wavelength {wavelength} outside table range "
                f"[{self.wavelengths[0]}, {self.wavelengths[-1]}]"
            )
        return value

    def index(self, wavelength: float) -> float:
        """Refractive index at ``wavelength``."""
        return self(wavelength)

    def __repr__(self) -> str:
        return (
            f"RefractiveIndexTable({len(self.wavelengths)} samples, "
            f"{self.wavelengths[0]:.4g}-{self.wavelengths[-1]:.4g} m)"
        )


def as_dispersion(value: Union[float, Dispersion]) -> Dispersion:
    """Accept a plain number or a callable and return a dispersion callable."""
    if callable(value):
        return value
    return ConstantIndex(value)
