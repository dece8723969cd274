"""Interpolation modes used between consecutive track keys."""

from __future__ import annotations

from enum import IntEnum


class Interpolation(IntEnum):
    """How a value moves from one key towards the next."""

    STEP = 0
    LINEAR = 1
    SMOOTH = 2
    RAMP = 3

    @classmethod
    def from_raw(cls, raw: int) -> "Interpolation":
        """Map a raw protocol byte to a mode; unknown values become ``STEP``."""
        try:
            return cls(raw)
        except ValueError:
            return cls.STEP

    def interpolate(self, t: float) -> float:
        """Return the interpolation factor for ``t`` in ``[0, 1]``."""
        if self is Interpolation.STEP:
            return 0.0
        if self is Interpolation.LINEAR:
            return t
        if self is Interpolation.SMOOTH:
            return t * t * (3.0 - 2.0 * t)
        return t * t