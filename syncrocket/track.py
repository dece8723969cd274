"""Keys and named tracks of keys."""

from __future__ import annotations

import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Iterable, Optional

from .interpolation import Interpolation

_U32_MAX = 0xFFFFFFFF


@dataclass(frozen=True)
class Key:
    """A value at a row, with the interpolation towards the next key."""

    row: int
    value: float
    interpolation: Interpolation = Interpolation.STEP

    def __post_init__(self) -> None:
        if isinstance(self.row, bool) or not isinstance(self.row, int):
            raise TypeError(f"row must be an int, not {type(self.row).__name__}")
        if not 0 <= self.row <= _U32_MAX:
            raise ValueError(f"row {self.row} is outside the range 0..{_U32_MAX}")
        object.__setattr__(self, "value", float(self.value))
        object.__setattr__(self, "interpolation", Interpolation(self.interpolation))


def _row_floor(row: float) -> int:
    """Floor ``row`` into the unsigned 32-bit range, saturating at both ends."""
    if math.isnan(row) or row <= 0:
        return 0
    if row >= _U32_MAX:
        return _U32_MAX
    return int(math.floor(row))


class Track:
    """A named collection of keys kept sorted by row."""

    def __init__(self, name: str, keys: Optional[Iterable[Key]] = None) -> None:
        self._name = str(name)
        self._keys: list[Key] = []
        for key in keys or ():
            self.set_key(key)

    @property
    def name(self) -> str:
        """The track's name."""
        return self._name

    @property
    def keys(self) -> tuple[Key, ...]:
        """The keys, ordered by row."""
        return tuple(self._keys)

    def _rows(self) -> list[int]:
        return [key.row for key in self._keys]

    def set_key(self, key: Key) -> None:
        """Insert a key, replacing any key already on the same row."""
        pos = bisect_left(self._rows(), key.row)
        if pos < len(self._keys) and self._keys[pos].row == key.row:
            self._keys[pos] = key
        else:
            self._keys.insert(pos, key)

    def delete_key(self, row: int) -> None:
        """Remove the key on ``row``; does nothing if there is none."""
        pos = bisect_left(self._rows(), row)
        if pos < len(self._keys) and self._keys[pos].row == row:
            del self._keys[pos]

    def get_value(self, row: float) -> float:
        """Return the interpolated value at a (possibly fractional) row."""
        if not self._keys:
            return 0.0

        lower_row = _row_floor(row)
        first, last = self._keys[0], self._keys[-1]
        if lower_row <= first.row:
            return first.value
        if lower_row >= last.row:
            return last.value

        pos = bisect_right(self._rows(), lower_row) - 1
        lower = self._keys[pos]
        higher = self._keys[pos + 1]

        t = (row - lower.row) / (higher.row - lower.row)
        factor = lower.interpolation.interpolate(t)
        return lower.value + (higher.value - lower.value) * factor

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Track):
            return NotImplemented
        return self._name == other._name and self._keys == other._keys

    def __repr__(self) -> str:
        return f"Track(name={self._name!r}, keys={self._keys!r})"