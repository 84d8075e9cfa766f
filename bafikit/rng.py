"""Linear congruential generator with an xor-shift output mix."""

from __future__ import annotations

from typing import ClassVar

_MASK64 = 0xFFFFFFFFFFFFFFFF


def _mix(x: int) -> int:
    x ^= x >> 32
    x ^= x >> 16
    x ^= x >> 8
    return x


class LcgRng:
    """64-bit LCG. A generator with state 0 draws from a shared global state."""

    MULTIPLIER: ClassVar[int] = 6364136223846793005
    INCREMENT: ClassVar[int] = 1442695040888963407
    _global_state: ClassVar[int] = 15746565656558969

    def __init__(self, seed: int) -> None:
        self.state = seed & _MASK64

    @classmethod
    def global_rng(cls) -> "LcgRng":
        return cls(0)

    def _step(self, state: int) -> int:
        return (state * self.MULTIPLIER + self.INCREMENT) & _MASK64

    def next(self) -> int:
        if self.state == 0:
            cls = type(self)
            cls._global_state = self._step(cls._global_state)
            return _mix(cls._global_state)
        self.state = self._step(self.state)
        return _mix(self.state)

    def range(self, low: int, high: int) -> int:
        """Return a value in ``[low, high)``."""
        if not low < high:
            raise ValueError("min must be less than max")
        return low + self.next() % (high - low)

    def __iter__(self) -> "LcgRng":
        return self

    def __next__(self) -> int:
        return self.next()