"""
rng.py — Injectable pseudo-random sources.

The simulators never touch a global generator: a source is created per
forecast run and passed explicitly down the call chain.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import numpy as np

DEFAULT_SEED = 12345

_LEHMER_MULTIPLIER = 16807
_LEHMER_MODULUS = 2_147_483_647  # 2**31 - 1


@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields floats in [0, 1) from ``next()``."""

    def next(self) -> float:
        ...


class LehmerRandom:
    """
    Park-Miller minimal standard generator.

    Fully deterministic: two instances built with the same seed produce the
    same sequence, which is what tests and the forecast cache rely on.
    Values fall in the open interval (0, 1).
    """

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        state = int(seed) % _LEHMER_MODULUS
        if state == 0:
            raise ValueError("seed must not be a multiple of 2**31 - 1")
        self._state = state
        self.seed = seed

    def next(self) -> float:
        self._state = (self._state * _LEHMER_MULTIPLIER) % _LEHMER_MODULUS
        return self._state / _LEHMER_MODULUS

    def __repr__(self) -> str:
        return f"LehmerRandom(seed={self.seed})"


class NumpyRandomSource:
    """
    Adapter over the NumPy Generator API (default_rng).

    With ``seed=None`` the generator is seeded from system entropy, which is
    the production setting when reproducibility is not wanted.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng: np.random.Generator = np.random.default_rng(seed)
        self.seed = seed

    def next(self) -> float:
        return float(self._rng.random())

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed})"


def default_random_source() -> RandomSource:
    """Fresh deterministic source used when a caller supplies none."""
    return LehmerRandom(DEFAULT_SEED)
