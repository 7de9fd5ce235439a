from typing import List

MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    # 32-bit multiply, low word only
    return (a * b) & MASK32


class Mulberry32:
    """
    Small-state multiply-xorshift generator.
    Same seed -> same sequence, forever. Not for cryptography.
    """

    def __init__(self, seed: int):
        self._seed = int(seed) & MASK32
        self._state = self._seed

    @property
    def seed(self) -> int:
        return self._seed

    def random(self) -> float:
        """Next uniform draw in [0, 1)."""
        self._state = (self._state + _INCREMENT) & MASK32
        r = self._state
        r = _imul(r ^ (r >> 15), r | 1)
        r ^= (r + _imul(r ^ (r >> 7), r | 61)) & MASK32
        return ((r ^ (r >> 14)) & MASK32) / _TWO_32

    def take(self, n: int) -> List[float]:
        return [self.random() for _ in range(n)]


def derive_seed(seed: int, run_id: int = 0, stride: int = 0, offset: int = 0) -> int:
    # recompute triggers shift the stream without touching the user's seed
    return (int(seed) + stride * int(run_id) + offset) & MASK32
