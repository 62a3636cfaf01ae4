"""Pseudo-random generators and small helpers used by the tests and the dinner."""

from __future__ import annotations

_U32 = 0xFFFFFFFF


class LinearCongruential:
    """The portable rand/srand pair: values in 0..32767."""

    RAND_MAX = 32767

    def __init__(self, seed: int = 1) -> None:
        self._next = seed & _U32

    def seed(self, value: int) -> None:
        """Restart the sequence from ``value``."""
        self._next = value & _U32

    def rand(self) -> int:
        """Return the next value in 0..RAND_MAX."""
        self._next = (self._next * 1103515245 + 12345) & _U32
        return (self._next >> 16) % 32768

    def random_in_range(self, low: int, high: int) -> int:
        """Return a value between ``low`` and ``high``, both included."""
        if high < low:
            raise ValueError(f"empty range {low}..{high}")
        return self.rand() % (high - low + 1) + low


class MultiplyWithCarry:
    """Marsaglia's multiply-with-carry generator with its customary fixed seed."""

    def __init__(self) -> None:
        self._z = 362436069
        self._w = 521288629

    def get_uint(self) -> int:
        """Return the next unsigned 32-bit value."""
        self._z = (36969 * (self._z & 65535) + (self._z >> 16)) & _U32
        self._w = (18000 * (self._w & 65535) + (self._w >> 16)) & _U32
        return ((self._z << 16) + self._w) & _U32

    def get_uniform(self, maximum: int) -> int:
        """Return a value spread evenly over 0..maximum-1."""
        u = self.get_uint()
        return int((u + 1.0) * 2.328306435454494e-10 * (maximum & _U32))


def satoi(text: str | None) -> int:
    """Parse an optionally negative decimal; anything malformed yields 0."""
    if not text:
        return 0
    sign = 1
    if text[0] == "-":
        sign = -1
        text = text[1:]
    result = 0
    for ch in text:
        if not "0" <= ch <= "9":
            return 0
        result = result * 10 + ord(ch) - ord("0")
    return result * sign


def memcheck(data: bytes | bytearray | memoryview, value: int, size: int) -> bool:
    """Tell whether the first ``size`` bytes of ``data`` all equal ``value``."""
    view = memoryview(data).cast("B")
    if size > len(view):
        raise ValueError(f"asked to check {size} bytes of a {len(view)}-byte block")
    target = value & 0xFF
    return all(byte == target for byte in view[:size])