"""The Internet checksum (one's-complement sum of 16-bit words)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

_MASK32 = 0xFFFFFFFF

Data = Union[bytes, bytearray, memoryview, Iterable[Union[bytes, bytearray, memoryview]]]


class InternetChecksum:
    """Accumulates bytes, possibly split over several buffers, into a checksum."""

    def __init__(self, initial: int = 0) -> None:
        self._sum = initial & _MASK32
        self._odd = False

    def add(self, data: Data) -> None:
        """Add a buffer, or each buffer of an iterable, to the sum."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            for chunk in data:
                self.add(chunk)
            return
        for byte in bytes(data):
            self._sum = (self._sum + (byte if self._odd else byte << 8)) & _MASK32
            self._odd = not self._odd

    def value(self) -> int:
        total = self._sum
        while total > 0xFFFF:
            total = (total >> 16) + (total & 0xFFFF)
        return ~total & 0xFFFF