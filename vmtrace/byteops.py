"""Primitive readers for the register VM byte stream.

Every multi-byte field is big-endian.  Unlike loose payload scanners these
readers never pad: a read that would cross the end of the stream raises
:class:`~vmtrace.exceptions.TruncatedReadError` because a single misaligned
operand corrupts every instruction decoded after it.
"""

from __future__ import annotations

import math
from typing import List

from .exceptions import TruncatedReadError

STRING_XOR_KEY = 50

_EXPONENT_BIAS = 1023
_MANTISSA_BITS = 52


def decode_double(raw: bytes) -> float:
    """Rebuild an IEEE-754 binary64 value from eight big-endian bytes.

    The value is assembled from its sign bit, 11-bit biased exponent and
    52-bit mantissa.  Normalised numbers get the implicit leading ``1``
    restored; exponent ``0`` yields zero or a subnormal and exponent ``2047``
    yields an infinity or NaN.
    """

    if len(raw) != 8:
        raise ValueError(f"binary64 needs exactly 8 bytes, got {len(raw)}")
    bits = int.from_bytes(raw, "big")
    sign = -1.0 if bits >> 63 else 1.0
    exponent = (bits >> _MANTISSA_BITS) & 0x7FF
    mantissa = bits & ((1 << _MANTISSA_BITS) - 1)

    if exponent == 0:
        if mantissa == 0:
            return 0.0
        fraction = mantissa / (1 << _MANTISSA_BITS)
        return sign * math.ldexp(fraction, 1 - _EXPONENT_BIAS)
    if exponent == 0x7FF:
        return sign * math.inf if mantissa == 0 else math.nan

    fraction = 1.0 + mantissa / (1 << _MANTISSA_BITS)
    return sign * math.ldexp(fraction, exponent - _EXPONENT_BIAS)


def xor_decode(data: bytes, key: int = STRING_XOR_KEY) -> str:
    """Return the string hidden in ``data`` by the single-byte XOR scheme."""

    return "".join(chr(byte ^ key) for byte in data)


def xor_encode(text: str, key: int = STRING_XOR_KEY) -> bytes:
    """Inverse of :func:`xor_decode`; only code points up to 255 fit a byte."""

    out = bytearray()
    for char in text:
        code = ord(char)
        if code > 0xFF:
            raise ValueError(f"character {char!r} does not fit in a single byte")
        out.append(code ^ key)
    return bytes(out)


class ByteReader:
    """Cursor over an immutable byte stream."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = bytes(data)
        if not 0 <= offset <= len(self.data):
            raise ValueError(f"offset {offset} outside stream of {len(self.data)} bytes")
        self.offset = offset

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    @property
    def at_end(self) -> bool:
        return self.offset >= len(self.data)

    def _take(self, size: int) -> bytes:
        if size > self.remaining:
            raise TruncatedReadError(self.offset, size, self.remaining)
        chunk = self.data[self.offset : self.offset + size]
        self.offset += size
        return chunk

    def peek_byte(self) -> int:
        if self.at_end:
            raise TruncatedReadError(self.offset, 1, 0)
        return self.data[self.offset]

    def read_byte(self) -> int:
        return self._take(1)[0]

    def read_short_pointer(self) -> int:
        return int.from_bytes(self._take(2), "big")

    def read_word(self) -> int:
        return int.from_bytes(self._take(4), "big")

    def read_double(self) -> float:
        return decode_double(self._take(8))

    def read_obfuscated_string(self) -> str:
        """Read a length-prefixed string whose bytes are XORed with the key."""

        start = self.offset
        length = self.read_short_pointer()
        if length > self.remaining:
            # Leave the cursor on the length prefix so the error points at it.
            self.offset = start
            raise TruncatedReadError(start, 2 + length, self.remaining + 2)
        return xor_decode(self._take(length))

    def read_register_list(self, count: int) -> List[int]:
        """Read ``count`` single-byte register operands."""

        if count > self.remaining:
            raise TruncatedReadError(self.offset, count, self.remaining)
        return [self.read_byte() for _ in range(count)]


__all__ = [
    "STRING_XOR_KEY",
    "ByteReader",
    "decode_double",
    "xor_decode",
    "xor_encode",
]
