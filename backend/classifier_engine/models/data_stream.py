"""
Java data stream primitives used by binary models.

Strings are written as a 2-byte big-endian length followed by modified UTF-8:
NUL is encoded as two bytes and characters outside the Basic Multilingual
Plane are encoded as a surrogate pair of 3-byte sequences. Integers are 4-byte
and doubles 8-byte big-endian.
"""

import struct
from typing import BinaryIO

from shared.errors import ModelFormatError

MAX_UTF_LENGTH = 0xFFFF

_SHORT = struct.Struct(">H")
_INT = struct.Struct(">i")
_DOUBLE = struct.Struct(">d")


def encode_modified_utf8(value: str) -> bytes:
    """Encode a string as modified UTF-8."""
    units = value.encode("utf-16-be", "surrogatepass")
    out = bytearray()
    for i in range(0, len(units), 2):
        unit = (units[i] << 8) | units[i + 1]
        if 0x0001 <= unit <= 0x007F:
            out.append(unit)
        elif unit <= 0x07FF:
            out.append(0xC0 | (unit >> 6))
            out.append(0x80 | (unit & 0x3F))
        else:
            out.append(0xE0 | (unit >> 12))
            out.append(0x80 | ((unit >> 6) & 0x3F))
            out.append(0x80 | (unit & 0x3F))
    return bytes(out)


def decode_modified_utf8(data: bytes) -> str:
    """Decode modified UTF-8 bytes."""
    units = bytearray()
    i = 0
    n = len(data)
    while i < n:
        first = data[i]
        if first < 0x80:
            unit = first
            i += 1
        elif first & 0xE0 == 0xC0 and i + 1 < n:
            unit = ((first & 0x1F) << 6) | (data[i + 1] & 0x3F)
            i += 2
        elif first & 0xF0 == 0xE0 and i + 2 < n:
            unit = ((first & 0x0F) << 12) | ((data[i + 1] & 0x3F) << 6) | (data[i + 2] & 0x3F)
            i += 3
        else:
            raise ModelFormatError(f"Malformed modified UTF-8 at byte {i}")
        units += _SHORT.pack(unit)
    return units.decode("utf-16-be", "surrogatepass")


def write_utf(stream: BinaryIO, value: str):
    encoded = encode_modified_utf8(value)
    if len(encoded) > MAX_UTF_LENGTH:
        raise ModelFormatError(
            f"Encoded string too long: {len(encoded)} bytes (max {MAX_UTF_LENGTH})"
        )
    stream.write(_SHORT.pack(len(encoded)))
    stream.write(encoded)


def write_int(stream: BinaryIO, value: int):
    stream.write(_INT.pack(value))


def write_double(stream: BinaryIO, value: float):
    stream.write(_DOUBLE.pack(value))


def _read_exactly(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise ModelFormatError("Unexpected end of model data")
    return data


def read_utf(stream: BinaryIO) -> str:
    (length,) = _SHORT.unpack(_read_exactly(stream, _SHORT.size))
    return decode_modified_utf8(_read_exactly(stream, length))


def read_int(stream: BinaryIO) -> int:
    return _INT.unpack(_read_exactly(stream, _INT.size))[0]


def read_double(stream: BinaryIO) -> float:
    return _DOUBLE.unpack(_read_exactly(stream, _DOUBLE.size))[0]
