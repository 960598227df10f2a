"""Primitive MQTT wire encodings: integers, strings, binary data and variable lengths."""

from __future__ import annotations

import struct
from typing import Any

from .errors import DecodeError, DecodeErrorKind, EncodeError, EncodeErrorKind

MAX_VARIABLE_LENGTH = 268_435_455

_BOOL = struct.Struct(">B")
_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


class Reader:
    """A cursor over an immutable byte buffer that is consumed from the front."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)
        self._pos = 0

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._data) - self._pos

    def read_u8(self) -> int:
        """Consume and return one byte."""
        if self._pos >= len(self._data):
            raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
        value = self._data[self._pos]
        self._pos += 1
        return value

    def take(self, length: int) -> bytes:
        """Consume and return the next ``length`` bytes."""
        if length < 0 or length > self.remaining():
            raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
        chunk = self._data[self._pos : self._pos + length]
        self._pos += length
        return chunk

    def rest(self) -> bytes:
        """Consume and return everything left."""
        return self.take(self.remaining())

    def __len__(self) -> int:
        return self.remaining()

    def __repr__(self) -> str:
        return f"Reader({self._data[self._pos:]!r})"


def decode_bool(reader: Reader) -> bool:
    if reader.remaining() < 1:
        raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
    value = reader.read_u8()
    if value > 1:
        raise DecodeError(DecodeErrorKind.MALFORMED_PACKET)
    return value == 1


def decode_u16(reader: Reader) -> int:
    if reader.remaining() < 2:
        raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
    return _U16.unpack(reader.take(2))[0]


def decode_u32(reader: Reader) -> int:
    if reader.remaining() < 4:
        raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
    return _U32.unpack(reader.take(4))[0]


def decode_nonzero_u16(reader: Reader) -> int:
    value = decode_u16(reader)
    if value == 0:
        raise DecodeError(DecodeErrorKind.MALFORMED_PACKET)
    return value


def decode_nonzero_u32(reader: Reader) -> int:
    value = decode_u32(reader)
    if value == 0:
        raise DecodeError(DecodeErrorKind.MALFORMED_PACKET)
    return value


def decode_bytes(reader: Reader) -> bytes:
    """Decode binary data prefixed by a two-byte length."""
    length = decode_u16(reader)
    if reader.remaining() < length:
        raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
    return reader.take(length)


def decode_string(reader: Reader) -> str:
    """Decode a UTF-8 string prefixed by a two-byte length."""
    data = decode_bytes(reader)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(DecodeErrorKind.UTF8_ERROR) from exc


def read_variable_length(reader: Reader) -> int:
    """Consume a variable byte integer from the reader."""
    shift = 0
    length = 0
    while True:
        if reader.remaining() < 1:
            raise DecodeError(DecodeErrorKind.MALFORMED_PACKET)
        byte = reader.read_u8()
        length += (byte & 0x7F) << shift
        if not byte & 0x80:
            return length
        if shift >= 21:
            raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
        shift += 7


def decode_variable_length(data: bytes | bytearray | memoryview) -> tuple[int, int] | None:
    """Decode a variable byte integer at the start of ``data``.

    Returns ``(value, bytes_consumed)``, or ``None`` when more data is needed.
    """
    reader = Reader(data)
    try:
        value = read_variable_length(reader)
    except DecodeError as exc:
        if exc.kind is DecodeErrorKind.MALFORMED_PACKET:
            return None
        raise
    return value, len(reader._data) - reader.remaining()


def take_properties(reader: Reader) -> bytes:
    """Consume a length-prefixed block of properties and return its body."""
    length = read_variable_length(reader)
    if reader.remaining() < length:
        raise DecodeError(DecodeErrorKind.INVALID_LENGTH)
    return reader.take(length)


def encode_bool(value: bool) -> bytes:
    """Encode a boolean as a single byte, 0x01 for true and 0x00 for false."""
    flag = 1 if value else 0
    return _BOOL.pack(flag)


def encode_u16(value: int) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"value {value} does not fit in 16 bits")
    return _U16.pack(value)


def encode_u32(value: int) -> bytes:
    if not 0 <= value <= 0xFFFF_FFFF:
        raise ValueError(f"value {value} does not fit in 32 bits")
    return _U32.pack(value)


def encode_bytes(value: bytes | bytearray | memoryview) -> bytes:
    """Encode binary data with a two-byte length prefix."""
    data = bytes(value)
    if len(data) > 0xFFFF:
        raise EncodeError(EncodeErrorKind.INVALID_LENGTH)
    return _U16.pack(len(data)) + data


def encode_string(value: str) -> bytes:
    """Encode a UTF-8 string with a two-byte length prefix."""
    return encode_bytes(value.encode("utf-8"))


def encode_string_pair(pair: tuple[str, str]) -> bytes:
    """Encode a name/value string pair."""
    name, value = pair
    return encode_string(name) + encode_string(value)


def encoded_size(value: Any) -> int:
    """Size in bytes of the wire form of ``value``.

    ``None`` takes no space, booleans one byte, strings and binary data a
    two-byte prefix plus their content, and tuples the sum of their parts.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, memoryview):
        return 2 + value.nbytes
    if isinstance(value, (bytes, bytearray)):
        return 2 + len(value)
    if isinstance(value, str):
        return 2 + len(value.encode("utf-8"))
    if isinstance(value, tuple):
        return sum(encoded_size(part) for part in value)
    raise TypeError(f"no fixed wire size for {type(value).__name__}")


def write_variable_length(length: int) -> bytes:
    """Encode ``length`` as a variable byte integer."""
    if not 0 <= length <= MAX_VARIABLE_LENGTH:
        raise ValueError("length is too big")
    out = bytearray()
    while True:
        byte = length & 0x7F
        length >>= 7
        if length:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)