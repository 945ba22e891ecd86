"""
Binary codec for ledger records (format v3).

Every persisted record is a raw concatenation of fields encoded here:
strings carry a uint16 little-endian length prefix, numbers and fixed-size
byte arrays are written as raw little-endian bytes with no prefix.

Decoders follow the (data, pos) -> (value, new_pos) convention.
"""

import struct
from typing import Tuple

from mitrack_mcp.core.exceptions import DecodeError, EncodingOverflowError

FORMAT_VERSION = 3

# Content of the per-store marker file
FORMAT_TAG = "quick:v0.4"
SUPPORTED_FORMAT_TAGS = frozenset({FORMAT_TAG})

MAX_STRING_LENGTH = 0xFFFF

_NUMERIC_FORMATS = {
    "int8": struct.Struct("<b"),
    "int16": struct.Struct("<h"),
    "int32": struct.Struct("<i"),
    "int64": struct.Struct("<q"),
    "uint8": struct.Struct("<B"),
    "uint16": struct.Struct("<H"),
    "uint32": struct.Struct("<I"),
    "uint64": struct.Struct("<Q"),
}


def _numeric_struct(kind: str) -> struct.Struct:
    try:
        return _NUMERIC_FORMATS[kind]
    except KeyError:
        raise ValueError(f"Unknown numeric kind: {kind}") from None


def _require(data: bytes, pos: int, size: int, what: str) -> None:
    if pos < 0 or len(data) - pos < size:
        raise DecodeError(
            f"Malformed input: need {size} bytes for {what} at offset {pos}, "
            f"{max(len(data) - pos, 0)} available"
        )


def encode_numeric(kind: str, value: int) -> bytes:
    """
    Encode a fixed-width integer.

    Args:
        kind: One of int8..int64, uint8..uint64
        value: Integer value

    Returns:
        Little-endian bytes

    Raises:
        EncodingOverflowError: If value does not fit in kind
    """
    fmt = _numeric_struct(kind)
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingOverflowError(f"{kind} value must be an int, got {value!r}")
    try:
        return fmt.pack(value)
    except struct.error as e:
        raise EncodingOverflowError(f"Value {value} does not fit in {kind}") from e


def decode_numeric(kind: str, data: bytes, pos: int) -> Tuple[int, int]:
    """
    Decode a fixed-width integer.

    Args:
        kind: One of int8..int64, uint8..uint64
        data: Byte data
        pos: Starting position in data

    Returns:
        Tuple of (decoded_value, new_position)
    """
    fmt = _numeric_struct(kind)
    _require(data, pos, fmt.size, kind)
    (value,) = fmt.unpack_from(data, pos)
    return value, pos + fmt.size


def encode_string(value: str) -> bytes:
    """
    Encode a string as uint16 length + UTF-8 bytes.

    Raises:
        EncodingOverflowError: If the UTF-8 form is longer than 65,535 bytes
    """
    raw = value.encode("utf-8")
    if len(raw) > MAX_STRING_LENGTH:
        raise EncodingOverflowError(
            f"String of {len(raw)} bytes exceeds maximum of {MAX_STRING_LENGTH}"
        )
    return _NUMERIC_FORMATS["uint16"].pack(len(raw)) + raw


def decode_string(data: bytes, pos: int) -> Tuple[str, int]:
    """
    Decode a length-prefixed UTF-8 string.

    Returns:
        Tuple of (decoded_string, new_position)

    Raises:
        DecodeError: If the input ends early or is not valid UTF-8
    """
    length, pos = decode_numeric("uint16", data, pos)
    _require(data, pos, length, "string body")
    try:
        value = bytes(data[pos : pos + length]).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Malformed input: invalid UTF-8 at offset {pos}") from e
    return value, pos + length


def encode_fixed_bytes(value: bytes, size: int) -> bytes:
    """Encode a fixed-size byte array (no length prefix)."""
    if len(value) != size:
        raise EncodingOverflowError(
            f"Expected exactly {size} bytes, got {len(value)}"
        )
    return bytes(value)


def decode_fixed_bytes(data: bytes, pos: int, size: int) -> Tuple[bytes, int]:
    """Decode a fixed-size byte array."""
    _require(data, pos, size, f"{size}-byte array")
    return bytes(data[pos : pos + size]), pos + size


def ensure_consumed(data: bytes, pos: int) -> None:
    """Raise DecodeError if bytes remain after the last field."""
    if pos != len(data):
        raise DecodeError(
            f"Malformed input: {len(data) - pos} trailing bytes after offset {pos}"
        )
