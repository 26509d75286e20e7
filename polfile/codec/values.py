"""Value codec: coercion, equality and binary encoding per value kind.

Coercion turns arbitrary caller input into the canonical Python value for a
kind (``str``, ``bytes``, ``int`` or ``list[str]``). Encoding and decoding map
canonical values to and from the raw data field of a policy file record.
"""

from __future__ import annotations

import re
import struct
from collections.abc import Sequence

from polfile.errors import FormatError, ValidationError
from polfile.models.kinds import ValueKind

_UTF16 = "utf-16-le"
_UTF16_ERRORS = "surrogatepass"
_NUL = "\x00"

DWORD_MAX = 0xFFFFFFFF
QWORD_MAX = 0xFFFFFFFFFFFFFFFF

_STRING_KINDS = (ValueKind.STRING, ValueKind.EXPAND_STRING)
_HEX_RE = re.compile(r"0[xX]([0-9a-fA-F]+)")
_DEC_RE = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def coerce_value(kind: ValueKind, data: object) -> str | bytes | int | list[str]:
    """Convert caller input to the canonical value for ``kind``.

    Raises ValidationError when the input has no meaning for the kind; input
    is never silently replaced by a default.
    """
    kind = ValueKind.parse(kind)
    if kind in _STRING_KINDS:
        return _coerce_text(data)
    if kind == ValueKind.BINARY:
        return _coerce_binary(data)
    if kind == ValueKind.DWORD:
        return _coerce_unsigned(data, DWORD_MAX, kind)
    if kind == ValueKind.QWORD:
        return _coerce_unsigned(data, QWORD_MAX, kind)
    return _coerce_multi_string(data)


def _coerce_text(data: object) -> str:
    text = "" if data is None else str(data)
    if _NUL in text:
        raise ValidationError("String data must not contain NUL characters")
    return text


def _coerce_binary(data: object) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, (list, tuple)):
        if all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 0xFF for b in data):
            return bytes(data)
        raise ValidationError("Binary data items must be integers in the range 0..255")
    raise ValidationError(f"Binary data must be bytes or a sequence of byte values, got {type(data).__name__}")


def _coerce_unsigned(data: object, maximum: int, kind: ValueKind) -> int:
    name = kind.display_name
    if isinstance(data, bool):
        raise ValidationError(f"{name} data must be numeric, got a boolean")
    if isinstance(data, int):
        number = data
    elif isinstance(data, float):
        if not data.is_integer():
            raise ValidationError(f"{name} data must be a whole number, got {data!r}")
        number = int(data)
    elif isinstance(data, str):
        number = _parse_number(data, name)
    else:
        raise ValidationError(f"{name} data must be numeric, got {type(data).__name__}")

    if not 0 <= number <= maximum:
        raise ValidationError(f"{name} data {number} is out of range (0..{maximum:#x})")
    return number


def _parse_number(text: str, name: str) -> int:
    raw = text.strip()
    match = _HEX_RE.fullmatch(raw)
    if match:
        return int(match.group(1), 16)
    if _DEC_RE.fullmatch(raw):
        return int(raw, 10)
    raise ValidationError(f"{name} data {text!r} is not a decimal or 0x-prefixed hexadecimal number")


def _coerce_multi_string(data: object) -> list[str]:
    if isinstance(data, (str, bytes, bytearray)) or not isinstance(data, Sequence):
        raise ValidationError(
            f"MultiString data must be a list of strings, got {type(data).__name__}"
        )
    return [_coerce_text(item) for item in data]


# ---------------------------------------------------------------------------
# Equality
# ---------------------------------------------------------------------------


def values_equal(kind: ValueKind, left: object, right: object) -> bool:
    """Kind-aware equality. Both sides are coerced first; uncoercible input is never equal."""
    kind = ValueKind.parse(kind)
    try:
        a = coerce_value(kind, left)
        b = coerce_value(kind, right)
    except ValidationError:
        return False

    if kind == ValueKind.MULTI_STRING:
        return len(a) == len(b) and all(x == y for x, y in zip(a, b))
    if kind == ValueKind.BINARY:
        return len(a) == len(b) and a == b
    return a == b


# ---------------------------------------------------------------------------
# Binary encoding
# ---------------------------------------------------------------------------


def encode_data(kind: ValueKind, value: object) -> bytes:
    """Encode a value into the raw data field of a policy record."""
    kind = ValueKind.parse(kind)
    value = coerce_value(kind, value)
    if kind in _STRING_KINDS:
        return encode_wstring(value)
    if kind == ValueKind.BINARY:
        return value
    if kind == ValueKind.DWORD:
        return struct.pack("<I", value)
    if kind == ValueKind.QWORD:
        return struct.pack("<Q", value)
    return b"".join(encode_wstring(s) for s in value) + encode_wstring("")


def decode_data(kind: ValueKind, raw: bytes) -> str | bytes | int | list[str]:
    """Decode the raw data field of a policy record. Raises FormatError on bad data."""
    kind = ValueKind.parse(kind)
    if kind == ValueKind.BINARY:
        return bytes(raw)
    if kind == ValueKind.DWORD:
        if len(raw) != 4:
            raise FormatError(f"DWord data must be 4 bytes, got {len(raw)}")
        return struct.unpack("<I", raw)[0]
    if kind == ValueKind.QWORD:
        if len(raw) != 8:
            raise FormatError(f"QWord data must be 8 bytes, got {len(raw)}")
        return struct.unpack("<Q", raw)[0]

    text = _decode_utf16(raw, kind)
    if kind in _STRING_KINDS:
        return text.rstrip(_NUL)

    if text.endswith(_NUL):
        text = text[:-1]
    if not text:
        return []
    items = text.split(_NUL)
    # Every item is NUL-terminated, so a well-formed body ends with an empty tail.
    if items[-1] == "":
        items.pop()
    return items


def encode_wstring(text: str) -> bytes:
    """UTF-16LE text followed by a NUL code unit."""
    return (text + _NUL).encode(_UTF16, _UTF16_ERRORS)


def _decode_utf16(raw: bytes, kind: ValueKind) -> str:
    if len(raw) % 2:
        raise FormatError(f"{kind.display_name} data has odd length {len(raw)}")
    return bytes(raw).decode(_UTF16, _UTF16_ERRORS)
