"""registry.pol ("PReg") container format.

Layout (all integers little-endian, all text UTF-16LE)::

    header   u32 magic = 0x67655250 ("PReg")  u32 version = 1
    record   "[" key "\\0" ";" value_name "\\0" ";" i32 kind ";" i32 size ";" data "]"

Records follow the header back to back until EOF. Any deviation aborts the
whole parse with FormatError; a partial store is never returned.
"""

from __future__ import annotations

import io
import struct

from polfile.codec.values import decode_data, encode_data, encode_wstring
from polfile.errors import FormatError, ValidationError
from polfile.models.entry import PolicyEntry
from polfile.models.kinds import ValueKind
from polfile.policies.policy_store import PolicyStore

_LE = "<"

POL_MAGIC = 0x67655250
POL_VERSION = 1
HEADER_FMT = _LE + "II"
HEADER_SIZE = struct.calcsize(HEADER_FMT)  # = 8 bytes

_OPEN = "[".encode("utf-16-le")
_CLOSE = "]".encode("utf-16-le")
_SEP = ";".encode("utf-16-le")
_WNUL = b"\x00\x00"


# ----------------------------- header ---------------------------------------


def pack_header() -> bytes:
    return struct.pack(HEADER_FMT, POL_MAGIC, POL_VERSION)


def unpack_header(buf: bytes) -> None:
    """Validate the fixed header. Raises FormatError on a short buffer, bad magic or version."""
    if len(buf) < HEADER_SIZE:
        raise FormatError(f"Policy file too short: {len(buf)} bytes (need >= {HEADER_SIZE} for header)")
    magic, version = struct.unpack_from(HEADER_FMT, buf, 0)
    if magic != POL_MAGIC:
        raise FormatError(f"Bad magic {magic:#010x} (expected {POL_MAGIC:#010x})")
    if version != POL_VERSION:
        raise FormatError(f"Unsupported policy file version {version} (expected {POL_VERSION})")


# ----------------------------- records --------------------------------------


def pack_record(entry: PolicyEntry) -> bytes:
    data = encode_data(entry.kind, entry.data)
    buf = io.BytesIO()
    buf.write(_OPEN)
    buf.write(encode_wstring(entry.key))
    buf.write(_SEP)
    buf.write(encode_wstring(entry.value_name))
    buf.write(_SEP)
    buf.write(struct.pack(_LE + "i", entry.kind.value))
    buf.write(_SEP)
    buf.write(struct.pack(_LE + "i", len(data)))
    buf.write(_SEP)
    buf.write(data)
    buf.write(_CLOSE)
    return buf.getvalue()


def unpack_record(buf: bytes, offset: int) -> tuple[PolicyEntry, int]:
    """Parse one record starting at ``offset``. Returns (entry, next_offset)."""
    start = offset
    offset = _expect(buf, offset, _OPEN, "'['", start)
    key, offset = _read_wstring(buf, offset, start)
    offset = _expect(buf, offset, _SEP, "';' after key", start)
    value_name, offset = _read_wstring(buf, offset, start)
    offset = _expect(buf, offset, _SEP, "';' after value name", start)
    code, offset = _read_i32(buf, offset, "type", start)
    offset = _expect(buf, offset, _SEP, "';' after type", start)
    size, offset = _read_i32(buf, offset, "size", start)
    offset = _expect(buf, offset, _SEP, "';' after size", start)

    if size < 0:
        raise FormatError(f"record @{start}: negative data size {size}")
    end = offset + size
    if end > len(buf):
        raise FormatError(
            f"record @{start}: data size {size} exceeds remaining {len(buf) - offset} bytes"
        )
    raw = buf[offset:end]
    offset = _expect(buf, end, _CLOSE, "']'", start)

    try:
        kind = ValueKind(code)
    except ValueError:
        raise FormatError(f"record @{start}: unrecognized value type {code}") from None
    try:
        entry = PolicyEntry(key=key, value_name=value_name, kind=kind, data=decode_data(kind, raw))
    except (FormatError, ValidationError) as e:
        raise FormatError(f"record @{start}: {e}") from e
    return entry, offset


def _expect(buf: bytes, offset: int, token: bytes, what: str, start: int) -> int:
    end = offset + len(token)
    if buf[offset:end] != token:
        if end > len(buf):
            raise FormatError(f"record @{start}: truncated, expected {what}")
        raise FormatError(f"record @{start}: expected {what} at offset {offset}")
    return end


def _read_i32(buf: bytes, offset: int, what: str, start: int) -> tuple[int, int]:
    if offset + 4 > len(buf):
        raise FormatError(f"record @{start}: truncated {what} field")
    (value,) = struct.unpack_from(_LE + "i", buf, offset)
    return value, offset + 4


def _read_wstring(buf: bytes, offset: int, start: int) -> tuple[str, int]:
    """Read a NUL-terminated UTF-16LE string; returns (text, offset past the NUL)."""
    pos = offset
    while pos + 2 <= len(buf):
        if buf[pos:pos + 2] == _WNUL:
            text = bytes(buf[offset:pos]).decode("utf-16-le", "surrogatepass")
            return text, pos + 2
        pos += 2
    raise FormatError(f"record @{start}: unterminated string at offset {offset}")


# ----------------------------- stream ---------------------------------------


def parse_pol(data: bytes) -> PolicyStore:
    """Parse a complete policy file into a PolicyStore.

    Record order becomes store order. A repeated identity replaces the earlier
    record in place.
    """
    buf = bytes(data)
    unpack_header(buf)
    entries: list[PolicyEntry] = []
    off = HEADER_SIZE
    while off < len(buf):
        entry, off = unpack_record(buf, off)
        entries.append(entry)
    return PolicyStore(entries)


def serialize_pol(store: PolicyStore) -> bytes:
    """Serialize a PolicyStore: header followed by every entry in store order."""
    out = bytearray(pack_header())
    for entry in store.list_all():
        out.extend(pack_record(entry))
    return bytes(out)
