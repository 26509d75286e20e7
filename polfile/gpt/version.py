"""Packed gpt.ini version counter.

The ``Version`` field of gpt.ini is a u32 holding two independent 16-bit
counters: the low word counts Machine policy changes, the high word counts
User policy changes.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from polfile.errors import ValidationError

U16_MASK = 0xFFFF
U32_MAX = 0xFFFFFFFF


class PolicyScope(Enum):
    """Which half of the counter a policy file belongs to."""

    MACHINE = "Machine"
    USER = "User"

    @classmethod
    def parse(cls, value: object) -> PolicyScope:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for scope in cls:
                if value.strip().lower() == scope.value.lower():
                    return scope
        raise ValidationError(f"Invalid policy scope {value!r}. Must be 'Machine' or 'User'")


def decode_version(raw: int) -> tuple[int, int]:
    """Split a raw version into (machine, user)."""
    raw = _check_u32(raw)
    return raw & U16_MASK, (raw >> 16) & U16_MASK


def encode_version(machine: int, user: int) -> int:
    for name, counter in (("machine", machine), ("user", user)):
        if not isinstance(counter, int) or not 0 <= counter <= U16_MASK:
            raise ValidationError(f"{name} counter must be in 0..{U16_MASK}, got {counter!r}")
    return (user << 16) | machine


def increment_version(raw: int, scopes: Iterable[PolicyScope | str]) -> int:
    """Bump the selected counters by one, wrapping at 2**16 without carry."""
    selected = {PolicyScope.parse(s) for s in scopes}
    machine, user = decode_version(raw)
    if PolicyScope.MACHINE in selected:
        machine = (machine + 1) & U16_MASK
    if PolicyScope.USER in selected:
        user = (user + 1) & U16_MASK
    return encode_version(machine, user)


def _check_u32(raw: int) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or not 0 <= raw <= U32_MAX:
        raise ValidationError(f"Version must be an unsigned 32-bit integer, got {raw!r}")
    return raw
