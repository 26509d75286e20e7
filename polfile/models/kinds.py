"""Registry value kinds that a policy file can hold."""

from __future__ import annotations

from enum import Enum

from polfile.errors import ValidationError


class ValueKind(Enum):
    """Closed set of value encodings. Member values are the on-disk type codes."""

    STRING = 1  # REG_SZ
    EXPAND_STRING = 2  # REG_EXPAND_SZ
    BINARY = 3  # REG_BINARY
    DWORD = 4  # REG_DWORD (little-endian)
    MULTI_STRING = 7  # REG_MULTI_SZ
    QWORD = 11  # REG_QWORD

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: object) -> ValueKind:
        """Resolve a member, type code or name to a ValueKind.

        Names are matched case-insensitively and accept the member name, the
        registry spelling (``REG_DWORD``) and the usual display names
        (``DWord``, ``ExpandString``, ``ExpandableString``, ...).
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValidationError(f"Unsupported value kind code: {value}") from None
        if isinstance(value, str):
            kind = _ALIASES.get(value.strip().replace("_", "").lower())
            if kind is not None:
                return kind
        raise ValidationError(
            f"Invalid value kind {value!r}. Must be one of: "
            f"{', '.join(k.display_name for k in cls)}"
        )


_DISPLAY_NAMES = {
    ValueKind.STRING: "String",
    ValueKind.EXPAND_STRING: "ExpandString",
    ValueKind.BINARY: "Binary",
    ValueKind.DWORD: "DWord",
    ValueKind.MULTI_STRING: "MultiString",
    ValueKind.QWORD: "QWord",
}

_ALIASES: dict[str, ValueKind] = {
    "string": ValueKind.STRING,
    "sz": ValueKind.STRING,
    "regsz": ValueKind.STRING,
    "expandstring": ValueKind.EXPAND_STRING,
    "expandablestring": ValueKind.EXPAND_STRING,
    "expandsz": ValueKind.EXPAND_STRING,
    "regexpandsz": ValueKind.EXPAND_STRING,
    "binary": ValueKind.BINARY,
    "regbinary": ValueKind.BINARY,
    "dword": ValueKind.DWORD,
    "regdword": ValueKind.DWORD,
    "multistring": ValueKind.MULTI_STRING,
    "multisz": ValueKind.MULTI_STRING,
    "regmultisz": ValueKind.MULTI_STRING,
    "qword": ValueKind.QWORD,
    "regqword": ValueKind.QWORD,
}
