"""PolicyEntry: one (key, value name) to (kind, data) record."""

from __future__ import annotations

from dataclasses import dataclass

from polfile.codec.values import coerce_value
from polfile.errors import ValidationError
from polfile.models.kinds import ValueKind


@dataclass
class PolicyEntry:
    """A typed registry setting stored in a policy file.

    ``data`` is always the canonical value for ``kind``: ``__post_init__``
    runs the value codec so an entry can never disagree with its kind.
    An empty ``value_name`` denotes the key's default value.
    """

    key: str
    value_name: str
    kind: ValueKind
    data: str | bytes | int | list[str]

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ValidationError("Entry key must be a non-empty string")
        if self.value_name is None:
            self.value_name = ""
        if not isinstance(self.value_name, str):
            raise ValidationError("Entry value name must be a string")
        if "\x00" in self.key or "\x00" in self.value_name:
            raise ValidationError("Entry key and value name must not contain NUL characters")
        self.kind = ValueKind.parse(self.kind)
        self.data = coerce_value(self.kind, self.data)

    @property
    def identity(self) -> tuple[str, str]:
        return entry_identity(self.key, self.value_name)

    @property
    def path(self) -> str:
        """Display form ``key\\value_name``."""
        return f"{self.key}\\{self.value_name}"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value_name": self.value_name,
            "kind": self.kind.display_name,
            "data": list(self.data) if isinstance(self.data, list) else self.data,
        }


def entry_identity(key: str, value_name: str = "") -> tuple[str, str]:
    """Case-insensitive identity of an entry."""
    return (key.casefold(), (value_name or "").casefold())
