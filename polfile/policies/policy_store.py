"""In-memory store of policy entries.

Keeps entries in file order with a case-insensitive identity index. The store
is a plain value: it knows nothing about files, see ``polfile.codec`` for the
byte format and ``polfile.editor`` for load/save.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from polfile.codec.values import values_equal
from polfile.models.entry import PolicyEntry, entry_identity


class PolicyStore:
    """Ordered, identity-indexed collection of PolicyEntry."""

    def __init__(self, entries: Optional[Iterable[PolicyEntry]] = None) -> None:
        self._entries: list[PolicyEntry] = []
        self._index: dict[tuple[str, str], int] = {}
        for entry in entries or ():
            self.upsert(entry)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, key: str, value_name: str = "") -> Optional[PolicyEntry]:
        """Look up an entry by key and value name. Returns None if absent."""
        pos = self._index.get(entry_identity(key, value_name))
        return None if pos is None else self._entries[pos]

    def list_all(self) -> list[PolicyEntry]:
        """Return all entries in store order."""
        return list(self._entries)

    def __iter__(self) -> Iterator[PolicyEntry]:
        return iter(self.list_all())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, PolicyEntry):
            return item.identity in self._index
        if isinstance(item, tuple) and len(item) == 2:
            return entry_identity(*item) in self._index
        return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PolicyStore):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"PolicyStore({len(self._entries)} entries)"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def upsert(self, entry: PolicyEntry) -> bool:
        """Insert or replace an entry. Returns True if the store changed.

        An existing identity keeps its position and its original key and
        value-name spelling; only kind and data are replaced.
        """
        identity = entry.identity
        pos = self._index.get(identity)
        if pos is None:
            self._index[identity] = len(self._entries)
            self._entries.append(entry)
            return True

        current = self._entries[pos]
        if current.kind == entry.kind and values_equal(entry.kind, current.data, entry.data):
            return False

        self._entries[pos] = PolicyEntry(
            key=current.key,
            value_name=current.value_name,
            kind=entry.kind,
            data=entry.data,
        )
        return True

    def remove(self, key: str, value_name: str = "") -> bool:
        """Remove an entry. Returns True if something was removed."""
        pos = self._index.get(entry_identity(key, value_name))
        if pos is None:
            return False
        del self._entries[pos]
        self._reindex()
        return True

    def _reindex(self) -> None:
        self._index = {e.identity: i for i, e in enumerate(self._entries)}
