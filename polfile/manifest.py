"""Desired-state manifests: export a policy file to YAML and apply YAML back.

A manifest lists entries that must be present (with kind and data) or absent.
Applying one is a single load, mutate and save cycle with a single gpt.ini
bump, and nothing is written when every entry is already in its desired state.

Example::

    policy: machine-baseline
    entries:
      - key: Software\\Policies\\Example
        value_name: Enabled
        kind: DWord
        data: 1
      - key: Software\\Policies\\Example
        value_name: Obsolete
        state: absent
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

from polfile.config import EditorConfig
from polfile.editor import bump_after_change, load_policy_file, save_policy_file
from polfile.errors import ValidationError
from polfile.models.entry import PolicyEntry, entry_identity
from polfile.models.kinds import ValueKind
from polfile.policies.policy_store import PolicyStore

logger = logging.getLogger(__name__)


class EntryState(Enum):
    """Desired state of a manifest entry."""

    PRESENT = "present"
    ABSENT = "absent"


@dataclass
class EntrySpec:
    """One line of a manifest."""

    key: str
    value_name: str = ""
    kind: Optional[ValueKind] = None
    data: object = None
    state: EntryState = EntryState.PRESENT

    def to_entry(self) -> PolicyEntry:
        if self.kind is None:
            raise ValidationError(f"{self.key}\\{self.value_name}: 'kind' is required for present entries")
        return PolicyEntry(key=self.key, value_name=self.value_name, kind=self.kind, data=self.data)


@dataclass
class Manifest:
    """A named list of desired entries."""

    name: str = ""
    entries: list[EntrySpec] = field(default_factory=list)


@dataclass
class ApplyResult:
    """What applying a manifest did, as ``key\\value_name`` paths."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def summary(self) -> str:
        return (
            f"{len(self.added)} added, {len(self.updated)} updated, "
            f"{len(self.removed)} removed, {len(self.unchanged)} unchanged"
        )


def parse_manifest(data: dict) -> Manifest:
    """Build a Manifest from a parsed YAML mapping, validating every entry."""
    if not isinstance(data, dict):
        raise ValidationError("Manifest must be a mapping with an 'entries' list")
    raw_entries = data.get("entries") or []
    if not isinstance(raw_entries, list):
        raise ValidationError("Manifest 'entries' must be a list")

    specs = []
    for i, item in enumerate(raw_entries):
        if not isinstance(item, dict):
            raise ValidationError(f"Manifest entry {i + 1} must be a mapping")
        if not item.get("key"):
            raise ValidationError(f"Manifest entry {i + 1} missing 'key'")
        try:
            state = EntryState(str(item.get("state", "present")).lower())
        except ValueError:
            raise ValidationError(
                f"Manifest entry {i + 1} invalid state {item.get('state')!r}. Must be 'present' or 'absent'"
            ) from None

        spec = EntrySpec(
            key=str(item["key"]),
            value_name=str(item.get("value_name") or ""),
            kind=ValueKind.parse(item["kind"]) if item.get("kind") is not None else None,
            data=item.get("data"),
            state=state,
        )
        if state == EntryState.PRESENT:
            try:
                spec.to_entry()
            except ValidationError as e:
                raise ValidationError(f"Manifest entry {i + 1}: {e}") from e
        specs.append(spec)

    return Manifest(name=str(data.get("policy") or ""), entries=specs)


def load_manifest(path: str | Path) -> Manifest:
    """Load a manifest from a YAML file."""
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    return parse_manifest(data or {})


def export_manifest(store: PolicyStore, name: str = "") -> str:
    """Render every entry of a store as manifest YAML (binary data as !!binary)."""
    doc = {
        "policy": name,
        "entries": [entry.to_dict() for entry in store.list_all()],
    }
    return yaml.safe_dump(doc, sort_keys=False, allow_unicode=True)


def apply_to_store(store: PolicyStore, manifest: Manifest) -> ApplyResult:
    """Apply a manifest to an in-memory store.

    Each identity is reported once, from its entry before and after the whole
    manifest ran. A later line that undoes an earlier one nets out as unchanged.
    """
    before: dict[tuple[str, str], tuple[EntrySpec, Optional[PolicyEntry]]] = {}
    for spec in manifest.entries:
        identity = entry_identity(spec.key, spec.value_name)
        if identity not in before:
            before[identity] = (spec, store.get(spec.key, spec.value_name))
        if spec.state == EntryState.ABSENT:
            store.remove(spec.key, spec.value_name)
        else:
            store.upsert(spec.to_entry())

    result = ApplyResult()
    for spec, old in before.values():
        path = f"{spec.key}\\{spec.value_name}"
        new = store.get(spec.key, spec.value_name)
        if old == new:
            result.unchanged.append(path)
        elif old is None:
            result.added.append(path)
        elif new is None:
            result.removed.append(path)
        else:
            result.updated.append(path)
    return result


def apply_manifest(
    path: str | Path,
    manifest: Manifest,
    update_gpt_ini: Optional[bool] = None,
    config: Optional[EditorConfig] = None,
) -> ApplyResult:
    """Apply a manifest to a policy file in one load/save cycle."""
    config = config or EditorConfig.from_env()
    store = load_policy_file(path)
    result = apply_to_store(store, manifest)
    if not result.changed:
        logger.debug("%s: manifest '%s' already applied", path, manifest.name)
        return result

    save_policy_file(path, store)
    logger.info("%s: applied manifest '%s' (%s)", path, manifest.name, result.summary())
    bump_after_change(path, update_gpt_ini, config)
    return result
