"""Facade operations over policy files on disk.

Each call performs one load, at most one in-memory mutation and at most one
save. A mutation that leaves the store unchanged writes nothing and does not
touch gpt.ini.

The policy write and the gpt.ini update are two separate steps: if the
counter update fails, the policy file keeps the change and the error
propagates to the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from polfile.codec.pol_format import parse_pol, serialize_pol
from polfile.config import EditorConfig
from polfile.gpt.gpt_ini import (
    ensure_gpt_ini,
    gpt_ini_path_for,
    scope_for_policy_path,
    update_gpt_ini_version,
)
from polfile.models.entry import PolicyEntry
from polfile.models.kinds import ValueKind
from polfile.policies.policy_store import PolicyStore
from polfile.utils.file_io import atomic_write, read_bytes_or_none

logger = logging.getLogger(__name__)

__all__ = [
    "load_policy_file",
    "save_policy_file",
    "get_entry",
    "get_all_entries",
    "set_entry",
    "remove_entry",
    "update_gpt_ini_version",
    "bump_gpt_ini_for",
    "bump_after_change",
]


def load_policy_file(path: str | Path) -> PolicyStore:
    """Parse a policy file. A file that does not exist yields an empty store."""
    data = read_bytes_or_none(path)
    if data is None:
        logger.debug("%s does not exist, starting from an empty store", path)
        return PolicyStore()
    return parse_pol(data)


def save_policy_file(path: str | Path, store: PolicyStore) -> None:
    atomic_write(path, serialize_pol(store))


def get_entry(path: str | Path, key: str, value_name: str = "") -> Optional[PolicyEntry]:
    """Return the entry for (key, value_name), or None."""
    return load_policy_file(path).get(key, value_name)


def get_all_entries(path: str | Path) -> list[PolicyEntry]:
    """Return every entry in file order."""
    return load_policy_file(path).list_all()


def set_entry(
    path: str | Path,
    key: str,
    value_name: str,
    data: object,
    kind: ValueKind | str = ValueKind.STRING,
    update_gpt_ini: Optional[bool] = None,
    config: Optional[EditorConfig] = None,
) -> bool:
    """Create or update an entry. Returns True if the file was rewritten.

    Kind and data are validated before anything is read or written; a
    ValidationError leaves the file untouched.
    """
    config = config or EditorConfig.from_env()
    kind = ValueKind.parse(kind)
    entry = PolicyEntry(key=key, value_name=value_name, kind=kind, data=data)

    store = load_policy_file(path)
    if not store.upsert(entry):
        logger.debug("%s: %s already set, nothing to do", path, entry.path)
        return False

    save_policy_file(path, store)
    logger.info("%s: set %s (%s)", path, entry.path, kind.display_name)
    bump_after_change(path, update_gpt_ini, config)
    return True


def remove_entry(
    path: str | Path,
    key: str,
    value_name: str = "",
    update_gpt_ini: Optional[bool] = None,
    config: Optional[EditorConfig] = None,
) -> bool:
    """Delete an entry. Returns True if the file was rewritten."""
    config = config or EditorConfig.from_env()
    store = load_policy_file(path)
    if not store.remove(key, value_name):
        logger.debug("%s: %s\\%s not present, nothing to do", path, key, value_name)
        return False

    save_policy_file(path, store)
    logger.info("%s: removed %s\\%s", path, key, value_name)
    bump_after_change(path, update_gpt_ini, config)
    return True


def bump_gpt_ini_for(pol_path: str | Path, config: Optional[EditorConfig] = None) -> Optional[int]:
    """Increment the gpt.ini counter matching a policy file's scope.

    Returns the new raw version, or None when the path has no Machine/User
    scope or the gpt.ini is missing and may not be created.
    """
    config = config or EditorConfig.from_env()
    scope = scope_for_policy_path(pol_path)
    if scope is None:
        logger.debug("%s is not under a Machine or User folder, gpt.ini left alone", pol_path)
        return None

    gpt_ini = gpt_ini_path_for(pol_path, config.gpt_ini_name)
    if not gpt_ini.exists():
        if not config.create_gpt_ini:
            logger.warning("%s not found, version not updated", gpt_ini)
            return None
        ensure_gpt_ini(gpt_ini)
    return update_gpt_ini_version(gpt_ini, [scope])


def bump_after_change(path: str | Path, update_gpt_ini: Optional[bool], config: EditorConfig) -> None:
    """Bump gpt.ini after a policy write unless disabled per call or by config."""
    enabled = config.update_gpt_ini if update_gpt_ini is None else update_gpt_ini
    if enabled:
        bump_gpt_ini_for(path, config)
