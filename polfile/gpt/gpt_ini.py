"""gpt.ini companion file.

A Group Policy object keeps its policy files under ``Machine/`` and ``User/``
folders next to a ``gpt.ini`` whose ``[General]`` section carries the packed
``Version`` counter. Only that one line is ever rewritten; every other byte of
the file (sections, comments, line endings) is preserved.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from polfile.errors import FormatError
from polfile.gpt.version import U32_MAX, PolicyScope, increment_version
from polfile.utils.file_io import atomic_write

logger = logging.getLogger(__name__)

GPT_INI_NAME = "gpt.ini"
GENERAL_SECTION = "General"
DEFAULT_GPT_INI = b"[General]\r\nVersion=0\r\n"

# latin-1 maps every byte to one code point, so decode/encode is lossless.
_ENCODING = "latin-1"
_SECTION_RE = re.compile(r"^\s*\[([^\]]*)\]\s*$")
_VERSION_RE = re.compile(r"^\s*Version\s*=\s*(.*?)\s*$", re.IGNORECASE)
_DIGITS_RE = re.compile(r"[0-9]+")


def gpt_ini_path_for(pol_path: str | Path, name: str = GPT_INI_NAME) -> Path:
    """Path of the gpt.ini that governs ``<gpo>/<Machine|User>/registry.pol``."""
    return Path(pol_path).parent.parent / name


def scope_for_policy_path(pol_path: str | Path) -> Optional[PolicyScope]:
    """Scope implied by the folder holding the policy file, or None."""
    folder = Path(pol_path).parent.name.lower()
    for scope in PolicyScope:
        if folder == scope.value.lower():
            return scope
    return None


@dataclass
class _VersionLocation:
    general_at: Optional[int] = None  # index of the [General] header line
    version_at: Optional[int] = None  # index of the Version= line
    insert_at: Optional[int] = None  # where a missing Version= line goes
    raw: Optional[int] = None


def _split_lines(text: str) -> list[str]:
    # Only "\n" ends a line; str.splitlines would also split on \x85 and friends.
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _newline_of(lines: list[str]) -> str:
    for line in lines:
        if line.endswith("\r\n"):
            return "\r\n"
        if line.endswith("\n"):
            return "\n"
    return "\r\n"


def _locate(lines: list[str], path: Path) -> _VersionLocation:
    loc = _VersionLocation()
    section = None
    for i, line in enumerate(lines):
        body = _strip_eol(line)
        header = _SECTION_RE.match(body)
        if header:
            section = header.group(1).strip()
            if section.lower() == GENERAL_SECTION.lower() and loc.general_at is None:
                loc.general_at = i
                loc.insert_at = i + 1
            continue
        if section is None or section.lower() != GENERAL_SECTION.lower():
            continue
        if body.strip():
            loc.insert_at = i + 1
        match = _VERSION_RE.match(body)
        if match and loc.version_at is None:
            loc.version_at = i
            loc.raw = _parse_version(match.group(1), path)
    return loc


def _parse_version(text: str, path: Path) -> int:
    if not _DIGITS_RE.fullmatch(text) or int(text) > U32_MAX:
        raise FormatError(f"{path}: Version value {text!r} is not an unsigned 32-bit decimal")
    return int(text)


def read_gpt_version(path: str | Path) -> int:
    """Return the raw ``[General] Version`` value (0 if the field is absent)."""
    path = Path(path)
    lines = _split_lines(path.read_bytes().decode(_ENCODING))
    loc = _locate(lines, path)
    return loc.raw if loc.raw is not None else 0


def update_gpt_ini_version(path: str | Path, scopes: Iterable[PolicyScope | str]) -> int:
    """Increment the selected counters in an existing gpt.ini. Returns the new raw value.

    Raises FileNotFoundError if the file does not exist and FormatError if the
    current Version value is not a u32 decimal.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"gpt.ini not found: {path}")

    scopes = list(scopes)
    lines = _split_lines(path.read_bytes().decode(_ENCODING))
    loc = _locate(lines, path)
    old = loc.raw if loc.raw is not None else 0
    new = increment_version(old, scopes)
    newline = _newline_of(lines)

    if loc.version_at is not None:
        eol = lines[loc.version_at][len(_strip_eol(lines[loc.version_at])):]
        lines[loc.version_at] = f"Version={new}{eol}"
    elif loc.general_at is not None:
        _ensure_eol(lines, loc.insert_at - 1, newline)
        lines.insert(loc.insert_at, f"Version={new}{newline}")
    else:
        if lines:
            _ensure_eol(lines, len(lines) - 1, newline)
        lines.append(f"[{GENERAL_SECTION}]{newline}")
        lines.append(f"Version={new}{newline}")

    atomic_write(path, "".join(lines).encode(_ENCODING))
    logger.info("Updated %s version %d -> %d", path, old, new)
    return new


def ensure_gpt_ini(path: str | Path) -> bool:
    """Create a minimal gpt.ini if none exists. Returns True if one was created."""
    path = Path(path)
    if path.exists():
        return False
    atomic_write(path, DEFAULT_GPT_INI)
    logger.info("Created %s", path)
    return True


def _ensure_eol(lines: list[str], index: int, newline: str) -> None:
    if lines[index] == _strip_eol(lines[index]):
        lines[index] += newline
