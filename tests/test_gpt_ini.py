"""Tests for gpt.ini reading and in-place version updates."""

import tempfile
from pathlib import Path

import pytest

from polfile.errors import FormatError
from polfile.gpt.gpt_ini import (
    DEFAULT_GPT_INI,
    ensure_gpt_ini,
    gpt_ini_path_for,
    read_gpt_version,
    scope_for_policy_path,
    update_gpt_ini_version,
)
from polfile.gpt.version import PolicyScope


def _write(tmpdir: str, data: bytes) -> Path:
    path = Path(tmpdir) / "gpt.ini"
    path.write_bytes(data)
    return path


# --- Update Tests ---


def test_only_version_line_changes():
    original = (
        b"; managed\r\n"
        b"[General]\r\n"
        b"displayName=Caf\xe9 Policy\r\n"
        b"Version=7\r\n"
        b"gPCMachineExtensionNames=[{35378EAC}]\r\n"
        b"\r\n"
        b"[Other]\n"
        b"Version=99\n"
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, original)
        assert update_gpt_ini_version(path, [PolicyScope.MACHINE]) == 8
        assert path.read_bytes() == original.replace(b"Version=7\r\n", b"Version=8\r\n")


def test_user_scope_update():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, b"[General]\r\nVersion=1\r\n")
        assert update_gpt_ini_version(path, ["User"]) == 65537
        assert path.read_bytes() == b"[General]\r\nVersion=65537\r\n"


def test_version_key_and_section_are_case_insensitive():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, b"[general]\nversion = 3\n")
        assert update_gpt_ini_version(path, [PolicyScope.MACHINE]) == 4
        assert path.read_bytes() == b"[general]\nVersion=4\n"


def test_missing_version_is_inserted_in_general():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, b"[General]\r\ndisplayName=X\r\n\r\n[Other]\r\nA=1\r\n")
        assert update_gpt_ini_version(path, [PolicyScope.MACHINE]) == 1
        assert path.read_bytes() == b"[General]\r\ndisplayName=X\r\nVersion=1\r\n\r\n[Other]\r\nA=1\r\n"


def test_missing_general_section_is_appended():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, b"[Other]\nA=1")
        assert update_gpt_ini_version(path, [PolicyScope.USER]) == 65536
        assert path.read_bytes() == b"[Other]\nA=1\n[General]\nVersion=65536\n"


def test_missing_file_raises():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(FileNotFoundError):
            update_gpt_ini_version(Path(tmpdir) / "gpt.ini", [PolicyScope.MACHINE])


@pytest.mark.parametrize("value", [b"abc", b"-1", b"4294967296", b""])
def test_malformed_version_raises_and_leaves_file(value):
    original = b"[General]\r\nVersion=" + value + b"\r\n"
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, original)
        with pytest.raises(FormatError):
            update_gpt_ini_version(path, [PolicyScope.MACHINE])
        assert path.read_bytes() == original


# --- Read Tests ---


def test_read_version():
    with tempfile.TemporaryDirectory() as tmpdir:
        assert read_gpt_version(_write(tmpdir, b"[General]\r\nVersion=65537\r\n")) == 65537
        assert read_gpt_version(_write(tmpdir, b"[General]\r\n")) == 0


def test_ensure_creates_minimal_file_once():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "gpo" / "gpt.ini"
        assert ensure_gpt_ini(path)
        assert path.read_bytes() == DEFAULT_GPT_INI
        assert not ensure_gpt_ini(path)


# --- Path Helper Tests ---


def test_gpt_ini_lives_above_scope_folder():
    assert gpt_ini_path_for(Path("/gpo/Machine/registry.pol")) == Path("/gpo/gpt.ini")
    assert gpt_ini_path_for("/gpo/User/registry.pol", "GPT.INI") == Path("/gpo/GPT.INI")


def test_scope_comes_from_parent_folder():
    assert scope_for_policy_path("/gpo/Machine/registry.pol") == PolicyScope.MACHINE
    assert scope_for_policy_path("/gpo/USER/registry.pol") == PolicyScope.USER
    assert scope_for_policy_path("/gpo/registry.pol") is None
