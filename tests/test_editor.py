"""Tests for the file-level facade: get/set/remove plus gpt.ini bookkeeping."""

import tempfile
from pathlib import Path
from unittest import mock

import pytest

from polfile import editor
from polfile.codec.pol_format import serialize_pol
from polfile.config import EditorConfig
from polfile.editor import (
    bump_gpt_ini_for,
    get_all_entries,
    get_entry,
    load_policy_file,
    remove_entry,
    set_entry,
)
from polfile.errors import FormatError, ValidationError
from polfile.gpt.gpt_ini import read_gpt_version
from polfile.models.kinds import ValueKind
from polfile.policies.policy_store import PolicyStore

KEY = "Software\\Policies\\Contoso"
CONFIG = EditorConfig()


def _gpo(tmpdir: str, scope: str = "Machine", gpt_ini: bytes | None = b"[General]\r\nVersion=0\r\n"):
    """Create ``<tmp>/<scope>/`` and optionally ``<tmp>/gpt.ini``. Returns (pol, gpt_ini)."""
    root = Path(tmpdir)
    (root / scope).mkdir()
    ini = root / "gpt.ini"
    if gpt_ini is not None:
        ini.write_bytes(gpt_ini)
    return root / scope / "registry.pol", ini


# --- Read Tests ---


def test_missing_file_reads_as_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, _ = _gpo(tmpdir)
        assert get_entry(pol, KEY, "A") is None
        assert get_all_entries(pol) == []
        assert not pol.exists()


def test_malformed_file_raises_format_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, _ = _gpo(tmpdir)
        pol.write_bytes(b"NOPE")
        with pytest.raises(FormatError):
            get_entry(pol, KEY, "A")
        with pytest.raises(FormatError):
            set_entry(pol, KEY, "A", 1, ValueKind.DWORD, config=CONFIG)
        assert pol.read_bytes() == b"NOPE"


# --- Set Tests ---


def test_set_creates_file_and_bumps_machine_counter():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        assert set_entry(pol, KEY, "Enabled", "0x1A", "DWord", config=CONFIG)
        entry = get_entry(pol, KEY.upper(), "enabled")
        assert entry.kind == ValueKind.DWORD
        assert entry.data == 26
        assert read_gpt_version(ini) == 1


def test_set_same_value_is_a_noop():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        set_entry(pol, KEY, "Enabled", 26, ValueKind.DWORD, config=CONFIG)
        before = pol.read_bytes()
        mtime = pol.stat().st_mtime_ns

        assert not set_entry(pol, KEY, "Enabled", "0x1A", ValueKind.DWORD, config=CONFIG)
        assert pol.read_bytes() == before
        assert pol.stat().st_mtime_ns == mtime
        assert read_gpt_version(ini) == 1


def test_multi_string_reorder_is_written():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        set_entry(pol, KEY, "List", ["a", "b"], ValueKind.MULTI_STRING, config=CONFIG)
        assert set_entry(pol, KEY, "List", ["b", "a"], ValueKind.MULTI_STRING, config=CONFIG)
        assert get_entry(pol, KEY, "List").data == ["b", "a"]
        assert read_gpt_version(ini) == 2


def test_user_scope_bumps_high_word():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir, scope="User")
        set_entry(pol, KEY, "Name", "x", config=CONFIG)
        assert read_gpt_version(ini) == 65536


def test_update_keeps_position_and_spelling():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, _ = _gpo(tmpdir)
        for name in ("A", "B", "C"):
            set_entry(pol, KEY, name, name, config=CONFIG)
        set_entry(pol, KEY.lower(), "b", "changed", ValueKind.EXPAND_STRING, config=CONFIG)
        entries = get_all_entries(pol)
        assert [(e.key, e.value_name) for e in entries] == [(KEY, "A"), (KEY, "B"), (KEY, "C")]
        assert entries[1].data == "changed"


def test_invalid_data_is_rejected_before_any_io():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        with mock.patch.object(editor, "load_policy_file") as load:
            with pytest.raises(ValidationError):
                set_entry(pol, KEY, "Enabled", "not a number", ValueKind.DWORD, config=CONFIG)
            with pytest.raises(ValidationError):
                set_entry(pol, KEY, "Enabled", 1, "Unknown", config=CONFIG)
            load.assert_not_called()
        assert not pol.exists()
        assert read_gpt_version(ini) == 0


def test_identities_stay_unique_on_disk():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, _ = _gpo(tmpdir)
        set_entry(pol, KEY, "A", "1", config=CONFIG)
        set_entry(pol, KEY.upper(), "a", "2", config=CONFIG)
        set_entry(pol, KEY, "", "default", config=CONFIG)
        entries = get_all_entries(pol)
        assert len(entries) == 2
        assert len({e.identity for e in entries}) == 2


# --- Remove Tests ---


def test_remove_present_entry():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        set_entry(pol, KEY, "A", "x", config=CONFIG)
        set_entry(pol, KEY, "B", "y", config=CONFIG)
        assert remove_entry(pol, KEY.lower(), "a", config=CONFIG)
        assert [e.value_name for e in get_all_entries(pol)] == ["B"]
        assert read_gpt_version(ini) == 3


def test_remove_absent_entry_is_a_noop():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        assert not remove_entry(pol, KEY, "A", config=CONFIG)
        assert not pol.exists()

        set_entry(pol, KEY, "B", "y", config=CONFIG)
        before = pol.read_bytes()
        assert not remove_entry(pol, KEY, "A", config=CONFIG)
        assert pol.read_bytes() == before
        assert read_gpt_version(ini) == 1


# --- gpt.ini Bookkeeping Tests ---


def test_gpt_ini_update_can_be_disabled_per_call_and_by_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir)
        set_entry(pol, KEY, "A", "x", update_gpt_ini=False, config=CONFIG)
        set_entry(pol, KEY, "B", "x", config=EditorConfig(update_gpt_ini=False))
        assert read_gpt_version(ini) == 0
        set_entry(pol, KEY, "C", "x", update_gpt_ini=True, config=EditorConfig(update_gpt_ini=False))
        assert read_gpt_version(ini) == 1


def test_path_without_scope_leaves_gpt_ini_alone():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol = Path(tmpdir) / "registry.pol"
        assert set_entry(pol, KEY, "A", "x", config=CONFIG)
        assert bump_gpt_ini_for(pol, CONFIG) is None
        assert list(Path(tmpdir).iterdir()) == [pol]


def test_missing_gpt_ini_is_created():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir, gpt_ini=None)
        set_entry(pol, KEY, "A", "x", config=CONFIG)
        assert read_gpt_version(ini) == 1


def test_missing_gpt_ini_is_skipped_when_creation_disabled():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir, gpt_ini=None)
        assert set_entry(pol, KEY, "A", "x", config=EditorConfig(create_gpt_ini=False))
        assert not ini.exists()
        assert get_entry(pol, KEY, "A").data == "x"


def test_policy_change_survives_counter_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, ini = _gpo(tmpdir, gpt_ini=b"[General]\r\nVersion=bogus\r\n")
        with pytest.raises(FormatError):
            set_entry(pol, KEY, "A", "x", config=CONFIG)
        assert get_entry(pol, KEY, "A").data == "x"
        assert ini.read_bytes() == b"[General]\r\nVersion=bogus\r\n"


def test_saved_bytes_are_canonical():
    with tempfile.TemporaryDirectory() as tmpdir:
        pol, _ = _gpo(tmpdir)
        set_entry(pol, KEY, "A", [1, 2], ValueKind.BINARY, config=CONFIG)
        set_entry(pol, KEY, "B", 7, ValueKind.QWORD, config=CONFIG)
        assert pol.read_bytes() == serialize_pol(load_policy_file(pol))
        assert load_policy_file(pol) == PolicyStore(get_all_entries(pol))
