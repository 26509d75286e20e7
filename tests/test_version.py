"""Tests for the packed gpt.ini version counter."""

import pytest

from polfile.errors import ValidationError
from polfile.gpt.version import PolicyScope, decode_version, encode_version, increment_version


def test_machine_increment_from_zero():
    assert increment_version(0, [PolicyScope.MACHINE]) == 1


def test_user_increment_uses_high_word():
    assert increment_version(1, [PolicyScope.USER]) == 65537
    assert increment_version(0, ["user"]) == 65536


def test_machine_counter_wraps_without_carry():
    assert increment_version(0x0000FFFF, [PolicyScope.MACHINE]) == 0x00000000
    assert increment_version(0x0003FFFF, [PolicyScope.MACHINE]) == 0x00030000


def test_user_counter_wraps_without_touching_machine():
    assert increment_version(0xFFFF0005, [PolicyScope.USER]) == 0x00000005


def test_both_scopes_increment_together():
    assert increment_version(0x00020003, ["Machine", "User"]) == 0x00030004


def test_no_scopes_leaves_value_unchanged():
    assert increment_version(42, []) == 42


def test_duplicate_scopes_increment_once():
    assert increment_version(0, [PolicyScope.MACHINE, "machine"]) == 1


def test_decode_encode():
    assert decode_version(0x00020003) == (3, 2)
    assert encode_version(3, 2) == 0x00020003
    with pytest.raises(ValidationError):
        encode_version(0x10000, 0)


@pytest.mark.parametrize("raw", [-1, 2**32, "5", None, True])
def test_invalid_raw_version_is_rejected(raw):
    with pytest.raises(ValidationError):
        increment_version(raw, [PolicyScope.MACHINE])


def test_scope_parse():
    assert PolicyScope.parse("MACHINE") == PolicyScope.MACHINE
    assert PolicyScope.parse(PolicyScope.USER) == PolicyScope.USER
    with pytest.raises(ValidationError):
        PolicyScope.parse("Computer")
