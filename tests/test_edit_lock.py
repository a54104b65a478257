"""
Edit Lock Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from src.edit_lock import PASSWORD_ENV, check_passphrase, edit_lock_enabled


def test_open_when_unset(monkeypatch):
    monkeypatch.delenv(PASSWORD_ENV, raising=False)
    assert not edit_lock_enabled()
    assert check_passphrase("")
    assert check_passphrase(None)


def test_empty_value_counts_as_unset(monkeypatch):
    monkeypatch.setenv(PASSWORD_ENV, "")
    assert not edit_lock_enabled()


def test_configured_passphrase(monkeypatch):
    monkeypatch.setenv(PASSWORD_ENV, "plantão-seguro")
    assert edit_lock_enabled()
    assert check_passphrase("plantão-seguro")
    assert not check_passphrase("plantao-seguro")
    assert not check_passphrase("")
    assert not check_passphrase(None)
