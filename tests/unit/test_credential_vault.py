"""Tests for credential encryption

Validates:
1. Round trip under the configured key
2. Tampered or foreign ciphertext raises CredentialDecryptionError
3. Missing or malformed key raises ConfigurationError
"""

from __future__ import annotations

import pytest

from worklog.errors import ConfigurationError, CredentialDecryptionError
from worklog.storage.credential_vault import CredentialVault


def test_round_trip(encryption_key):
    vault = CredentialVault()

    ciphertext = vault.encrypt("ghp_secret")

    assert ciphertext != "ghp_secret"
    assert vault.decrypt(ciphertext) == "ghp_secret"


def test_tampered_ciphertext_raises(encryption_key):
    vault = CredentialVault()
    ciphertext = vault.encrypt("ghp_secret")
    tampered = ciphertext[:-4] + ("AAAA" if not ciphertext.endswith("AAAA") else "BBBB")

    with pytest.raises(CredentialDecryptionError) as exc_info:
        vault.decrypt(tampered)

    assert exc_info.value.user_message


def test_foreign_key_raises(encryption_key):
    ciphertext = CredentialVault().encrypt("ghp_secret")
    other = CredentialVault(CredentialVault.generate_key())

    with pytest.raises(CredentialDecryptionError):
        other.decrypt(ciphertext)


def test_garbage_raises(encryption_key):
    with pytest.raises(CredentialDecryptionError):
        CredentialVault().decrypt("not-a-token")


def test_missing_key_raises(monkeypatch):
    monkeypatch.delenv("WORKLOG_ENCRYPTION_KEY", raising=False)

    with pytest.raises(ConfigurationError, match="WORKLOG_ENCRYPTION_KEY"):
        CredentialVault()


def test_malformed_key_raises():
    with pytest.raises(ConfigurationError, match="Invalid encryption key"):
        CredentialVault("too-short")
