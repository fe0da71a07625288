"""Credential vault and activity source repository

Stores one access credential per (organization, user, source type), encrypted
at rest.

SECURITY:
- Credentials encrypted with Fernet (symmetric, authenticated encryption)
- Encryption key must be set via WORKLOG_ENCRYPTION_KEY environment variable
- Tampered or foreign ciphertext raises CredentialDecryptionError so callers can
  prompt for re-authentication instead of failing generically
"""

from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from worklog.activity.types import Owner, SourceType
from worklog.config import ENCRYPTION_KEY_ENV
from worklog.errors import ConfigurationError, CredentialDecryptionError
from worklog.infrastructure.database import retry_on_db_lock
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter
from worklog.storage import BaseRepository

logger = get_logger(__name__)


class CredentialVault:
    """Symmetric encrypt/decrypt of stored access credentials."""

    def __init__(self, key: str | bytes | None = None):
        self._cipher = self._get_cipher(key)

    @staticmethod
    def _get_cipher(key: str | bytes | None) -> Fernet:
        """
        Build the Fernet cipher

        Raises:
            ConfigurationError: If no key is configured or the key is malformed
        """
        encryption_key = key if key is not None else os.getenv(ENCRYPTION_KEY_ENV)

        if not encryption_key:
            raise ConfigurationError(
                f"{ENCRYPTION_KEY_ENV} environment variable must be set. "
                "Generate one with: python -c "
                "'from cryptography.fernet import Fernet; "
                "print(Fernet.generate_key().decode())'"
            )

        if isinstance(encryption_key, str):
            encryption_key = encryption_key.encode()

        try:
            return Fernet(encryption_key)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid encryption key format: {e}") from e

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt(self, plaintext: str) -> str:
        return self._cipher.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored credential

        Raises:
            CredentialDecryptionError: If the ciphertext was tampered with or
                encrypted under a different key
        """
        try:
            return self._cipher.decrypt(ciphertext.encode()).decode()
        except (InvalidToken, ValueError, TypeError) as e:
            counter("credentials.decrypt_failed")
            logger.warning("Failed to decrypt stored credential")
            raise CredentialDecryptionError("Decryption failed: credential is invalid") from e


@dataclass
class ActivitySource:
    """A connected activity source (credential still encrypted)."""

    owner: Owner
    source_type: SourceType
    credentials: str
    config: dict[str, Any] | None
    is_active: bool


class ActivitySourceRepository(BaseRepository):
    """
    Repository for connected activity sources.

    Exactly one row per (owner, source_type); saving again replaces the credential.
    """

    def __init__(self, vault: CredentialVault | None = None):
        super().__init__("activity_source")
        self._vault = vault

    @property
    def vault(self) -> CredentialVault:
        if self._vault is None:
            self._vault = CredentialVault()
        return self._vault

    @retry_on_db_lock()
    def save(
        self,
        owner: Owner,
        source_type: SourceType,
        credential: str,
        config: dict[str, Any] | None = None,
    ) -> None:
        """
        Encrypt and upsert a credential.

        Side Effects:
            - Inserts or updates the activity_source row for (owner, source_type)
        """
        encrypted = self.vault.encrypt(credential)
        config_json = json.dumps(config) if config is not None else None

        self.execute(
            """
            INSERT INTO activity_source (
                id, organization_id, user_id, source_type, credentials, config, is_active
            ) VALUES (?, ?, ?, ?, ?, ?, 1)
            ON CONFLICT(organization_id, user_id, source_type)
            DO UPDATE SET
                credentials = excluded.credentials,
                config = excluded.config,
                is_active = 1,
                updated_at = CURRENT_TIMESTAMP
            """,
            (
                str(uuid.uuid4()),
                owner.organization_id,
                owner.user_id,
                source_type.value,
                encrypted,
                config_json,
            ),
        )
        logger.info("Stored %s credential for %s", source_type.value, owner)

    def get(self, owner: Owner, source_type: SourceType) -> ActivitySource | None:
        row = self.query_one(
            """
            SELECT organization_id, user_id, source_type, credentials, config, is_active
            FROM activity_source
            WHERE organization_id = ? AND user_id = ? AND source_type = ?
            """,
            (owner.organization_id, owner.user_id, source_type.value),
        )
        return self._from_row(row) if row else None

    def load_credential(self, owner: Owner, source_type: SourceType) -> str | None:
        """
        Decrypted credential for an owner, or None when nothing is connected.

        Raises:
            CredentialDecryptionError: If the stored credential can't be decrypted
        """
        source = self.get(owner, source_type)
        if source is None:
            return None
        return self.vault.decrypt(source.credentials)

    def delete(self, owner: Owner, source_type: SourceType) -> None:
        self.execute(
            """
            DELETE FROM activity_source
            WHERE organization_id = ? AND user_id = ? AND source_type = ?
            """,
            (owner.organization_id, owner.user_id, source_type.value),
        )
        logger.info("Deleted %s credential for %s", source_type.value, owner)

    def list_active(self, source_type: SourceType) -> list[ActivitySource]:
        rows = self.query_all(
            """
            SELECT organization_id, user_id, source_type, credentials, config, is_active
            FROM activity_source
            WHERE source_type = ? AND is_active = 1
            ORDER BY created_at
            """,
            (source_type.value,),
        )
        return [self._from_row(row) for row in rows]

    @staticmethod
    def _from_row(row: Any) -> ActivitySource:
        return ActivitySource(
            owner=Owner(row["organization_id"], row["user_id"]),
            source_type=SourceType.parse(row["source_type"]),
            credentials=row["credentials"],
            config=json.loads(row["config"]) if row["config"] else None,
            is_active=bool(row["is_active"]),
        )
