"""Exception taxonomy for the worklog pipeline."""

from __future__ import annotations


class WorklogError(Exception):
    """Base class for worklog errors."""

    user_message: str | None = None

    def __init__(self, message: str, user_message: str | None = None):
        super().__init__(message)
        if user_message is not None:
            self.user_message = user_message


class ConfigurationError(WorklogError):
    """Missing or malformed configuration (encryption key, credential source)."""


class CredentialDecryptionError(WorklogError):
    """Stored credential could not be decrypted; the user must re-authenticate."""

    user_message = "Stored credential is invalid. Please reconnect the activity source."


class ActivitySourceError(WorklogError):
    """The external activity provider failed (HTTP error, timeout, bad payload)."""


class SummarizerError(WorklogError):
    """AI-assisted summarization failed; callers fall back to the deterministic text."""
