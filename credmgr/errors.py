"""Exceptions raised by the credential store."""


class CredManagerError(Exception):
    """Base class for every error the store raises on purpose."""


class InvalidParameter(CredManagerError, ValueError):
    """Blank or otherwise invalid input. Reported to the user, nothing changed."""


class EncryptionFailed(CredManagerError):
    """The cipher could not produce ciphertext. Never retried."""


class DecryptionFailed(CredManagerError):
    """Stored bytes could not be decrypted (wrong key, corruption, tampering)."""


class PersistenceFailed(CredManagerError):
    """Directory creation, file write or file deletion failed."""


class ConfigurationError(CredManagerError):
    """Required configuration (the process-wide key) is missing or unreadable."""
