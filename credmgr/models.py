"""
CredManager - Data Model

Two frozen types:
- SecretValue: a credential's plaintext, held ONLY as ciphertext + salt + key material
- Record: one account (name, identifier, secret, timestamps, version)

Records never change in place. Every edit returns a new Record with
version + 1 (copy-on-write), so the pre-edit Record can be archived as-is.
"""

import base64
import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from . import crypto
from .errors import DecryptionFailed, EncryptionFailed, InvalidParameter


MASK = "********"


def _require_text(value: Optional[str], what: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidParameter(f"{what} must not be blank.")
    return str(value).strip()


# =============================================================================
# SECRET VALUE
# =============================================================================

@dataclass(frozen=True, repr=False)
class SecretValue:
    """
    Encrypted credential.

    Decryption needs exactly the (ciphertext, salt, derivation_key) triple
    captured in create(). The key material travels with the ciphertext; the
    process-wide layer in codec.py is what protects it at rest.
    """

    ciphertext: bytes
    salt: bytes
    derivation_key: str

    @classmethod
    def create(cls, plaintext: str) -> "SecretValue":
        """
        Encrypt `plaintext` (trimmed) under fresh salt + fresh key material.

        Raises:
            InvalidParameter: plaintext is blank
            EncryptionFailed: the cipher returned nothing
        """
        plaintext = _require_text(plaintext, "Secret")
        salt = crypto.generate_salt(crypto.SECRET_SALT_SIZE)
        key_material = crypto.derive_key(crypto.SECRET_KEY_BITS)
        ciphertext = crypto.encrypt(
            plaintext.encode('utf-8'), salt, key_material, crypto.SECRET_CONTEXT
        )
        if ciphertext is None:
            raise EncryptionFailed("Secret could not be encrypted.")
        return cls(ciphertext=ciphertext, salt=salt, derivation_key=key_material)

    def reveal(self) -> str:
        """
        Decrypt and return the plaintext.

        Keep the result scoped to its use (display, clipboard) and drop it.
        """
        plain = crypto.decrypt(self.ciphertext, self.salt, self.derivation_key,
                               crypto.SECRET_CONTEXT)
        if plain is None:
            raise DecryptionFailed("Secret could not be decrypted.")
        try:
            return plain.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecryptionFailed("Secret decrypted to invalid text.") from e

    def to_dict(self) -> dict:
        return {
            "ciphertext": self.ciphertext.decode('ascii'),
            "salt": base64.b64encode(self.salt).decode('ascii'),
            "derivation_key": self.derivation_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SecretValue":
        return cls(
            ciphertext=data["ciphertext"].encode('ascii'),
            salt=base64.b64decode(data["salt"], validate=True),
            derivation_key=data["derivation_key"],
        )

    def __repr__(self) -> str:
        return MASK

    __str__ = __repr__


# =============================================================================
# RECORD
# =============================================================================

@dataclass(frozen=True)
class Record:
    """
    One stored account.

    Equality covers every field. Ordering in the stores uses sort_key,
    i.e. (created_at, version) with the storage key as a final tie-break.
    """

    name: str
    identifier: str
    secret: SecretValue
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int = 1

    def __post_init__(self):
        _require_text(self.name, "Account name")
        _require_text(self.identifier, "Account identifier")
        if not isinstance(self.version, int) or self.version < 1:
            raise InvalidParameter(f"Version must be a positive integer, got {self.version!r}")

    @classmethod
    def new(cls, name: str, identifier: str, secret: str,
            now: Optional[datetime] = None) -> "Record":
        """Build version 1 of a new account. Name and identifier are trimmed."""
        name = _require_text(name, "Account name")
        identifier = _require_text(identifier, "Account identifier")
        return cls(
            name=name,
            identifier=identifier,
            secret=SecretValue.create(secret),
            created_at=now or datetime.now(),
            version=1,
        )

    # -------------------------------------------------------------------------
    # Copy-on-write edits
    # -------------------------------------------------------------------------

    def with_identifier(self, identifier: str, at: Optional[datetime] = None) -> "Record":
        """Next version with a new identifier."""
        identifier = _require_text(identifier, "Account identifier")
        return dataclasses.replace(
            self, identifier=identifier, updated_at=at or datetime.now(),
            version=self.version + 1,
        )

    def with_secret(self, secret: str, at: Optional[datetime] = None) -> "Record":
        """Next version with a freshly encrypted secret."""
        return dataclasses.replace(
            self, secret=SecretValue.create(secret), updated_at=at or datetime.now(),
            version=self.version + 1,
        )

    def superseded(self, at: Optional[datetime] = None) -> "Record":
        """This record stamped with the moment a newer version replaced it."""
        return dataclasses.replace(self, updated_at=at or datetime.now())

    # -------------------------------------------------------------------------
    # Identity helpers
    # -------------------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        """sha256(name + identifier + version), hex."""
        return crypto.hash_name(f"{self.name}{self.identifier}{self.version}")

    @property
    def sort_key(self) -> Tuple[datetime, int, str]:
        return (self.created_at, self.version, self.storage_key)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "identifier": self.identifier,
            "secret": self.secret.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Record":
        updated_at = data.get("updated_at")
        return cls(
            name=data["name"],
            identifier=data["identifier"],
            secret=SecretValue.from_dict(data["secret"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
            version=data["version"],
        )
