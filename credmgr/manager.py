"""
CredManager - Lifecycle Coordinator

Create / update / delete across the active and archived stores.

Each operation is a fixed sequence: the file write always comes before the
in-memory add, and the new version is stored and archived BEFORE the old
active file is removed. A crash in the middle can leave a stale duplicate
file, never a lost record.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from . import config
from .codec import RecordCodec
from .errors import InvalidParameter
from .models import Record
from .store import RecordStore


logger = logging.getLogger(__name__)


class CredentialManager:
    """
    Entry point for everything the interactive menu does.

    Usage:
        manager = open_manager()
        record = manager.create("Mail", "user@x.com", "p@ss")
        record = manager.update_identifier(record, "user2@x.com")
        secret = manager.reveal(record)
        manager.delete(record)
    """

    def __init__(self, codec: RecordCodec, active: RecordStore, archived: RecordStore):
        self.codec = codec
        self.active = active
        self.archived = archived

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def create(self, name: str, identifier: str, secret: str) -> Record:
        """
        Register a new account (version 1).

        Steps: validate → build → write to active dir → add to active store.
        Two active accounts may not share a name + identifier: they would
        share a file.
        """
        record = Record.new(name, identifier, secret)
        self._require_free_slot(record, self.active)
        self.codec.save(record, self.active.directory)
        self.active.add(record)
        logger.info("Account added: %s (version %d)", record.name, record.version)
        return record

    def update(self, original: Record, identifier: Optional[str] = None,
               secret: Optional[str] = None) -> Record:
        """
        Produce the next version of `original` with a new identifier OR secret.

        Steps:
            1. clone with the change, version + 1; stamp updated_at on the original
            2. write clone to active dir, add to active store
            3. write stamped original to archived dir, add to archived store
            4. delete the original's file from the active dir
            5. remove the original from the active store

        Returns:
            The new active record
        """
        if (identifier is None) == (secret is None):
            raise InvalidParameter("Give exactly one of identifier or secret to update.")
        self._require_active(original)

        now = datetime.now()
        if identifier is not None:
            updated = original.with_identifier(identifier, at=now)
        else:
            updated = original.with_secret(secret, at=now)
        archived = original.superseded(at=now)
        self._require_free_slot(updated, self.active)
        self._require_free_slot(archived, self.archived)

        self.codec.save(updated, self.active.directory)
        self.active.add(updated)

        self.codec.save(archived, self.archived.directory)
        self.archived.add(archived)

        self.codec.remove(original, self.active.directory)
        self.active.delete(original)

        logger.info("Account updated: %s (version %d -> %d)",
                    updated.name, original.version, updated.version)
        return updated

    def update_identifier(self, original: Record, identifier: str) -> Record:
        return self.update(original, identifier=identifier)

    def update_secret(self, original: Record, secret: str) -> Record:
        return self.update(original, secret=secret)

    def delete(self, record: Record) -> None:
        """Remove an active account and its file. No archived copy is kept."""
        self._require_active(record)
        self.codec.remove(record, self.active.directory)
        self.active.delete(record)
        logger.info("Account deleted: %s (version %d)", record.name, record.version)

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def list_active(self) -> Tuple[Record, ...]:
        return self.active.list()

    def list_archived(self) -> Tuple[Record, ...]:
        return self.archived.list()

    def get_active(self, index: int) -> Optional[Record]:
        return self.active.get_by_position(index)

    def get_archived(self, index: int) -> Optional[Record]:
        return self.archived.get_by_position(index)

    def has_active(self) -> bool:
        return self.active.has_any()

    def has_archived(self) -> bool:
        return self.archived.has_any()

    @staticmethod
    def reveal(record: Record) -> str:
        """Plaintext secret of `record`. Raises DecryptionFailed."""
        return record.secret.reveal()

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _require_active(self, record: Record) -> None:
        if record not in self.active:
            raise InvalidParameter("Account is not in the active list.")

    @staticmethod
    def _require_free_slot(record: Record, store: RecordStore) -> None:
        if store.get_by_storage_key(record.storage_key) is not None:
            raise InvalidParameter(
                f"An {store.label} account named '{record.name}' with this identifier "
                f"and version {record.version} already exists."
            )


def open_manager(settings: Optional[config.Settings] = None) -> CredentialManager:
    """
    Startup sequence: key → codec → both stores (loaded) → manager.

    Raises:
        ConfigurationError: the process-wide key file is missing
    """
    settings = settings or config.load_settings()
    codec = RecordCodec(config.load_process_key(settings.key_file))
    active = RecordStore(codec, settings.active_dir, "active").initialize()
    archived = RecordStore(codec, settings.archived_dir, "archived").initialize()
    return CredentialManager(codec, active, archived)
