"""
CredManager - Persistence Codec

Record ⇄ encrypted file.

    Record → canonical JSON → encrypt(process-wide key, static salt) → <sha256>.ser

The process-wide layer sits on top of each SecretValue's own encryption, so
identifier, timestamps and version are protected at rest too.

Failure policy:
- save() raises (EncryptionFailed / PersistenceFailed): a write that did not
  happen must never look like one that did.
- load() never raises: a corrupt or unreadable file is logged and skipped so
  it cannot block loading the rest of a directory.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from . import crypto
from .config import PERSISTENCE_SALT
from .errors import EncryptionFailed, PersistenceFailed
from .models import Record


logger = logging.getLogger(__name__)


FILE_EXTENSION = ".ser"
FORMAT_VERSION = 1


class RecordCodec:
    """
    Reads and writes record files with one process-wide key.

    Usage:
        codec = RecordCodec(config.load_process_key(settings.key_file))
        path = codec.save(record, settings.active_dir)
        record = codec.load(settings.active_dir, path.name)
    """

    def __init__(self, key_material: str, salt: bytes = PERSISTENCE_SALT):
        self._key_material = key_material
        self._salt = salt

    def __repr__(self) -> str:
        return "RecordCodec(key=********)"

    # =========================================================================
    # BYTES
    # =========================================================================

    @staticmethod
    def file_name(record: Record) -> str:
        return record.storage_key + FILE_EXTENSION

    def encode(self, record: Record) -> bytes:
        """Serialize and encrypt one record."""
        layout = {"format": FORMAT_VERSION}
        layout.update(record.to_dict())
        blob = crypto.encrypt(
            crypto.canonical_json(layout), self._salt, self._key_material, crypto.RECORD_CONTEXT
        )
        if blob is None:
            logger.error("Encryption failed while serializing a record.")
            raise EncryptionFailed("Record could not be encrypted.")
        return blob

    def decode(self, blob: bytes) -> Optional[Record]:
        """Decrypt and deserialize one record; None if anything is off."""
        plain = crypto.decrypt(blob, self._salt, self._key_material, crypto.RECORD_CONTEXT)
        if plain is None:
            return None
        try:
            layout = json.loads(plain.decode('utf-8'))
            if layout.get("format") != FORMAT_VERSION:
                logger.warning("Unsupported record format: %r", layout.get("format"))
                return None
            return Record.from_dict(layout)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Record layout is invalid: %s", e)
            return None

    # =========================================================================
    # FILES
    # =========================================================================

    def save(self, record: Record, directory) -> Path:
        """
        Write `record` to `directory`, creating the directory if needed.

        Existing files are never overwritten: writing a name that is
        already on disk raises PersistenceFailed.

        Returns:
            Path of the written file
        """
        directory = Path(directory)
        if not directory.is_dir():
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error("Failed to create directory %s: %s", directory, e)
                raise PersistenceFailed(f"Failed to create directory: {directory}") from e
            logger.info("Created directory: %s", directory)

        blob = self.encode(record)
        path = directory / self.file_name(record)
        try:
            with open(path, "xb") as f:
                f.write(blob)
        except FileExistsError as e:
            logger.error("Refusing to overwrite %s", path)
            raise PersistenceFailed(f"Record file already exists: {path.name}") from e
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise PersistenceFailed(f"Failed to write record file: {e}") from e

        logger.info("Serialized and encrypted record to file: %s", path)
        return path

    def load(self, directory, file_name: str) -> Optional[Record]:
        """Read one record file. Returns None (and logs) on any failure."""
        path = Path(directory) / file_name
        try:
            blob = path.read_bytes()
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return None

        record = self.decode(blob)
        if record is None:
            logger.warning("Skipping unreadable record file: %s", path)
            return None

        if self.file_name(record) != file_name:
            logger.warning("Record file %s is stored under an unexpected name", path)
        logger.debug("Deserialized and decrypted record from file: %s", path)
        return record

    def remove(self, record: Record, directory) -> bool:
        """
        Delete the backing file of `record` in `directory`.

        Returns:
            True if deleted, False if there was no such file
        """
        path = Path(directory) / self.file_name(record)
        if not path.exists():
            logger.warning("File does not exist: %s", path)
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error("Failed to delete file %s: %s", path, e)
            raise PersistenceFailed(f"Failed to delete record file: {e}") from e
        logger.info("Deleted file: %s", path)
        return True

    @staticmethod
    def list_files(directory) -> List[str]:
        """Names of the regular files in `directory`, sorted. Empty if it is missing."""
        directory = Path(directory)
        if not directory.exists():
            logger.warning("Directory does not exist: %s", directory)
            return []
        if not directory.is_dir():
            logger.warning("Not a directory: %s", directory)
            return []
        return sorted(p.name for p in directory.iterdir() if p.is_file())
