"""
CredManager - Configuration

Storage locations and the process-wide key.

Layout under the home directory (default ~/.credmgr, or $CREDMGR_HOME):

    accounts/              active records, one <sha256>.ser file each
    archived/              superseded records
    config/encflekey.txt   process-wide key material (plain text)
    credmgr.log            log file written by the interactive menu
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import crypto
from .errors import ConfigurationError


logger = logging.getLogger(__name__)


DEFAULT_HOME = os.path.join(os.path.expanduser("~"), ".credmgr")

ACTIVE_DIR_NAME = "accounts"
ARCHIVED_DIR_NAME = "archived"
KEY_FILE_NAME = os.path.join("config", "encflekey.txt")
LOG_FILE_NAME = "credmgr.log"

# Salt for the process-wide layer. Fixed: every record file shares it.
PERSISTENCE_SALT = bytes([0x12, 0x34, 0x56, 0x78, 0x90, 0xAB, 0xCD, 0xEF])


@dataclass(frozen=True)
class Settings:
    home: Path
    active_dir: Path
    archived_dir: Path
    key_file: Path

    @property
    def log_file(self) -> Path:
        return self.home / LOG_FILE_NAME


def load_settings(home: Optional[str] = None) -> Settings:
    """
    Resolve storage locations.

    Precedence: explicit `home` argument, then $CREDMGR_HOME, then DEFAULT_HOME.
    $CREDMGR_KEY_FILE overrides the key file location on its own.
    """
    base = Path(home or os.environ.get("CREDMGR_HOME") or DEFAULT_HOME).expanduser()
    key_file = os.environ.get("CREDMGR_KEY_FILE")
    return Settings(
        home=base,
        active_dir=base / ACTIVE_DIR_NAME,
        archived_dir=base / ARCHIVED_DIR_NAME,
        key_file=Path(key_file).expanduser() if key_file else base / KEY_FILE_NAME,
    )


def load_process_key(path) -> str:
    """
    Read the process-wide key material once at startup.

    Raises:
        ConfigurationError: file missing, unreadable or empty. This is fatal,
        the store cannot open without it.
    """
    path = Path(path)
    if not path.is_file():
        logger.error("Encryption key file not found: %s", path)
        raise ConfigurationError(f"{path} is required.")
    try:
        key_material = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Failed to read encryption key: %s", e)
        raise ConfigurationError(f"Failed to read encryption key: {e}") from e
    if not key_material:
        raise ConfigurationError(f"{path} is empty.")
    logger.info("Encryption key loaded from: %s", path)
    return key_material


def create_process_key(path) -> str:
    """
    Write fresh process-wide key material to `path`.

    Refuses to overwrite: replacing the key would make every stored record
    unreadable.
    """
    path = Path(path)
    if path.exists():
        raise ConfigurationError(f"Key file already exists: {path}")
    key_material = crypto.derive_key(crypto.SECRET_KEY_BITS)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(key_material, encoding="utf-8")
        os.chmod(path, 0o600)
    except OSError as e:
        raise ConfigurationError(f"Failed to write encryption key: {e}") from e
    logger.info("Created encryption key file: %s", path)
    return key_material
