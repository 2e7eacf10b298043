"""
NoteKeeper Storage Location

Resolves the per-user application data directory that holds notes.json
and reminders.json. The location is stable for the life of the process.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

STORAGE_DIR_ENV = "NOTEKEEPER_HOME"
DEFAULT_STORAGE_DIR = Path.home() / ".notekeeper"


class StorageLocationError(Exception):
    """Raised when the application data directory cannot be created"""
    pass


def resolve_storage_dir(base: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve and create the application data directory.

    Precedence: explicit ``base``, then $NOTEKEEPER_HOME, then ~/.notekeeper

    Args:
        base: Custom directory

    Returns:
        Absolute path of an existing directory

    Raises:
        StorageLocationError: If the directory cannot be created
    """
    if base is not None:
        storage_dir = Path(base)
    elif os.environ.get(STORAGE_DIR_ENV):
        storage_dir = Path(os.environ[STORAGE_DIR_ENV])
    else:
        storage_dir = DEFAULT_STORAGE_DIR

    storage_dir = storage_dir.expanduser().resolve()

    try:
        storage_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create storage directory {storage_dir}: {e}")
        raise StorageLocationError(f"Cannot create storage directory {storage_dir}: {e}") from e

    if not storage_dir.is_dir():
        raise StorageLocationError(f"Storage location is not a directory: {storage_dir}")

    logger.debug(f"Storage directory: {storage_dir}")
    return storage_dir
