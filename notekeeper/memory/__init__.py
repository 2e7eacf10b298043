"""
NoteKeeper Memory - Local Record Persistence

Notes and reminders, each stored as one whole JSON collection.
"""

from .record_models import (
    Note,
    Reminder,
    RecordFormatError,
    create_note,
    create_reminder
)
from .record_store import (
    RecordStore,
    StorageGateway,
    SaveResult,
    LoadResult,
    LoadStatus,
    ErrorKind,
    StorageFailure
)
from .storage_location import StorageLocationError, resolve_storage_dir

__all__ = [
    # Models
    'Note',
    'Reminder',
    'RecordFormatError',
    'create_note',
    'create_reminder',
    # Store
    'RecordStore',
    'StorageGateway',
    'SaveResult',
    'LoadResult',
    'LoadStatus',
    'ErrorKind',
    'StorageFailure',
    # Location
    'StorageLocationError',
    'resolve_storage_dir',
]
