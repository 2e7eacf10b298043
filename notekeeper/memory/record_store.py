"""
NoteKeeper Record Store - Whole-Collection JSON Storage

Handles reading and writing notes and reminders to
<storage dir>/notes.json and <storage dir>/reminders.json

Design:
- One JSON array per record kind
- Every save replaces the whole file (temp file, then rename)
- Failures come back as results, never as exceptions
- A corrupt file is reported as such, not as "no data yet"
- No concurrent write handling (single process, single user)
"""

import json
import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Generic, List, Optional, Sequence, Type, TypeVar, Union

from .record_models import Note, RecordFormatError, Reminder
from .storage_location import resolve_storage_dir

logger = logging.getLogger(__name__)

T = TypeVar('T', Note, Reminder)

NOTES_FILE = "notes.json"
REMINDERS_FILE = "reminders.json"


class ErrorKind(Enum):
    """Why a storage operation failed"""
    SERIALIZATION = "serialization"  # Data not representable / not decodable
    FILESYSTEM = "filesystem"        # Permission, disk full, unreadable file


class LoadStatus(Enum):
    """Outcome of a load"""
    EMPTY = "empty"        # Nothing saved yet
    PRESENT = "present"    # Records decoded
    CORRUPT = "corrupt"    # File exists but could not be read or decoded


@dataclass
class StorageFailure:
    """Diagnostic for a failed storage operation"""
    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value} error: {self.message}"


@dataclass
class SaveResult:
    """Result of persisting a collection"""
    success: bool
    count: int = 0
    error: Optional[StorageFailure] = None


@dataclass
class LoadResult(Generic[T]):
    """Result of loading a collection"""
    status: LoadStatus
    records: List[T] = field(default_factory=list)
    error: Optional[StorageFailure] = None

    @property
    def ok(self) -> bool:
        return self.status != LoadStatus.CORRUPT


class RecordStore(Generic[T]):
    """
    File-based storage for one record kind.

    Philosophy:
    - User can inspect/edit the file directly
    - The whole collection is the unit of durability
    - No hidden state or caching
    """

    def __init__(self, storage_path: Path, record_type: Type[T]):
        """
        Initialize record store.

        Args:
            storage_path: JSON file holding the collection
            record_type: Note or Reminder
        """
        self.storage_path = Path(storage_path)
        self.record_type = record_type
        self.backup_path = self.storage_path.with_suffix('.json.bak')

        logger.info(f"RecordStore initialized: {self.storage_path} ({record_type.__name__})")

    @property
    def kind(self) -> str:
        return self.record_type.__name__.lower()

    def save(self, records: Sequence[T]) -> SaveResult:
        """
        Replace the stored collection with ``records``.

        Args:
            records: Complete collection, in display order

        Returns:
            SaveResult with success flag and diagnostic on failure
        """
        try:
            payload = json.dumps(
                [r.to_dict() for r in records],
                indent=2,
                ensure_ascii=False
            )
            data = payload.encode('utf-8')
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to serialize {self.kind} collection: {e}", exc_info=True)
            return SaveResult(
                success=False,
                error=StorageFailure(ErrorKind.SERIALIZATION, str(e))
            )

        temp_path = self.storage_path.with_suffix('.tmp')
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)

            # Write atomically (write to temp, then rename)
            with open(temp_path, 'wb') as f:
                f.write(data)

            temp_path.replace(self.storage_path)

        except OSError as e:
            logger.error(f"Failed to save {self.kind} collection: {e}", exc_info=True)
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning(f"Could not remove temp file: {temp_path}")
            return SaveResult(
                success=False,
                error=StorageFailure(ErrorKind.FILESYSTEM, str(e))
            )

        logger.debug(f"Saved {len(records)} {self.kind} record(s) to {self.storage_path}")
        return SaveResult(success=True, count=len(records))

    def load(self) -> LoadResult[T]:
        """
        Load the stored collection.

        Returns:
            LoadResult: EMPTY when nothing was saved yet, PRESENT with the
            records, or CORRUPT with a diagnostic
        """
        if not self.storage_path.exists():
            logger.info(f"No {self.kind} storage yet: {self.storage_path}")
            return LoadResult(status=LoadStatus.EMPTY)

        try:
            with open(self.storage_path, 'rb') as f:
                raw = f.read()
        except OSError as e:
            logger.error(f"Failed to read {self.kind} storage: {e}", exc_info=True)
            return LoadResult(
                status=LoadStatus.CORRUPT,
                error=StorageFailure(ErrorKind.FILESYSTEM, str(e))
            )

        try:
            records = self._decode(raw)
        except (UnicodeDecodeError, json.JSONDecodeError, RecordFormatError) as e:
            logger.error(f"Corrupted {self.kind} storage {self.storage_path}: {e}")
            self._backup_corrupt_file()
            return LoadResult(
                status=LoadStatus.CORRUPT,
                error=StorageFailure(ErrorKind.SERIALIZATION, str(e))
            )

        logger.debug(f"Loaded {len(records)} {self.kind} record(s)")
        return LoadResult(status=LoadStatus.PRESENT, records=records)

    def _decode(self, raw: bytes) -> List[T]:
        """
        Decode file contents.

        Accepts a bare array, or a {"version": ..., "records": [...]}
        envelope. Any malformed entry rejects the whole file.
        """
        data = json.loads(raw.decode('utf-8'))

        if isinstance(data, dict) and isinstance(data.get('records'), list):
            entries = data['records']
        elif isinstance(data, list):
            entries = data
        else:
            raise RecordFormatError(
                f"Expected a JSON array of {self.kind} records, got {type(data).__name__}"
            )

        records = []
        for index, entry in enumerate(entries):
            try:
                records.append(self.record_type.from_dict(entry))
            except (RecordFormatError, TypeError, ValueError) as e:
                raise RecordFormatError(f"Invalid {self.kind} at index {index}: {e}") from e
        return records

    def _backup_corrupt_file(self):
        """
        Copy a corrupt file aside so a later save cannot destroy it.

        The original stays in place: repeated loads see the same state.
        """
        try:
            shutil.copy2(self.storage_path, self.backup_path)
            logger.warning(f"Backed up corrupted storage to: {self.backup_path}")
        except OSError as e:
            logger.error(f"Failed to back up corrupted storage: {e}", exc_info=True)


class StorageGateway:
    """
    Persistence entry points for notes and reminders.

    Constructed explicitly and passed to whatever needs persistence.
    Each call is a self-contained read or whole-collection replace.
    """

    def __init__(self, storage_dir: Optional[Union[str, Path]] = None):
        """
        Initialize storage gateway.

        Args:
            storage_dir: Application data directory (default: resolved by
                resolve_storage_dir)

        Raises:
            StorageLocationError: If the directory cannot be created
        """
        self.storage_dir = resolve_storage_dir(storage_dir)
        self.notes = RecordStore(self.storage_dir / NOTES_FILE, Note)
        self.reminders = RecordStore(self.storage_dir / REMINDERS_FILE, Reminder)

        logger.info(f"StorageGateway initialized: {self.storage_dir}")

    def save_notes(self, notes: Sequence[Note]) -> SaveResult:
        return self.notes.save(notes)

    def load_notes(self) -> LoadResult[Note]:
        return self.notes.load()

    def save_reminders(self, reminders: Sequence[Reminder]) -> SaveResult:
        return self.reminders.save(reminders)

    def load_reminders(self) -> LoadResult[Reminder]:
        return self.reminders.load()
