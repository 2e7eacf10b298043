"""
NoteKeeper Notes Service

Owns the session's in-memory note list and persists the whole list
after every add, edit and delete.
"""

import logging
from typing import Iterable, List, Optional

from notekeeper.core.background import BackgroundExecutor
from notekeeper.memory.record_models import Note, create_note
from notekeeper.memory.record_store import LoadResult, SaveResult, StorageGateway

from .collection_service import CollectionService

logger = logging.getLogger(__name__)


class NotesService(CollectionService):
    """
    Session note list.

    Design:
    - Display order is insertion order
    - Notes are values; editing swaps in a new value with the same id
    - Persistence is whole-list, after every mutation
    """

    def __init__(self, gateway: StorageGateway, executor: Optional[BackgroundExecutor] = None):
        """
        Initialize notes service.

        Args:
            gateway: Storage gateway for notes.json
            executor: Runs saves off the calling thread (optional)
        """
        super().__init__(executor)
        self.gateway = gateway
        logger.info("NotesService initialized")

    def _save_collection(self, items: list) -> SaveResult:
        result = self.gateway.save_notes(items)
        if not result.success:
            logger.error(f"Notes were not saved: {result.error}")
        return result

    def _load_collection(self) -> LoadResult:
        return self.gateway.load_notes()

    @property
    def notes(self) -> List[Note]:
        with self._lock:
            return list(self._items)

    def get_note(self, note_id: str) -> Optional[Note]:
        with self._lock:
            for note in self._items:
                if note.id == note_id:
                    return note
        return None

    def add_note(self, content: str) -> Note:
        """
        Create a note, append it and persist.

        Raises:
            ValueError: If content is empty or blank
        """
        if not content or not content.strip():
            raise ValueError("Note content cannot be empty")

        note = create_note(content)
        with self._lock:
            self._items.append(note)
        self._persist()

        logger.info(f"Added note: {note.id}")
        return note

    def edit_note(self, note_id: str, content: str) -> Note:
        """
        Replace a note's content and persist.

        Raises:
            ValueError: If content is blank
            KeyError: If no note has this id
        """
        if not content or not content.strip():
            raise ValueError("Note content cannot be empty")

        with self._lock:
            for index, note in enumerate(self._items):
                if note.id == note_id:
                    updated = note.with_content(content)
                    self._items[index] = updated
                    break
            else:
                raise KeyError(note_id)
        self._persist()

        logger.info(f"Updated note: {note_id}")
        return updated

    def delete_at(self, offsets: Iterable[int]) -> List[Note]:
        """
        Remove notes at the given list positions and persist.

        Raises:
            IndexError: If any offset is out of range (nothing is removed)
        """
        removed = self._delete_offsets(offsets)
        self._persist()

        logger.info(f"Deleted {len(removed)} note(s)")
        return removed

    def delete_note(self, note_id: str) -> bool:
        """
        Remove a note by id and persist.

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            index = next((i for i, n in enumerate(self._items) if n.id == note_id), None)
        if index is None:
            logger.warning(f"Note {note_id} not found for deletion")
            return False

        self.delete_at([index])
        return True
