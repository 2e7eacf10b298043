"""
NoteKeeper Services - Session Collections

In-memory note and reminder lists that persist after every mutation.
"""

from .collection_service import CollectionService
from .notes_service import NotesService
from .reminders_service import RemindersService

__all__ = [
    'CollectionService',
    'NotesService',
    'RemindersService',
]
