"""
NoteKeeper Core Runtime

Background execution for storage I/O.
"""

from .background import BackgroundExecutor

__all__ = [
    'BackgroundExecutor',
]
