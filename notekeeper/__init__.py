"""
NoteKeeper - Local Notes and Reminders

Two independent lists of user-authored records, persisted as JSON,
with reminders scheduled as one-shot timed notifications.
"""

__version__ = "1.0.0"
