"""
NoteKeeper Record Models

Data structures for the two user-authored record kinds.

Philosophy:
- Records are plain values
- Identity is a UUID assigned at creation
- Editing produces a new value, never mutates in place
- No cross-references between notes and reminders
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Union
import uuid

# Reference date used by the mobile app's default JSON date encoding
APPLE_REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


class RecordFormatError(ValueError):
    """Raised when a stored record cannot be decoded"""
    pass


def _as_aware(value: datetime) -> datetime:
    """Attach the local timezone to naive datetimes."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _require_str(data: dict, key: str) -> str:
    if key not in data:
        raise RecordFormatError(f"Missing field '{key}'")
    value = data[key]
    if not isinstance(value, str):
        raise RecordFormatError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


def _require_uuid(data: dict) -> str:
    raw = _require_str(data, 'id')
    try:
        return str(uuid.UUID(raw))
    except ValueError as e:
        raise RecordFormatError(f"Invalid id '{raw}': {e}") from e


def decode_date(raw: Union[str, int, float]) -> datetime:
    """
    Decode a stored reminder date.

    Accepts ISO-8601 strings (written by NoteKeeper) and numbers of
    seconds since 2001-01-01T00:00:00Z (written by the mobile app).

    Raises:
        RecordFormatError: If the value is neither
    """
    if isinstance(raw, bool):
        raise RecordFormatError("Field 'date' must be a string or number")
    if isinstance(raw, (int, float)):
        try:
            return APPLE_REFERENCE_DATE + timedelta(seconds=raw)
        except OverflowError as e:
            raise RecordFormatError(f"Date out of range: {raw}") from e
    if isinstance(raw, str):
        try:
            # UTC designator written by other ISO-8601 encoders
            text = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
            return _as_aware(datetime.fromisoformat(text))
        except ValueError as e:
            raise RecordFormatError(f"Invalid date '{raw}': {e}") from e
    raise RecordFormatError(f"Field 'date' must be a string or number, got {type(raw).__name__}")


@dataclass(frozen=True)
class Note:
    """
    A free-form text note.

    Equality and hashing cover both fields, so two notes with the same
    content are still different notes when their ids differ.
    """
    id: str
    content: str

    def __post_init__(self):
        if not self.id:
            raise ValueError("Note ID cannot be empty")
        if not isinstance(self.content, str):
            raise TypeError("content must be str")

    @property
    def title(self) -> str:
        """First line of the content, used for list display"""
        return self.content.split("\n", 1)[0]

    def with_content(self, content: str) -> 'Note':
        return replace(self, content=content)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict"""
        return {
            'id': self.id,
            'content': self.content
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Note':
        """
        Create Note from dict.

        Raises:
            RecordFormatError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise RecordFormatError(f"Note entry must be an object, got {type(data).__name__}")
        return cls(
            id=_require_uuid(data),
            content=_require_str(data, 'content')
        )


@dataclass(frozen=True)
class Reminder:
    """
    A reminder with an absolute, timezone-aware point in time.

    A date in the past is structurally valid here; keeping reminders in
    the future is up to whoever creates them.
    """
    id: str
    content: str
    date: datetime

    def __post_init__(self):
        if not self.id:
            raise ValueError("Reminder ID cannot be empty")
        if not isinstance(self.content, str):
            raise TypeError("content must be str")
        if not isinstance(self.date, datetime):
            raise TypeError("date must be datetime")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, 'date', _as_aware(self.date))

    def with_content(self, content: str) -> 'Reminder':
        return replace(self, content=content)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict"""
        return {
            'id': self.id,
            'content': self.content,
            'date': self.date.isoformat()
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Reminder':
        """
        Create Reminder from dict.

        Raises:
            RecordFormatError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise RecordFormatError(f"Reminder entry must be an object, got {type(data).__name__}")
        if 'date' not in data:
            raise RecordFormatError("Missing field 'date'")
        return cls(
            id=_require_uuid(data),
            content=_require_str(data, 'content'),
            date=decode_date(data['date'])
        )


def create_note(content: str) -> Note:
    """
    Factory function to create a new note.

    Args:
        content: Note text

    Returns:
        New Note with a fresh identifier
    """
    return Note(id=str(uuid.uuid4()), content=content)


def create_reminder(content: str, date: datetime) -> Reminder:
    """
    Factory function to create a new reminder.

    Args:
        content: Reminder text, also used as the notification body
        date: When to remind (naive values are taken as local time)

    Returns:
        New Reminder with a fresh identifier
    """
    return Reminder(id=str(uuid.uuid4()), content=content, date=date)
