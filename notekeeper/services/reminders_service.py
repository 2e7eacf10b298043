"""
NoteKeeper Reminders Service

Responsibilities:
- Own the session's in-memory reminder list
- Persist the whole list after every add and delete
- Schedule an alert when a reminder is created
- Cancel the pending alert when a reminder is deleted
- Re-register alerts for stored reminders at startup

Reminders are not editable, so an alert never moves to a new time.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from notekeeper.core.background import BackgroundExecutor
from notekeeper.memory.record_models import Reminder, create_reminder
from notekeeper.memory.record_store import LoadResult, SaveResult, StorageGateway
from notekeeper.notifications.calendar_trigger import CalendarTrigger
from notekeeper.notifications.scheduler import NotificationScheduler, ScheduledNotification

from .collection_service import CollectionService

logger = logging.getLogger(__name__)


class RemindersService(CollectionService):
    """
    Session reminder list wired to the notification scheduler.

    Design principles:
    - Persist first, then schedule
    - A reminder is kept even if its alert cannot be scheduled
    - Scheduling outcome is handed back, never hidden
    """

    def __init__(
        self,
        gateway: StorageGateway,
        scheduler: NotificationScheduler,
        executor: Optional[BackgroundExecutor] = None
    ):
        """
        Initialize reminders service.

        Args:
            gateway: Storage gateway for reminders.json
            scheduler: Notification scheduler for alerts
            executor: Runs saves off the calling thread (optional)
        """
        super().__init__(executor)
        self.gateway = gateway
        self.scheduler = scheduler
        logger.info("RemindersService initialized")

    def _save_collection(self, items: list) -> SaveResult:
        result = self.gateway.save_reminders(items)
        if not result.success:
            logger.error(f"Reminders were not saved: {result.error}")
        return result

    def _load_collection(self) -> LoadResult:
        return self.gateway.load_reminders()

    @property
    def reminders(self) -> List[Reminder]:
        with self._lock:
            return list(self._items)

    def add_reminder(
        self,
        content: str,
        date: datetime,
        now: Optional[datetime] = None
    ) -> ScheduledNotification:
        """
        Create a reminder, persist the list and schedule its alert.

        Args:
            content: Reminder text
            date: When to remind (naive values are local time)
            now: Current time (default: datetime.now())
                 Injected for testability

        Returns:
            Scheduling handle; handle.reminder_id identifies the new reminder

        Raises:
            ValueError: If content is blank or date is before the current minute
            TypeError: If date is not a datetime
        """
        if not content or not content.strip():
            raise ValueError("Reminder content cannot be empty")

        if not isinstance(date, datetime):
            raise TypeError("date must be datetime")

        reminder = create_reminder(content, date)

        now = (now or datetime.now()).astimezone()
        if reminder.date < now.replace(second=0, microsecond=0):
            raise ValueError(f"Reminder date {reminder.date.isoformat()} is in the past")

        with self._lock:
            self._items.append(reminder)
        self._persist()

        logger.info(f"Created reminder: {reminder.id} (date: {reminder.date.isoformat()})")
        return self.scheduler.schedule(reminder)

    def schedule_stored(self, now: Optional[datetime] = None) -> List[ScheduledNotification]:
        """
        Register alerts for loaded reminders that are still upcoming.

        Alerts do not outlive the notification center, so a new session
        calls this after load() and request_permission(). Reminders whose
        minute is already over, or that already have an active alert in
        this process, are skipped.

        Args:
            now: Current time (default: datetime.now())

        Returns:
            Handles for the alerts registered by this call
        """
        now = (now or datetime.now()).astimezone()
        handles = []
        for reminder in self.reminders:
            if self.is_expired(reminder, now):
                logger.debug(f"Reminder {reminder.id} already passed, not scheduling")
                continue
            existing = self.scheduler.status(reminder.id)
            if existing is not None and existing.is_active:
                continue
            handles.append(self.scheduler.schedule(reminder))

        logger.info(f"Scheduled {len(handles)} stored reminder(s)")
        return handles

    def is_expired(self, reminder: Reminder, now: Optional[datetime] = None) -> bool:
        """True once the reminder's trigger minute is over"""
        now = (now or datetime.now()).astimezone()
        return CalendarTrigger.from_datetime(reminder.date).has_passed(now)

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        with self._lock:
            for reminder in self._items:
                if reminder.id == reminder_id:
                    return reminder
        return None

    def delete_at(self, offsets: Iterable[int]) -> List[Reminder]:
        """
        Remove reminders at the given list positions, persist, and
        cancel their pending alerts.

        Raises:
            IndexError: If any offset is out of range (nothing is removed)
        """
        removed = self._delete_offsets(offsets)
        self._persist()

        for reminder in removed:
            self.scheduler.cancel(reminder.id)

        logger.info(f"Deleted {len(removed)} reminder(s)")
        return removed

    def delete_reminder(self, reminder_id: str) -> bool:
        """
        Remove a reminder by id.

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            index = next((i for i, r in enumerate(self._items) if r.id == reminder_id), None)
        if index is None:
            logger.warning(f"Reminder {reminder_id} not found for deletion")
            return False

        self.delete_at([index])
        return True

    def format_reminder_for_user(self, reminder: Reminder) -> str:
        """
        Format reminder for list display.

        Example: "Call mom\\n  Reminder set for: Mar 01, 2025 at 02:37 PM"
        """
        local = reminder.date.astimezone()
        when = local.strftime('%b %d, %Y at %I:%M %p')
        return f"{reminder.content}\n  Reminder set for: {when}"
