"""
NoteKeeper Notification Scheduler

Responsibilities:
- Ask for notification permission once per process
- Register a one-shot alert for each new reminder
- Expose permission and per-reminder scheduling state to the caller
- Cancel pending alerts on request

Permission and registration answers arrive asynchronously on the
notification center thread; callers observe them through
permission_state / ScheduledNotification.state or block with wait().
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from notekeeper.memory.record_models import Reminder

from .calendar_trigger import CalendarTrigger
from .notification_center import NotificationCenter, NotificationRequest

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Reminder"


class PermissionState(Enum):
    """Notification permission as seen by the app"""
    NOT_REQUESTED = "not_requested"
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"
    ERROR = "error"


class NotificationState(Enum):
    """Lifecycle of one reminder's alert"""
    REGISTERING = "registering"   # Handed to the center, no answer yet
    SCHEDULED = "scheduled"       # Accepted, waiting for its minute
    FAILED = "failed"             # Rejected or never registered
    DELIVERED = "delivered"       # Fired and shown to the user
    UNDELIVERED = "undelivered"   # Fired while notifications were not allowed
    CANCELLED = "cancelled"       # Removed before firing


_REGISTERING = (NotificationState.REGISTERING,)
_ACTIVE = (NotificationState.REGISTERING, NotificationState.SCHEDULED)

_SETTLED = (
    NotificationState.SCHEDULED,
    NotificationState.FAILED,
    NotificationState.DELIVERED,
    NotificationState.UNDELIVERED,
    NotificationState.CANCELLED,
)


@dataclass
class ScheduledNotification:
    """Observable handle for one reminder's alert"""
    reminder_id: str
    trigger: CalendarTrigger
    state: NotificationState = NotificationState.REGISTERING
    error: Optional[str] = None
    _settled: threading.Event = field(default_factory=threading.Event, repr=False, compare=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _transition(
        self,
        state: NotificationState,
        error: Optional[str] = None,
        expected: Optional[tuple] = None
    ) -> bool:
        """
        Move to ``state``, only from an ``expected`` state when given.

        Check and update happen under the handle lock: the center thread
        and the caller thread both drive transitions.

        Returns:
            True if the state changed
        """
        with self._lock:
            if expected is not None and self.state not in expected:
                return False
            self.state = state
            self.error = error
        if state in _SETTLED:
            self._settled.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the registration answer arrives.

        Returns:
            True if the state settled within the timeout
        """
        return self._settled.wait(timeout)

    @property
    def is_active(self) -> bool:
        return self.state in _ACTIVE


class NotificationScheduler:
    """
    Schedules one-shot alerts for reminders.

    Design principles:
    - One alert per reminder, keyed by reminder id
    - No retries, no rescheduling
    - Every outcome is observable state, not just a log line
    """

    def __init__(self, center: NotificationCenter):
        """
        Initialize scheduler.

        Args:
            center: Notification service that holds and fires alerts
        """
        self.center = center
        self._lock = threading.Lock()
        self._permission = PermissionState.NOT_REQUESTED
        self._permission_error: Optional[str] = None
        self._permission_answered = threading.Event()
        self._notifications: Dict[str, ScheduledNotification] = {}

        center.add_delivery_listener(self._on_fired)
        logger.info("NotificationScheduler initialized")

    # ------------------------------------------------------------------
    # Permission
    # ------------------------------------------------------------------

    @property
    def permission_state(self) -> PermissionState:
        with self._lock:
            return self._permission

    @property
    def permission_error(self) -> Optional[str]:
        return self._permission_error

    def request_permission(self):
        """
        Request notification permission (fire-and-forget).

        Idempotent: only the first call reaches the notification center.
        """
        with self._lock:
            if self._permission != PermissionState.NOT_REQUESTED:
                logger.debug(f"Permission already {self._permission.value}")
                return
            self._permission = PermissionState.PENDING

        logger.info("Requesting notification permission")
        self.center.request_authorization(self._on_authorization)

    def wait_for_permission(self, timeout: Optional[float] = None) -> PermissionState:
        """Block until the permission answer arrives, then return it"""
        self._permission_answered.wait(timeout)
        return self.permission_state

    def _on_authorization(self, granted: bool, error: Optional[Exception]):
        with self._lock:
            if error is not None:
                self._permission = PermissionState.ERROR
                self._permission_error = str(error)
                logger.error(f"Notification permission error: {error}")
            elif granted:
                self._permission = PermissionState.GRANTED
                logger.info("Notification permissions granted")
            else:
                self._permission = PermissionState.DENIED
                logger.warning("Notification permissions denied")
        self._permission_answered.set()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def build_request(self, reminder: Reminder) -> NotificationRequest:
        """Notification payload for a reminder"""
        return NotificationRequest(
            identifier=reminder.id,
            title=NOTIFICATION_TITLE,
            body=reminder.content,
            trigger=CalendarTrigger.from_datetime(reminder.date)
        )

    def schedule(self, reminder: Reminder) -> ScheduledNotification:
        """
        Register a one-shot alert for ``reminder``.

        Returns immediately; the handle settles on SCHEDULED or FAILED
        once the notification center answers.

        Args:
            reminder: Reminder to alert for

        Returns:
            ScheduledNotification handle
        """
        request = self.build_request(reminder)
        handle = ScheduledNotification(reminder_id=reminder.id, trigger=request.trigger)

        with self._lock:
            self._notifications[reminder.id] = handle
            permission = self._permission

        if permission == PermissionState.DENIED:
            logger.warning(f"Not scheduling reminder {reminder.id}: permission denied")
            handle._transition(NotificationState.FAILED, "permission denied")
            return handle

        if permission == PermissionState.NOT_REQUESTED:
            logger.warning("Scheduling before notification permission was requested")

        def on_registered(error: Optional[Exception]):
            if error is not None:
                logger.error(f"Error setting the reminder {reminder.id}: {error}")
                handle._transition(NotificationState.FAILED, str(error), expected=_REGISTERING)
            elif handle._transition(NotificationState.SCHEDULED, expected=_REGISTERING):
                logger.info(f"Reminder {reminder.id} scheduled")

        self.center.add(request, on_registered)
        return handle

    def cancel(self, reminder_id: str) -> bool:
        """
        Cancel a reminder's pending alert.

        Returns:
            True if an alert was pending and is now cancelled
        """
        removed = self.center.remove_pending([reminder_id])

        with self._lock:
            handle = self._notifications.get(reminder_id)

        if handle is not None:
            handle._transition(NotificationState.CANCELLED, expected=_ACTIVE)

        if removed:
            logger.info(f"Cancelled reminder notification {reminder_id}")
        else:
            logger.debug(f"No pending notification for reminder {reminder_id}")
        return bool(removed)

    def status(self, reminder_id: str) -> Optional[ScheduledNotification]:
        """Handle for a reminder scheduled in this process, if any"""
        with self._lock:
            return self._notifications.get(reminder_id)

    def _on_fired(self, request: NotificationRequest, delivered: bool):
        with self._lock:
            handle = self._notifications.get(request.identifier)
        if handle is None:
            return
        if delivered:
            handle._transition(NotificationState.DELIVERED, expected=_ACTIVE)
        else:
            handle._transition(
                NotificationState.UNDELIVERED,
                "notifications not authorized",
                expected=_ACTIVE
            )
