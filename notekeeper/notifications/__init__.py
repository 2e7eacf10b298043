"""
NoteKeeper Notifications - One-Shot Reminder Alerts

Calendar-triggered alerts for reminders, delivered by an in-process
notification center.
"""

from .calendar_trigger import CalendarTrigger
from .notification_center import (
    NotificationCenter,
    NotificationRequest,
    NotificationRegistrationError,
    AuthorizationStatus
)
from .scheduler import (
    NotificationScheduler,
    ScheduledNotification,
    NotificationState,
    PermissionState,
    NOTIFICATION_TITLE
)
from .delivery import ConsoleChannel, VoiceChannel

__all__ = [
    'CalendarTrigger',
    # Center
    'NotificationCenter',
    'NotificationRequest',
    'NotificationRegistrationError',
    'AuthorizationStatus',
    # Scheduler
    'NotificationScheduler',
    'ScheduledNotification',
    'NotificationState',
    'PermissionState',
    'NOTIFICATION_TITLE',
    # Delivery
    'ConsoleChannel',
    'VoiceChannel',
]
