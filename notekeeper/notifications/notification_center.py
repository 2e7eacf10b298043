"""
NoteKeeper Notification Center - In-Process Notification Service

Stands in for the operating system's notification service:
- Holds one-shot notification requests keyed by identifier
- Answers the authorization handshake once per center
- Fires due requests through delivery channels

Architecture:
- Caller thread: registers requests, gets answers via callbacks
- Center thread: runs callbacks, checks for due requests every tick
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from queue import Queue, Empty
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .calendar_trigger import CalendarTrigger

logger = logging.getLogger(__name__)

AuthorizationCallback = Callable[[bool, Optional[Exception]], None]
RegistrationCallback = Callable[[Optional[Exception]], None]
DeliveryListener = Callable[["NotificationRequest", bool], None]


class NotificationRegistrationError(Exception):
    """Raised (or passed to callbacks) when a request is rejected"""
    pass


class AuthorizationStatus(Enum):
    """Authorization answer held by the center"""
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass(frozen=True)
class NotificationRequest:
    """A one-shot, calendar-triggered alert"""
    identifier: str
    title: str
    body: str
    trigger: CalendarTrigger

    def as_payload(self) -> dict:
        return {
            'identifier': self.identifier,
            'title': self.title,
            'body': self.body,
            'trigger': self.trigger.as_dict(),
            'repeats': self.trigger.repeats
        }


class NotificationCenter:
    """
    Pending one-shot notifications plus the authorization handshake.

    Thread-safety:
    - Pending requests and authorization guarded by a lock
    - All completion callbacks run on the center thread
    """

    def __init__(
        self,
        authorizer: Callable[[], bool],
        channels: Sequence = (),
        clock: Callable[[], datetime] = None,
        poll_interval: float = 1.0
    ):
        """
        Initialize notification center and start its thread.

        Args:
            authorizer: Asked once, on the first authorization request;
                returns True to allow notifications
            channels: Delivery channels (objects with deliver(request))
            clock: Returns the current time (default: datetime.now)
            poll_interval: Seconds between due checks
        """
        self._authorizer = authorizer
        self._channels = list(channels)
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._poll_interval = poll_interval

        self._lock = threading.Lock()
        self._pending: Dict[str, NotificationRequest] = {}
        self._authorization = AuthorizationStatus.NOT_DETERMINED
        self._listeners: List[DeliveryListener] = []

        self._callbacks: Queue = Queue()
        self._shutdown = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="NoteKeeper-Notifications"
        )
        self._thread.start()

        logger.info(f"NotificationCenter started ({len(self._channels)} channel(s))")

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    @property
    def authorization_status(self) -> AuthorizationStatus:
        with self._lock:
            return self._authorization

    def request_authorization(self, completion: AuthorizationCallback):
        """
        Ask for permission to deliver notifications (asynchronous).

        The authorizer is consulted only while the answer is undetermined;
        later requests repeat the stored answer.

        Args:
            completion: Called on the center thread with (granted, error)
        """
        error = None
        with self._lock:
            if self._authorization == AuthorizationStatus.NOT_DETERMINED:
                try:
                    granted = bool(self._authorizer())
                except Exception as e:
                    logger.error(f"Notification authorization failed: {e}", exc_info=True)
                    error = e
                else:
                    self._authorization = (
                        AuthorizationStatus.AUTHORIZED if granted else AuthorizationStatus.DENIED
                    )
                    logger.info(f"Notification authorization: {self._authorization.value}")
            granted = self._authorization == AuthorizationStatus.AUTHORIZED

        self._dispatch(completion, granted, error)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, request: NotificationRequest, completion: Optional[RegistrationCallback] = None):
        """
        Register a request, replacing any pending one with the same identifier.

        Args:
            request: Notification to schedule
            completion: Called on the center thread with None or the error
        """
        error = None
        if not request.identifier:
            error = NotificationRegistrationError("Notification identifier cannot be empty")
        elif request.trigger.repeats:
            error = NotificationRegistrationError("Repeating triggers are not supported")
        else:
            try:
                if request.trigger.has_passed(self._clock()):
                    error = NotificationRegistrationError(
                        f"Trigger date has already passed: {request.trigger.fire_time().isoformat()}"
                    )
            except ValueError as e:
                error = NotificationRegistrationError(f"Invalid trigger: {e}")

        if error is None:
            with self._lock:
                self._pending[request.identifier] = request
            logger.info(
                f"Registered notification {request.identifier} for "
                f"{request.trigger.fire_time().isoformat()}"
            )
        else:
            logger.error(f"Rejected notification {request.identifier}: {error}")

        if completion is not None:
            self._dispatch(completion, error)

    def remove_pending(self, identifiers: Iterable[str]) -> List[str]:
        """
        Drop pending requests.

        Returns:
            Identifiers that were actually pending
        """
        removed = []
        with self._lock:
            for identifier in identifiers:
                if self._pending.pop(identifier, None) is not None:
                    removed.append(identifier)

        if removed:
            logger.info(f"Removed {len(removed)} pending notification(s)")
        return removed

    def pending_identifiers(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def add_delivery_listener(self, listener: DeliveryListener):
        """
        Register a listener told about every fired request.

        Called as listener(request, delivered); delivered is False when
        the request expired because notifications were not authorized.
        """
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def deliver_due(self, now: Optional[datetime] = None) -> List[NotificationRequest]:
        """
        Fire every pending request whose trigger minute has been reached.

        Args:
            now: Current time (default: clock)

        Returns:
            Requests that were removed from the pending set
        """
        now = now or self._clock()

        with self._lock:
            due = [r for r in self._pending.values() if r.trigger.matches(now)]
            for request in due:
                del self._pending[request.identifier]
            authorized = self._authorization == AuthorizationStatus.AUTHORIZED

        for request in due:
            if authorized:
                self._deliver(request)
            else:
                logger.warning(
                    f"Notification {request.identifier} expired undelivered "
                    f"(authorization: {self._authorization.value})"
                )
            self._notify_listeners(request, authorized)

        return due

    def _deliver(self, request: NotificationRequest):
        logger.info(f"Delivering notification {request.identifier}")
        for channel in self._channels:
            try:
                channel.deliver(request)
            except Exception as e:
                # One broken channel must not silence the others
                logger.error(f"Delivery channel {type(channel).__name__} failed: {e}", exc_info=True)

    def _notify_listeners(self, request: NotificationRequest, delivered: bool):
        for listener in list(self._listeners):
            try:
                listener(request, delivered)
            except Exception as e:
                logger.error(f"Delivery listener failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Center thread
    # ------------------------------------------------------------------

    def _dispatch(self, callback: Callable, *args):
        self._callbacks.put((callback, args))

    def _run(self):
        """
        Center thread - runs callbacks and fires due requests.

        Runs until shutdown signal.
        """
        while not self._shutdown.is_set():
            try:
                callback, args = self._callbacks.get(timeout=self._poll_interval)
            except Empty:
                pass
            else:
                try:
                    callback(*args)
                except Exception as e:
                    logger.error(f"Notification callback failed: {e}", exc_info=True)

            try:
                self.deliver_due()
            except Exception as e:
                logger.error(f"Due notification check failed: {e}", exc_info=True)

        logger.info("Notification center thread shutting down")

    def shutdown(self):
        """
        Stop the center thread and its channels.

        Pending requests are dropped.
        """
        logger.info("Shutting down NotificationCenter")
        self._shutdown.set()

        if self._thread.is_alive():
            self._thread.join(timeout=2.0)

            if self._thread.is_alive():
                logger.warning("Notification center thread did not stop cleanly")

        for channel in self._channels:
            try:
                channel.shutdown()
            except Exception as e:
                logger.error(f"Channel shutdown failed: {e}", exc_info=True)
