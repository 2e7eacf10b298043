"""
NoteKeeper Delivery Channels

How a due notification reaches the user:
- ConsoleChannel: prints a banner to the terminal
- VoiceChannel: speaks the notification with pyttsx3 (non-blocking)

Each channel exposes deliver(request) and shutdown().
"""

import logging
import sys
import threading
from queue import Queue, Empty
from typing import TYPE_CHECKING, TextIO

import pyttsx3

if TYPE_CHECKING:
    from .notification_center import NotificationRequest

logger = logging.getLogger(__name__)


class ConsoleChannel:
    """Print notifications to a text stream"""

    def __init__(self, stream: TextIO = None):
        self.stream = stream if stream is not None else sys.stdout

    def deliver(self, request: "NotificationRequest"):
        print("\n" + "=" * 70, file=self.stream)
        print(f"⏰ {request.title}", file=self.stream)
        print("=" * 70, file=self.stream)
        print(f"\n{request.body}\n", file=self.stream, flush=True)

    def shutdown(self):
        pass


class VoiceChannel:
    """
    Non-blocking spoken notifications.

    Design:
    - Lightweight wrapper around pyttsx3
    - Engine lives in its own worker thread
    - Queue-based so delivery never blocks the notification center
    """

    def __init__(self, rate: int = 175):
        """
        Initialize TTS worker.

        Args:
            rate: Speech rate (words per minute, default: 175)
        """
        self.tts_queue: Queue = Queue()
        self._shutdown = threading.Event()
        self._rate = rate

        self.tts_thread = threading.Thread(
            target=self._tts_worker,
            daemon=True,
            name="NoteKeeper-TTS"
        )
        self.tts_thread.start()

        logger.info(f"VoiceChannel initialized (rate={rate})")

    def deliver(self, request: "NotificationRequest"):
        if not request.body.strip():
            return
        text = f"{request.title}. {request.body}"
        self.tts_queue.put(text)
        logger.debug(f"Queued TTS: {text[:50]}...")

    def _tts_worker(self):
        """
        TTS worker thread - consumes queue and speaks.

        Runs continuously until shutdown signal.
        """
        engine = None

        try:
            logger.info("Initializing TTS engine in worker thread...")
            engine = pyttsx3.init()
            engine.setProperty('rate', self._rate)
            logger.info("TTS engine initialized")

            while not self._shutdown.is_set():
                try:
                    # Timeout keeps the shutdown check responsive
                    text = self.tts_queue.get(timeout=0.5)
                except Empty:
                    continue

                try:
                    logger.info(f"Speaking: {text}")
                    engine.say(text)
                    engine.runAndWait()
                except Exception as e:
                    logger.error(f"TTS error: {e}", exc_info=True)
                    # Reinitialize engine on error
                    try:
                        engine.stop()
                        engine = pyttsx3.init()
                        engine.setProperty('rate', self._rate)
                        logger.info("TTS engine reinitialized after error")
                    except Exception:
                        logger.error("Failed to reinitialize TTS engine", exc_info=True)

        except Exception as e:
            logger.error(f"TTS worker initialization failed: {e}", exc_info=True)

        finally:
            if engine:
                try:
                    engine.stop()
                except Exception:
                    logger.debug("TTS engine stop failed", exc_info=True)
            logger.info("TTS worker shutting down")

    def shutdown(self):
        """Signal the worker to stop and wait briefly for it"""
        logger.info("Shutting down VoiceChannel")
        self._shutdown.set()

        if self.tts_thread.is_alive():
            self.tts_thread.join(timeout=2.0)

            if self.tts_thread.is_alive():
                logger.warning("TTS worker thread did not stop cleanly")
