"""
NoteKeeper Configuration

Runtime settings read once at startup from environment variables.
Explicit constructor arguments always win.

    NOTEKEEPER_HOME           storage directory (default: ~/.notekeeper)
    NOTEKEEPER_LOG_LEVEL      DEBUG, INFO, WARNING, ERROR (default: INFO)
    NOTEKEEPER_NOTIFICATIONS  allow | deny (default: allow)
    NOTEKEEPER_VOICE          1 to also speak reminders (default: off)
    NOTEKEEPER_POLL_INTERVAL  seconds between due checks (default: 1.0)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(ValueError):
    """Raised when an environment setting has an invalid value"""
    pass


@dataclass
class AppConfig:
    """Startup settings"""
    storage_dir: Optional[Path] = None  # None = resolve_storage_dir default
    log_level: str = "INFO"
    notifications_allowed: bool = True  # Answer given to permission requests
    voice_enabled: bool = False         # Speak delivered reminders via pyttsx3
    poll_interval: float = 1.0          # Seconds between due-reminder checks

    def __post_init__(self):
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}. Use one of {_LOG_LEVELS}")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'AppConfig':
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read (default: os.environ)

        Raises:
            ConfigError: If a value cannot be parsed
        """
        env = os.environ if environ is None else environ

        storage_dir = env.get("NOTEKEEPER_HOME")

        notifications = env.get("NOTEKEEPER_NOTIFICATIONS", "allow").strip().lower()
        if notifications not in ("allow", "deny"):
            raise ConfigError(f"NOTEKEEPER_NOTIFICATIONS must be 'allow' or 'deny', got '{notifications}'")

        raw_interval = env.get("NOTEKEEPER_POLL_INTERVAL", "1.0")
        try:
            poll_interval = float(raw_interval)
        except ValueError as e:
            raise ConfigError(f"NOTEKEEPER_POLL_INTERVAL must be a number, got '{raw_interval}'") from e

        config = cls(
            storage_dir=Path(storage_dir) if storage_dir else None,
            log_level=env.get("NOTEKEEPER_LOG_LEVEL", "INFO"),
            notifications_allowed=notifications == "allow",
            voice_enabled=env.get("NOTEKEEPER_VOICE", "").strip().lower() in _TRUE_VALUES,
            poll_interval=poll_interval
        )
        logger.debug(f"Loaded config: {config}")
        return config

    def configure_logging(self):
        """Apply log level with the standard NoteKeeper format"""
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
