"""
Operator Alerts
===============

Three ways of telling the operator something is wrong:

    - Alert: persistent indicator, shown for as long as the condition holds
      (e.g. "Pivot motor disconnected!"). Grouped in an AlertGroup so a
      dashboard can list what is currently active.
    - NotificationSink: one-shot pop-up notification. Controllers only send
      these on a state edge, never every cycle.
    - ErrorReporter: operator-visible error channel for rejected commands.

All sinks are synchronous and must not raise into the control loop.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, List, Optional, TextIO

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    """Severity of a one-shot notification."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass
class Notification:
    """Dashboard notification payload."""
    level: NotificationLevel = NotificationLevel.INFO
    title: str = ""
    description: str = ""
    display_time_ms: int = 3000
    width: float = 350.0
    height: float = -1.0           # -1 lets the dashboard size it

    def to_json(self) -> str:
        """Serialize for the dashboard transport."""
        data = asdict(self)
        data["level"] = self.level.value
        return json.dumps(data)


class NotificationSink(ABC):
    """Delivers one-shot notifications to the operator."""

    @abstractmethod
    def send(self, level: NotificationLevel, title: str, message: str):
        """Send a notification. Fire-and-forget."""

    def send_notification(self, notification: Notification):
        """Send a prebuilt Notification."""
        self.send(notification.level, notification.title, notification.description)


class LoggingNotificationSink(NotificationSink):
    """Notification sink that writes to the log."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger
        self.sent_count = 0

    def send(self, level: NotificationLevel, title: str, message: str):
        self._log.log(_LOG_LEVELS[level], f"[{level.value}] {title}: {message}")
        self.sent_count += 1


class JsonNotificationSink(NotificationSink):
    """
    Notification sink writing one JSON object per line to a stream.

    Intended for piping notifications to a dashboard bridge process.
    """

    def __init__(self, stream: TextIO, display_time_ms: int = 3000):
        self._stream = stream
        self._display_time_ms = display_time_ms

    def send(self, level: NotificationLevel, title: str, message: str):
        notification = Notification(
            level=level,
            title=title,
            description=message,
            display_time_ms=self._display_time_ms,
        )
        try:
            self._stream.write(notification.to_json() + "\n")
            self._stream.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to deliver notification '{title}': {e}")


class ErrorReporter(ABC):
    """Operator-visible error channel."""

    @abstractmethod
    def report_error(self, message: str):
        """Report an error without interrupting the caller."""


class LoggingErrorReporter(ErrorReporter):
    """Error reporter that writes to the log at ERROR level."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger
        self.error_count = 0

    def report_error(self, message: str):
        self._log.error(message)
        self.error_count += 1


class AlertType(Enum):
    """Persistent alert severity."""
    ERROR = "errors"
    WARNING = "warnings"
    INFO = "infos"


class AlertGroup:
    """Collection of alerts displayed together on a dashboard."""

    def __init__(self, name: str = "Alerts"):
        self.name = name
        self._alerts: List['Alert'] = []

    def register(self, alert: 'Alert'):
        self._alerts.append(alert)

    def get_active(self, alert_type: Optional[AlertType] = None) -> List[str]:
        """
        Get texts of active alerts, most recently activated first.

        Args:
            alert_type: Restrict to one severity, or None for all
        """
        active = [
            a for a in self._alerts
            if a.active and (alert_type is None or a.alert_type == alert_type)
        ]
        active.sort(key=lambda a: a.activated_at, reverse=True)
        return [a.text for a in active]

    def summary(self) -> Dict[str, List[str]]:
        """Active alert texts keyed by severity."""
        return {t.value: self.get_active(t) for t in AlertType}


class Alert:
    """
    Persistent alert that stays visible while active.

    Calling set() every cycle is expected; only changes are logged.
    """

    def __init__(self, text: str, alert_type: AlertType = AlertType.WARNING,
                 group: Optional[AlertGroup] = None):
        self.text = text
        self.alert_type = alert_type
        self.active = False
        self.activated_at = 0.0
        self.group = group or AlertGroup()
        self.group.register(self)

    def set(self, active: bool):
        """Set whether the alert is displayed."""
        if active and not self.active:
            self.activated_at = time.time()
            logger.warning(f"Alert raised: {self.text}")
        elif not active and self.active:
            logger.info(f"Alert cleared: {self.text}")
        self.active = active
