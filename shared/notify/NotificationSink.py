"""Write-only, best-effort channel for operator-facing status messages."""

from abc import ABC, abstractmethod
from enum import Enum

from pydantic import BaseModel

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    message: str
    level: NotificationLevel = NotificationLevel.INFO


class NotificationSink(ABC):
    """Fire-and-forget sink for progress, status and error messages."""

    @abstractmethod
    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        """
        Deliver a message to the operator. Delivery is best-effort.

        Args:
            message (str): Human-readable message.
            level (NotificationLevel): Severity of the message.
        """
        pass


class NotificationSinkLogger(NotificationSink):
    """Sink that forwards notifications to the application logger."""

    _COLORS: dict[NotificationLevel, str] = {
        NotificationLevel.INFO: "cyan",
        NotificationLevel.SUCCESS: "green",
        NotificationLevel.WARNING: "yellow",
        NotificationLevel.ERROR: "red",
    }

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        kwargs = {}
        if isinstance(self.logging, ColorLogger):
            kwargs["color"] = self._COLORS[level]
        if level == NotificationLevel.ERROR:
            self.logging.error("[notice] %s", message, **kwargs)
        elif level == NotificationLevel.WARNING:
            self.logging.warning("[notice] %s", message, **kwargs)
        else:
            self.logging.info("[notice] %s", message, **kwargs)


class NotificationSinkMemory(NotificationSink):
    """Sink that keeps the most recent notifications in memory, e.g. for the status API."""

    def __init__(self, max_items: int = 100) -> None:
        self._max_items = max_items
        self.notifications: list[Notification] = []

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        self.notifications.append(Notification(message=message, level=level))
        del self.notifications[:-self._max_items]

    def get_messages(self) -> list[str]:
        return [n.message for n in self.notifications]


class NotificationSinkComposite(NotificationSink):
    """Sink that forwards every notification to several sinks.

    Delivery is best-effort per sink: a sink that raises is logged and the
    remaining sinks still receive the message.
    """

    def __init__(self, helper_config: HelperConfig, sinks: list[NotificationSink]) -> None:
        self.logging = helper_config.get_logger()
        self._sinks = list(sinks)

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> None:
        for sink in self._sinks:
            try:
                sink.notify(message, level)
            except Exception:
                self.logging.exception("Notification sink %s failed for message %r", type(sink).__name__, message)
