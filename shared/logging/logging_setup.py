import logging
import logging.config
import os
from datetime import datetime
from logging import Logger

from pytz import timezone

_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "white": "\033[37m",
}

# logger methods that accept color=
_COLOR_METHODS = frozenset({"debug", "info", "warning", "error", "exception", "critical", "log"})


def _is_debug() -> bool:
    return os.getenv("LOG_LEVEL", "info").strip().lower() == "debug"


def _level_prefix(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "⛔ "
    if levelno == logging.WARNING:
        return "⚠️ "
    return ""


class CustomFormatter(logging.Formatter):
    """Formatter with timezone-aware timestamps and a level marker for warnings and errors."""

    def __init__(self, tz_name, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, self.tz)
        return dt.strftime(datefmt) if datefmt else dt.isoformat()

    def format(self, record):
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # malformed format args from third-party loggers
            message = str(record.msg)
        # records are shared between handlers
        record = logging.makeLogRecord(record.__dict__)
        record.msg = _level_prefix(record.levelno) + message
        record.args = ()
        return super().format(record)


class ColoredFormatter(CustomFormatter):
    """Console formatter that wraps a line in the ANSI color named by the record's `color` attribute."""

    def format(self, record) -> str:
        line = super().format(record)
        ansi = _COLOR_MAP.get(getattr(record, "color", None) or "")
        return f"{ansi}{line}{_ANSI_RESET}" if ansi else line


class ColorLogger:
    """Wraps a Logger so every log method accepts an optional `color=` keyword.

        logger.info("reindex finished", color="green")

    Only the console handler renders the color; the log file stays plain.
    Everything else (setLevel, handlers, ...) is delegated to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def __getattr__(self, name):
        target = getattr(self._logger, name)
        if name not in _COLOR_METHODS:
            return target

        def emit(*args, color: str | None = None, **kwargs):
            if color is not None:
                kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
            return target(*args, **kwargs)

        return emit


def setup_logging(name: str = "vault_similarity_bridge") -> ColorLogger:
    """Configure console and file logging and return the application logger.

    Log files go to LOG_DIR, or to $ROOT_DIR/logs when LOG_DIR is unset.
    Timestamps use TIMEZONE (default Europe/Berlin). LOG_LEVEL=debug
    lowers the level and also lets httpx request logs through.
    """
    level = logging.DEBUG if _is_debug() else logging.INFO
    log_dir = os.getenv("LOG_DIR") or os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    os.makedirs(log_dir, exist_ok=True)

    def formatter(formatter_class: type) -> dict:
        return {"()": formatter_class, "format": _LOG_FORMAT, "datefmt": _DATE_FORMAT, "tz_name": tz_name}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": formatter(CustomFormatter),
            "colored": formatter(ColoredFormatter),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colored",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file": {
                "class": "logging.FileHandler",
                "formatter": "standard",
                "level": level,
                "filename": os.path.join(log_dir, f"{name}.log"),
                "encoding": "utf-8",
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
    })
    logging.getLogger("httpx").setLevel(level if level == logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(name))
