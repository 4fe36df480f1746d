from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

LOGGER_NAME = "knowledge_engine"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_ANSI_RESET = "\033[0m"
_COLOR_MAP: dict[str, str] = {
    "cyan":    "\033[36m",
    "green":   "\033[32m",
    "yellow":  "\033[33m",
    "red":     "\033[31m",
    "magenta": "\033[35m",
    "blue":    "\033[34m",
    "white":   "\033[37m",
}

# Component tags at the start of a message get a default console color
_TAG_COLORS: dict[str, str] = {
    "[Embed]": "cyan",
    "[RAG]": "magenta",
    "[Knowledge]": "green",
    "[Preprocess]": "blue",
}

_LEVEL_PREFIXES: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


def get_log_level() -> int:
    """Resolve LOG_LEVEL (debug, info, warning, error) to a logging level, INFO by default."""
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "info").strip().upper())
    return level if isinstance(level, int) else logging.INFO


class CustomFormatter(logging.Formatter):
    """Timezone-aware formatter that prefixes warnings and errors with a marker."""

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
            # malformed %-args: log the raw template rather than dropping the record
            message = str(record.msg)

        # every handler formats the same record, restore it for the next one
        original = record.msg, record.args
        record.msg = _LEVEL_PREFIXES.get(record.levelno, "") + message
        record.args = ()
        try:
            return super().format(record)
        finally:
            record.msg, record.args = original


class ColoredFormatter(CustomFormatter):
    """Console formatter. An explicit ``color`` on the record wins over the component tag color."""

    def format(self, record) -> str:
        color_name = getattr(record, "color", None) or self._tag_color(record)
        line = super().format(record)
        ansi = _COLOR_MAP.get(color_name, "") if color_name else ""
        return f"{ansi}{line}{_ANSI_RESET}" if ansi and line else line

    @staticmethod
    def _tag_color(record) -> str | None:
        msg = str(record.msg)
        for tag, color in _TAG_COLORS.items():
            if msg.startswith(tag):
                return color
        return None


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts an optional ``color=`` keyword.

    Usage::

        logger.info("[RAG] Search complete", color="cyan")

    Colors only affect the console handler; the file handler writes plain text.
    Everything else is delegated to the wrapped logger.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _log(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._log(logging.ERROR, msg, args, color, kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def setup_logging() -> ColorLogger:
    """Configure console and file logging and return the application logger.

    LOG_LEVEL, TIMEZONE and ROOT_DIR (log files go to ROOT_DIR/logs) are
    read from the environment. LOG_TO_FILE=false disables the file handler.
    """
    loglevel = get_log_level()
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")
    log_to_file = os.getenv("LOG_TO_FILE", "true").strip().lower() in ("true", "1", "yes")

    handlers: dict = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "colored",
            "level": loglevel,
            "stream": "ext://sys.stdout",
        },
    }
    if log_to_file:
        log_dir = os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "standard",
            "level": loglevel,
            "filename": os.path.join(log_dir, f"{LOGGER_NAME}.log"),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"()": CustomFormatter, "format": LOG_FORMAT, "datefmt": LOG_DATEFMT, "tz_name": tz_name},
            "colored": {"()": ColoredFormatter, "format": LOG_FORMAT, "datefmt": LOG_DATEFMT, "tz_name": tz_name},
        },
        "handlers": handlers,
        "root": {"handlers": list(handlers), "level": loglevel},
    })

    # httpx logs every embedding and qdrant request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if loglevel == logging.DEBUG else logging.WARNING)

    return ColorLogger(logging.getLogger(LOGGER_NAME))
