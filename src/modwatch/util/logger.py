import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

# -------------------- Configuration --------------------
LOGS_DIR: Path = Path(os.getenv("MODWATCH_LOG_DIR") or (Path(__file__).parents[3] / "logs")).resolve()
LOGS_DIR.mkdir(parents=True, exist_ok=True)

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"

LOG_COLORS = {
    "DEBUG": "\033[36m",      # Cyan
    "INFO": "\033[32m",       # Green
    "WARNING": "\033[33m",    # Yellow
    "ERROR": "\033[31m",      # Red
    "CRITICAL": "\033[38;5;88m",  # Dark Red (ANSI 256-color)
}
RESET_COLOR = "\033[0m"

# Shared session log file, resolved on first use
LOG_FILEPATH: Path | None = None

# Session log files older than this are not reused after a restart
SESSION_REUSE_SECONDS = 60
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def console_level() -> int:
    """Console verbosity from ``MODWATCH_LOG_LEVEL`` (a level name), INFO by default.

    The log file always receives DEBUG records.
    """
    name = os.getenv("MODWATCH_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


# -------------------- Formatters --------------------
class ColorFormatter(logging.Formatter):
    """
    Log formatter that wraps each record in an ANSI colour chosen by level.

    DEBUG is cyan, INFO green, WARNING yellow, ERROR red and CRITICAL dark red.
    Levels without a colour are returned unchanged.
    """

    def format(self, record: logging.LogRecord) -> str:
        color = LOG_COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{RESET_COLOR}" if color else message


class PromptToolkitHandler(logging.Handler):
    """
    Console handler that prints through prompt_toolkit.

    Using ``print_formatted_text`` keeps log lines from tearing an active
    prompt when the bot is run from an interactive terminal.

    Args:
        formatter (logging.Formatter | None): Optional formatter to apply to log records.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            print_formatted_text(ANSI(msg))
        except Exception:
            self.handleError(record)


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)


def should_use_color() -> bool:
    """
    Return True when stderr is a TTY and ANSI colours can be used.
    """
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


color_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


# -------------------- Logger Setup --------------------

def get_log_filepath() -> Path:
    """
    Return the log file shared by every logger in this session.

    The newest log file from today is reused when it was touched within
    ``SESSION_REUSE_SECONDS`` (a quick restart); otherwise a new file named
    after the current timestamp is used.
    """
    global LOG_FILEPATH

    if LOG_FILEPATH is None:
        today_prefix = datetime.now().strftime("%Y-%m-%d")
        existing_logs = sorted(LOGS_DIR.glob(f"{today_prefix}*.log"), key=lambda p: p.stat().st_mtime, reverse=True)

        if existing_logs and datetime.now().timestamp() - existing_logs[0].stat().st_mtime < SESSION_REUSE_SECONDS:
            LOG_FILEPATH = existing_logs[0]
        else:
            LOG_FILEPATH = LOGS_DIR / (datetime.now().strftime(DATE_FORMAT) + ".log")

    return LOG_FILEPATH


def setup_logger(logger_name: str) -> logging.Logger:
    """Attach the console and rotating session-file handlers to a named logger.

    Parameters
    ----------
    logger_name:
        Name of the logger to configure.

    Returns
    -------
    logging.Logger
        Configured logger instance. Calling this twice for the same name
        returns the already configured logger.
    """
    logger = logging.getLogger(logger_name)

    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler(formatter=color_formatter)
    console_handler.setLevel(console_level())
    logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        get_log_filepath(),
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain_formatter)
    logger.addHandler(file_handler)

    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Retrieve a logger configured for modwatch, creating it if necessary."""
    return setup_logger(logger_name)


# -------------------- Exception Handling --------------------
def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """
    Log uncaught exceptions; installed as ``sys.excepthook``.

    KeyboardInterrupt is handed to the default hook so Ctrl+C still exits
    normally.
    """
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
    else:
        logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


# -------------------- Suppress Noisy Libraries --------------------
NOISY_LOGGERS = [
    "discord", "discord.gateway", "discord.client", "discord.http",
    "websockets", "aiohttp",
]

for noisy_logger in NOISY_LOGGERS:
    lg = logging.getLogger(noisy_logger)
    lg.setLevel(logging.ERROR)
    lg.propagate = False
    lg.handlers = []


sys.excepthook = handle_exception
