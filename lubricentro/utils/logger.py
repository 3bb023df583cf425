import logging
import logging.handlers
import os
from datetime import date


LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LOG_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "storage", "logs")
)


def daily_log_path(base_log_dir, day):
    """<base>/<YYYY>/<MM>/log-<YYYY-MM-DD>.log, creating the month folder."""
    folder = os.path.join(base_log_dir, f"{day:%Y}", f"{day:%m}")
    os.makedirs(folder, exist_ok=True)
    return os.path.join(folder, f"log-{day:%Y-%m-%d}.log")


class DynamicDailyFileHandler(logging.handlers.WatchedFileHandler):
    """
    Writes each day's records to its own file. The stream is reopened on
    the first record emitted after midnight, so long-running workers and
    CLI jobs never keep appending to yesterday's file.
    """

    def __init__(self, base_log_dir, encoding="utf-8"):
        self.base_log_dir = base_log_dir
        self.current_day = date.today()
        super().__init__(daily_log_path(base_log_dir, self.current_day), encoding=encoding, delay=True)

    def _roll_to(self, day):
        if self.stream is not None:
            self.stream.close()
            self.stream = None
        self.current_day = day
        self.baseFilename = daily_log_path(self.base_log_dir, day)

    def emit(self, record):
        try:
            today = date.today()
            if today != self.current_day:
                self._roll_to(today)
            super().emit(record)
        except Exception:
            self.handleError(record)


def build_logger(name="lubricentro", log_dir=None):
    """Console at DEBUG, daily file at INFO. Safe to call more than once."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    log_dir = log_dir or os.environ.get("APP_LOG_DIR") or DEFAULT_LOG_DIR

    for handler, level in (
        (logging.StreamHandler(), logging.DEBUG),
        (DynamicDailyFileHandler(log_dir), logging.INFO),
    ):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


Log = build_logger()

__all__ = ["Log", "build_logger"]
