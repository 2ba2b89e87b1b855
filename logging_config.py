import os
import gzip
import shutil
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from colorama import Fore, Style

import settings


class CompressingRotatingFileHandler(RotatingFileHandler):
    """
    Size-based rotation that gzips the newest backup and copes with log
    files held open by another process (copy + truncate instead of rename).
    """
    def rotate(self, source: str, dest: str) -> None:
        try:
            os.replace(source, dest)
        except PermissionError:
            try:
                shutil.copy2(source, dest)
                with open(source, 'w'):
                    pass
            except OSError as e:
                logging.getLogger(__name__).error(f"[LOGGING] rotate fallback failed: {e}")

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
        self.stream = None

        try:
            super().doRollover()
        except FileNotFoundError:
            return

        backup = f"{self.baseFilename}.1"
        if self.backupCount > 0 and os.path.exists(backup):
            with open(backup, 'rb') as f_in, gzip.open(f"{backup}.gz", 'wb') as f_out:
                shutil.copyfileobj(f_in, f_out)
            os.remove(backup)

        if self.stream is None:
            self.stream = self._open()


class ColorFormatter(logging.Formatter):
    """Colors the level name on console output."""
    COLORS = {
        logging.DEBUG: Fore.BLUE,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.MAGENTA,
    }

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.COLORS.get(record.levelno)
        if color is None:
            return text
        return text.replace(record.levelname, f"{color}{record.levelname}{Style.RESET_ALL}", 1)


def configure_logging(
    log_file_path: Optional[str] = settings.LOG_FILE,
    max_bytes: int = settings.LOG_MAX_BYTES,
    backup_count: int = settings.LOG_BACKUP_COUNT,
    level: int = logging.INFO,
    console: bool = False,
    fmt: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt: str = "%Y-%m-%d %H:%M:%S"
) -> logging.Logger:
    """
    Reset the root logger and attach the replay engine's handlers.

    - log_file_path: active log file; None disables file logging
    - max_bytes:     size that triggers a rotation
    - backup_count:  compressed backups kept
    - console:       also log to stderr with colored level names
    """
    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if log_file_path:
        file_handler = CompressingRotatingFileHandler(
            filename=log_file_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(ColorFormatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(stream_handler)

    return root
