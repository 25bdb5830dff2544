# apps/common/log_utils.py
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class ColoredConsoleFormatter(logging.Formatter):
    """Colors the metadata part of a line, leaves the message plain."""

    COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[37m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not sys.stderr.isatty():
            return message
        color = self.COLORS.get(record.levelname, self.RESET)
        parts = message.rsplit(" | ", 1)
        if len(parts) == 2:
            return f"{color}{parts[0]}{self.RESET} | {parts[1]}"
        return f"{color}{message}{self.RESET}"


def setup_logging(
    log_file: Optional[Union[str, Path]] = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Console logging always; rotating file logging when ``log_file`` is given.
    Safe to call more than once (Streamlit reruns the script on every action).
    """
    root = logging.getLogger()
    if getattr(root, "_caption_review_configured", False):
        return

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(ColoredConsoleFormatter(LOG_FORMAT))
    handlers: List[logging.Handler] = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    level = min(console_level, file_level) if log_file else console_level
    logging.basicConfig(level=level, handlers=handlers)
    root._caption_review_configured = True  # type: ignore[attr-defined]
