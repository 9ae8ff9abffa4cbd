"""Console + optional rotating file logging for the CLI."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


class PlainFormatter(logging.Formatter):
    """``time LEVEL [module] message`` with no ANSI codes, for files and pipes."""

    time_format = "%Y-%m-%d %H:%M:%S"

    @staticmethod
    def _module(record: logging.LogRecord) -> str:
        return record.name.rsplit(".", 1)[-1][:12]

    def format(self, record: logging.LogRecord) -> str:
        ts = self.formatTime(record, self.time_format)
        line = f"{ts} {record.levelname:<8s} [{self._module(record):>12s}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ColorFormatter(PlainFormatter):
    """Short timestamps and one colour per level, for an interactive stderr."""

    time_format = "%H:%M:%S"
    _LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    _DIM = "\033[2m"
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self._LEVEL_COLORS.get(record.levelno, "")
        dim, reset = self._DIM, self._RESET
        ts = self.formatTime(record, self.time_format)
        line = (
            f"{dim}{ts}{reset} {color}{record.levelname:<8s}{reset} "
            f"{dim}[{self._module(record):>12s}]{reset} {color}{record.getMessage()}{reset}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", log_file: str = "") -> list[logging.Handler]:
    """Install handlers on the root logger and return them.

    Color is used only when stderr is a terminal.  When *log_file* is set a
    ``RotatingFileHandler`` (10 MB x 3) is added.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColorFormatter() if sys.stderr.isatty() else PlainFormatter())
    handlers: list[logging.Handler] = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(path),
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(PlainFormatter())
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)
    return handlers


__all__ = ["ColorFormatter", "PlainFormatter", "configure_logging"]
