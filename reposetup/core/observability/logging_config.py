"""
Logging configuration for a provisioning run.

Two loggers carry the commands themselves:

    reposetup.commands          one record per command, echoed on the
                                console as ``+ <command>`` (like ``set -x``)
    reposetup.commands.output   captured stdout/stderr of those commands,
                                at DEBUG; hidden on the console unless the
                                level is DEBUG, kept in the log file when its
                                level allows

Everything else is ordinary module logging via ``logging.getLogger(__name__)``.
Levels come from Settings (REPOSETUP_LOG_LEVEL, REPOSETUP_LOG_FILE,
REPOSETUP_LOG_FILE_LEVEL).
"""

from __future__ import annotations

import logging
import sys

COMMAND_LOGGER = "reposetup.commands"
OUTPUT_LOGGER = "reposetup.commands.output"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


class ConsoleFormatter(logging.Formatter):
    """Installer-style console lines.

    Command records print as ``+ <command>``, command output as
    ``  | <line>``, warnings and errors with their level name. Only at
    DEBUG do the other records get a timestamp and source location.
    """

    def __init__(self, debug: bool = False):
        super().__init__(_FMT_DEBUG if debug else "%(message)s", datefmt=_DATEFMT)
        self._debug = debug

    def format(self, record: logging.LogRecord) -> str:
        if record.name == COMMAND_LOGGER:
            return f"+ {record.getMessage()}"
        if record.name == OUTPUT_LOGGER:
            return f"  | {record.getMessage()}"
        line = super().format(record)
        if not self._debug and record.levelno >= logging.WARNING:
            return f"{record.levelname}: {line}"
        return line


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure logging for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path of a log file.
        log_file_level: Level of the log file, defaults to ``level``.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter(debug=console_level <= logging.DEBUG))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)


def _parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names give INFO."""
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.INFO
    return numeric
