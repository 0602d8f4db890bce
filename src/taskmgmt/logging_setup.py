# src/taskmgmt/logging_setup.py

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

APP_LOGGER = "taskmgmt"
AUDIT_LOGGER = "taskmgmt.audit"
STORAGE_LOGGER = "taskmgmt.storage"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_AUDIT_FORMAT = "%(asctime)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True, frozen=True)
class LogFiles:
    main: Path
    audit: Path


def _under(name: str, prefix: str) -> bool:
    return name == prefix or name.startswith(prefix + ".")


class _ConsoleFilter(logging.Filter):
    """
    Console is for the person at the prompt:
    - audit lines go to their own file, never to the console
    - storage records only from INFO up
    - other taskmgmt records pass
    - anything else (third party, py.warnings) only from ERROR up
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if _under(name, AUDIT_LOGGER):
            return False
        if _under(name, STORAGE_LOGGER):
            return record.levelno >= logging.INFO
        if _under(name, APP_LOGGER):
            return True
        return record.levelno >= logging.ERROR


def _file_handler(path: Path, level: int, fmt: str) -> logging.FileHandler:
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=_DATEFMT))
    return handler


def _drop_audit_handlers(audit: logging.Logger) -> None:
    for h in list(audit.handlers):
        audit.removeHandler(h)
        h.close()


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskmgmt",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    audit_level: int = logging.INFO,
) -> LogFiles:
    """
    Route logs for one taskmgmt process.

    - stderr: filtered, at `console_level`
    - <log_dir>/taskmgmt.log: everything from `file_level`, audit lines included
    - <log_dir>/audit.log: lifecycle events only, one line each

    Safe to call again (e.g. with another log_dir): handlers are replaced, not stacked.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    files = LogFiles(main=log_dir / "taskmgmt.log", audit=log_dir / "audit.log")

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)
    root.addHandler(_file_handler(files.main, file_level, _FORMAT))

    audit = logging.getLogger(AUDIT_LOGGER)
    _drop_audit_handlers(audit)
    audit.setLevel(audit_level)
    audit.addHandler(_file_handler(files.audit, audit_level, _AUDIT_FORMAT))

    logging.captureWarnings(True)
    return files
