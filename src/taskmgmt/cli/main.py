# src/taskmgmt/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import StorageError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_files = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (log=%s, audit=%s)...", settings.app_name, log_files.main, log_files.audit)

    try:
        state = create_initial_state(settings=settings)
    except StorageError:
        logger.exception("Storage is unavailable (backend=%s).", settings.storage_backend)
        return 1

    try:
        run_console_loop(state)
    finally:
        shutdown_state(state)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
