# src/taskmgmt/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

EXIT_COMMANDS = frozenset({"/exit", "/quit"})
NOT_A_COMMAND = "Commands start with '/'. Use /help to list available commands."
INTERNAL_ERROR = "Internal error while handling a command."


def _say(text: str) -> None:
    """Print a reply; only its first line carries the timestamp."""
    stamp = f"[{datetime.now().astimezone():%Y-%m-%d %H:%M:%S}] "
    first, *rest = text.splitlines() or [""]
    print(stamp + first)
    for line in rest:
        print(" " * len(stamp) + line)


def _read_line(prompt: str) -> str | None:
    """Next stripped input line, or None when the user ends the session."""
    try:
        return input(prompt).strip()
    except EOFError:
        logger.info("Console EOF received.")
    except KeyboardInterrupt:
        print()
        logger.info("Console interrupted.")
    return None


def _dispatch(state: AppState, line: str) -> str:
    try:
        reply = command_registry.handle(state, line)
    except Exception:
        logger.exception("Command %r crashed (root=%s).", line.split()[0], state.current_root)
        return INTERNAL_ERROR
    return NOT_A_COMMAND if reply is None else reply


def run_console_loop(state: AppState) -> int:
    """
    Interactive prompt over the command registry. The prompt shows the current
    task root, which /root can switch.

    Returns how many lines were handled, for the shutdown log line.
    """
    backend = getattr(state.settings, "storage_backend", "?")
    logger.info("Console started (backend=%s, root=%s).", backend, state.current_root)
    _say(f"Task console on {backend} storage. /help lists commands, /exit quits.")

    handled = 0
    while True:
        line = _read_line(f"{state.current_root}> ")
        if line is None:
            break
        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            break
        _say(_dispatch(state, line))
        handled += 1

    logger.info("Console finished after %d lines.", handled)
    return handled
