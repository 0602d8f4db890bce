# src/taskmgmt/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_events import Subscription
from ..tasks.task_manager import TaskManager
from .ports import Storage


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    storage: Storage
    manager: TaskManager

    # Root used by slash commands that do not name one explicitly.
    current_root: str = ""

    subscriptions: list[Subscription] = field(default_factory=list)
