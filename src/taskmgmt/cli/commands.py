# src/taskmgmt/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.errors import TaskManagementError, ValidationError
from ..core.state import AppState
from ..tasks.task_api import create_sample_task, resolve_root
from ..tasks.task_models import Task, TaskFilter, TaskPriority, TaskSpec, TaskStatus

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

LIST_LIMIT = 50


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /create, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors become one-line replies; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except TaskManagementError as e:
            logger.debug("/%s rejected: %s", name, e)
            return f"Error ({type(e).__name__}): {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_task_line(task: Task) -> str:
    view = "calendar" if task.schedulable else "list"
    return (
        f"{task.id}  [{task.status.value}] {task.priority.value:<6} "
        f"{task.assignee}  {task.content_path}  due={_fmt_ts(task.due_at)} ({view})"
    )


def _fmt_task(task: Task) -> str:
    lines = [
        f"Task {task.id}",
        f"  root: {task.root_scope}",
        f"  content: {task.content_path}",
        f"  assignee: {task.assignee}",
        f"  priority: {task.priority.value}",
        f"  status: {task.status.value}",
        f"  start: {_fmt_ts(task.start_at)}",
        f"  due: {_fmt_ts(task.due_at)}",
        f"  schedulable: {'yes' if task.schedulable else 'no (list view only)'}",
        f"  created: {_fmt_ts(task.created_at)}",
    ]
    if task.completed_at is not None:
        lines.append(f"  completed: {_fmt_ts(task.completed_at)}")
    for k, v in sorted(task.custom_properties.items()):
        lines.append(f"  {k} = {v}")
    return "\n".join(lines)


def _split_kv(args: list[str]) -> tuple[list[str], dict[str, str]]:
    positional: list[str] = []
    kv: dict[str, str] = {}
    for a in args:
        if "=" in a:
            k, _, v = a.partition("=")
            kv[k] = v
        else:
            positional.append(a)
    return positional, kv


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    return (
        "Status:\n"
        f"  Storage: {getattr(s, 'storage_backend', 'sqlite')}\n"
        f"  Default root: {state.manager.default_root}\n"
        f"  Current root: {state.current_root}\n"
        f"  Tasks stored: {state.manager.count_tasks()}"
    )


def cmd_root(state: AppState, args: list[str]) -> str:
    """
    /root            -> show current root
    /root <scope>    -> switch to a project root
    /root default    -> back to the default global root
    """
    if not args:
        return f"Current root: {state.current_root}"
    raw = None if args[0].lower() == "default" else args[0]
    state.current_root = resolve_root(raw, state.manager.default_root)
    return f"Current root: {state.current_root}"


def cmd_roots(state: AppState, args: list[str]) -> str:
    roots = state.manager.roots()
    if not roots:
        return "No task roots yet (a root is created with its first task)."
    lines = ["Task roots:"]
    for r in roots:
        lines.append(f"  {r.scope} ({r.task_count} tasks)")
    return "\n".join(lines)


def cmd_create(state: AppState, args: list[str]) -> str:
    """/create <content_path> <assignee> [priority] [key=value ...]"""
    positional, props = _split_kv(args)
    if len(positional) < 2:
        return "Usage: /create <content_path> <assignee> [High|Medium|Low] [key=value ...]"
    priority = positional[2] if len(positional) > 2 else TaskPriority.MEDIUM
    spec = TaskSpec(
        content_path=positional[0],
        assignee=positional[1],
        priority=priority,
        custom_properties=props,
    )
    task = state.manager.create_task(spec, root_scope=state.current_root)
    return f"Created task {task.id} in {task.root_scope}."


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <id>"
    return _fmt_task(state.manager.get_task(state.current_root, args[0]))


def cmd_list(state: AppState, args: list[str]) -> str:
    """/list [status=..] [priority=..] [assignee=..]"""
    _, kv = _split_kv(args)
    status = None
    if "status" in kv:
        wanted = kv["status"].lower()
        matches = [s for s in TaskStatus if s.value.lower() == wanted]
        if not matches:
            raise ValidationError("status", "must be one of Active, Complete, Archived")
        status = matches[0]
    task_filter = TaskFilter(
        priority=TaskPriority.parse(kv["priority"]) if "priority" in kv else None,
        status=status,
        assignee=kv.get("assignee"),
    )

    lines: list[str] = []
    for task in state.manager.list_tasks(state.current_root, task_filter):
        if len(lines) >= LIST_LIMIT:
            lines.append(f"... (showing first {LIST_LIMIT})")
            break
        lines.append(_fmt_task_line(task))
    if not lines:
        return f"No matching tasks in {state.current_root}."
    return "\n".join([f"Tasks in {state.current_root}:", *lines])


def cmd_assign(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /assign <id> <assignee>"
    task = state.manager.reassign(state.current_root, args[0], args[1])
    return f"Task {task.id} assigned to {task.assignee}."


def cmd_priority(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /priority <id> <High|Medium|Low>"
    task = state.manager.reprioritize(state.current_root, args[0], args[1])
    return f"Task {task.id} priority is {task.priority.value}."


def cmd_complete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /complete <id>"
    task = state.manager.complete(state.current_root, args[0])
    return f"Task {task.id} is {task.status.value}."


def cmd_archive(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /archive <id>"
    task = state.manager.archive(state.current_root, args[0])
    return f"Task {task.id} is {task.status.value}."


def cmd_sample(state: AppState, args: list[str]) -> str:
    task = create_sample_task(state.manager, root_scope=state.current_root)
    return f"Sample task created: {task.id}\n{_fmt_task(task)}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage and root settings.")
registry.register("root", cmd_root, help_text="Show or switch the current root: /root [scope|default].")
registry.register("roots", cmd_roots, help_text="List known task roots.")
registry.register(
    "create",
    cmd_create,
    help_text="Create a task: /create <content_path> <assignee> [priority] [key=value ...].",
    aliases=["new"],
)
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register(
    "list",
    cmd_list,
    help_text="List tasks: /list [status=..] [priority=..] [assignee=..].",
    aliases=["ls"],
)
registry.register("assign", cmd_assign, help_text="Reassign: /assign <id> <assignee>.")
registry.register("priority", cmd_priority, help_text="Reprioritize: /priority <id> <High|Medium|Low>.")
registry.register("complete", cmd_complete, help_text="Complete an active task: /complete <id>.")
registry.register("archive", cmd_archive, help_text="Archive a completed task: /archive <id>.")
registry.register("sample", cmd_sample, help_text="Create the demonstration task.")
