"""Standalone task-management core: tasks, task roots, lifecycle events."""

__version__ = "0.1.0"
