"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskSpec, TaskStatus, TaskPriority, TaskFilter)
- task_store.py: versioned CRUD over a Storage port
- task_manager.py: lifecycle rules (create/reassign/reprioritize/complete/archive)
- task_events.py: lifecycle event notifier
- task_api.py: factory functions and the sample task helper
"""
