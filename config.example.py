# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKMGMT_APP_NAME": "App display name (default: taskmgmt).",
    "TASKMGMT_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Storage
    "TASKMGMT_STORAGE_BACKEND": "sqlite (default) or memory (nothing persisted).",
    "TASKMGMT_DATA_DIR": "Local data directory for the database and log file (default: .local/taskmgmt).",
    "TASKMGMT_TASKS_DB_PATH": "SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKMGMT_SQLITE_TIMEOUT": "Seconds to wait on a locked database (default: 30).",
    # Task roots
    "TASKMGMT_DEFAULT_ROOT": "Global task root used when no project path is given (default: tasks).",
    # Concurrency
    "TASKMGMT_UPDATE_RETRIES": "Attempts per lifecycle update before a race is reported (default: 3).",
}
