"""
Storage backends implementing the Storage port (see core/ports.py).

- sqlite_storage.py: file-backed, default
- memory_storage.py: in-process dict, for tests and demos
"""
