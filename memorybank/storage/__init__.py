"""Storage layer — interchangeable backends for components and history.

Both strategies implement the same Backend contract: overwrite-semantics
component writes, newest-first history, and oldest-first pruning.
"""

from memorybank.storage.base import Backend
from memorybank.storage.file_backend import FileBackend
from memorybank.storage.sqlite_backend import SqliteBackend

__all__ = [
    "Backend",
    "FileBackend",
    "SqliteBackend",
]
