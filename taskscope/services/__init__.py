"""Services for the scope governance engine."""

from .stores import ScopeStorage
from .file_storage import FileStorage
from .memory_storage import MemoryStorage
from .locks import ProjectLockManager
from .cache import ReportCache
from .scope_service import ScopeService, get_scope_service, build_storage

__all__ = [
    "ScopeStorage",
    "FileStorage",
    "MemoryStorage",
    "ProjectLockManager",
    "ReportCache",
    "ScopeService",
    "get_scope_service",
    "build_storage",
]
